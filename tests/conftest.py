"""
Shared pytest fixtures for request-core tests.

No test touches the network: every client is built on a FakeSession that
replays a scripted list of responses (or raises scripted transport errors)
and records each request it was asked to send.  Backoff is set to zero in
the default config so retry loops run instantly.
"""

from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from src.graph_client.executor import BaseClient, ClientConfig


# ---------------------------------------------------------------------------
# Canonical transient-failure payloads
# ---------------------------------------------------------------------------

ROSTER_NOT_READY_ERROR = {
    "error": {
        "code": "Forbidden",
        "message": "One or more members cannot be added to the thread roster",
        "innerError": {"request-id": "0d6b1c1e", "date": "2024-03-01T10:00:00"},
    }
}

ACCESS_DENIED_ERROR = {
    "error": {
        "code": "Forbidden",
        "message": "Insufficient privileges to complete the operation.",
    }
}

NOT_FOUND_ERROR = {
    "error": {
        "code": "NotFound",
        "message": "Resource 'chat-1' does not exist or one of its queried "
                   "reference-property objects are not present.",
    }
}


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------

class FakeResponse:
    """Minimal stand-in for ``requests.Response`` that tracks closing."""

    def __init__(self, status_code: int, body: Any = b"", headers: dict | None = None):
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
        elif isinstance(body, str):
            body = body.encode("utf-8")
        self.status_code = status_code
        self.content = body
        self.headers = headers or {"Content-Type": "application/json"}
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class BrokenBodyResponse(FakeResponse):
    """Response whose body read fails partway, as a dropped chunked stream does."""

    def __init__(self, status_code: int = 200):
        super().__init__(status_code)

    @property
    def content(self) -> bytes:
        raise requests.exceptions.ChunkedEncodingError("Connection broken: IncompleteRead")

    @content.setter
    def content(self, value: bytes) -> None:
        pass


class FakeSession:
    """
    Replays ``script`` in order.  Each item is a FakeResponse, a
    ``(status, body)`` tuple, or an exception instance to raise.  A callable
    item is called with the request kwargs and its result handled the same way.
    """

    def __init__(self, script: list[Any], echo: bool = False):
        self.script = list(script)
        self.echo = echo
        self.calls: list[dict[str, Any]] = []
        self.responses: list[FakeResponse] = []
        self.mounted: dict[str, Any] = {}

    def mount(self, prefix: str, adapter: Any) -> None:
        self.mounted[prefix] = adapter

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.script:
            raise AssertionError(f"unexpected extra request: {method} {url}")
        item = self.script.pop(0)
        if callable(item) and not isinstance(item, FakeResponse):
            item = item(**kwargs)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, tuple):
            status, body = item
            if self.echo and body is None:
                body = kwargs.get("data") or b""
            item = FakeResponse(status, body)
        self.responses.append(item)
        return item


def make_client(script: list[Any], echo: bool = False, **config: Any) -> tuple[BaseClient, FakeSession]:
    """Build a BaseClient on a FakeSession; ``config`` overrides ClientConfig fields."""
    config.setdefault("backoff_seconds", 0.0)
    session = FakeSession(script, echo=echo)
    client = BaseClient(ClientConfig(**config), authorizer=lambda: "test-token", session=session)
    return client, session


@pytest.fixture
def chat_body() -> dict:
    return {
        "id": "19:meeting_abc@thread.v2",
        "topic": "Release planning",
        "chatType": "group",
        "createdDateTime": "2024-03-01T10:00:00Z",
        "lastUpdatedDateTime": "2024-03-01T10:05:00Z",
        "tenantId": "00000000-0000-0000-0000-000000000001",
        "webUrl": "https://teams.microsoft.com/l/chat/19%3Ameeting_abc",
    }


@pytest.fixture
def attribute_set_body() -> dict:
    return {
        "id": "test",
        "description": "test attribute set",
        "maxAttributesPerSet": 25,
    }
