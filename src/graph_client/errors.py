"""
Error taxonomy for the request core.

Every failure the executor can produce is one of the exceptions below.  Each
carries a usable ``status_code`` (``0`` when no response was ever received)
and a ``category`` string so callers can branch without isinstance ladders.

Wrappers annotate errors with their operation name via :meth:`annotate` and
re-raise the same exception, so the kind never changes as it propagates.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from .odata import ODataError


class GraphClientError(Exception):
    """
    Base class for all request-core failures.

    Category constants mirror the exception subclasses; transport failures
    are further split by :func:`categorize_transport_error`.
    """

    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    CANCELLED = "cancelled"
    DECODE = "decode"
    UNEXPECTED_STATUS = "unexpected_status"

    category: str = "other"

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        odata_error: ODataError | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.odata_error = odata_error
        self.operations: list[str] = []

    def annotate(self, operation: str) -> "GraphClientError":
        """Prepend call-site context (e.g. ``'ChatClient.get()'``) and return self."""
        self.operations.insert(0, operation)
        return self

    def __str__(self) -> str:
        prefix = "".join(f"{op}: " for op in self.operations)
        return f"{prefix}{self.message}"


class TransportError(GraphClientError):
    """Connection failure, timeout, or any other error raised by the transport."""

    category = GraphClientError.TRANSPORT

    def __init__(self, message: str, category: str | None = None) -> None:
        super().__init__(message)
        if category:
            self.category = category


class RequestCancelledError(GraphClientError):
    """The caller cancelled the operation or its deadline passed."""

    category = GraphClientError.CANCELLED

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message, status_code=status_code)


class DecodeError(GraphClientError):
    """Malformed JSON in a request or response body."""

    category = GraphClientError.DECODE


class UnexpectedStatusError(GraphClientError):
    """
    The request completed but its status is not in the accepted set.

    Raised after consistency retries, if any, were exhausted; ``attempts``
    counts every request that was sent and ``body`` holds the last response
    body for inspection.
    """

    category = GraphClientError.UNEXPECTED_STATUS

    def __init__(
        self,
        status_code: int,
        odata_error: ODataError | None = None,
        body: bytes = b"",
        attempts: int = 1,
    ) -> None:
        if odata_error is not None:
            message = f"unexpected status {status_code} with OData error: {odata_error}"
        else:
            text = body.decode("utf-8", errors="replace")
            message = f"unexpected status {status_code} with response: {text}"
        super().__init__(message, status_code=status_code, odata_error=odata_error)
        self.body = body
        self.attempts = attempts


def categorize_transport_error(error: Exception) -> tuple[str, str]:
    """
    Classify a transport exception into a category and message pair.

    Args:
        error: Exception raised by ``requests`` while sending or reading.

    Returns:
        Tuple of (category: str, message: str).
    """
    if isinstance(error, requests.Timeout):
        return GraphClientError.TIMEOUT, str(error)

    if isinstance(error, requests.ConnectionError):
        return GraphClientError.CONNECTION, str(error)

    err = str(error).lower()
    if "timeout" in err or "timed out" in err:
        return GraphClientError.TIMEOUT, str(error)

    return GraphClientError.TRANSPORT, str(error)
