"""
Request construction, execution, and the consistency retry loop.

Every entity operation funnels through :meth:`BaseClient.execute`.  One call
is one logical operation: attempts are strictly sequential, each response is
fully read and closed before anything inspects it, and the retry decision is
delegated to the consistency predicate carried on the :class:`RequestInput`.

Design notes:
- Consistency retries (this module) and transport retries (429 / 5xx /
  dropped connections) are separate.  The latter only happen when a
  :class:`TransportRetryPolicy` is configured, and are performed by urllib3
  underneath ``requests`` before the executor ever sees a response.
- Each client copies its :class:`ClientConfig`, and ``disable_retries`` is the
  only field of that copy mutated after construction.
  Flip it between calls, not while calls are in flight; it is not locked.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Collection, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import (
    API_VERSIONS,
    CONTENT_TYPE_JSON,
    DEFAULT_API_VERSION,
    DEFAULT_ENDPOINT,
    DEFAULT_USER_AGENT,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_TYPE,
    HEADER_USER_AGENT,
    MAX_RETRIES,
    REQUEST_TIMEOUT_SECONDS,
    RETRY_BACKOFF_BASE_SECONDS,
    RETRY_BACKOFF_MAX_SECONDS,
    TRANSPORT_RETRY_BACKOFF_FACTOR,
    TRANSPORT_RETRY_STATUSES,
    TRANSPORT_RETRY_TOTAL,
)
from .errors import (
    DecodeError,
    RequestCancelledError,
    TransportError,
    UnexpectedStatusError,
    categorize_transport_error,
)
from .odata import ODataError, Query, parse_error_envelope
from .retry import (
    ConsistencyPredicate,
    RetryState,
    backoff_interval,
    check_cancelled,
    never_retry,
    remaining_time,
    wait_for_retry,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransportRetryPolicy:
    """
    Optional retry policy for transport-level failures.

    Applied by urllib3 beneath the session; ``Retry-After`` is honoured.
    Distinct from consistency retries, which never see these failures.
    """

    total: int = TRANSPORT_RETRY_TOTAL
    backoff_factor: float = TRANSPORT_RETRY_BACKOFF_FACTOR
    status_forcelist: frozenset[int] = TRANSPORT_RETRY_STATUSES

    def to_urllib3(self) -> Retry:
        return Retry(
            total=self.total,
            connect=self.total,
            read=self.total,
            status=self.total,
            backoff_factor=self.backoff_factor,
            status_forcelist=sorted(self.status_forcelist),
            allowed_methods=None,  # every verb, POST included
            raise_on_status=False,
            respect_retry_after_header=True,
        )


@dataclass
class ClientConfig:
    """
    Per-client settings.  Every field defaults from ``config/`` and can be
    overridden independently per instance.
    """

    endpoint: str = DEFAULT_ENDPOINT
    api_version: str = DEFAULT_API_VERSION
    tenant_id: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = REQUEST_TIMEOUT_SECONDS
    max_retries: int = MAX_RETRIES
    backoff_seconds: float = RETRY_BACKOFF_BASE_SECONDS
    max_backoff_seconds: float = RETRY_BACKOFF_MAX_SECONDS
    disable_retries: bool = False
    transport_retry: TransportRetryPolicy | None = None

    def __post_init__(self) -> None:
        if self.api_version not in API_VERSIONS:
            raise ValueError(
                f"Unknown api_version '{self.api_version}'. "
                f"Expected one of: {sorted(API_VERSIONS)}"
            )
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.backoff_seconds < 0 or self.max_backoff_seconds < 0:
            raise ValueError("backoff intervals must not be negative")


# ---------------------------------------------------------------------------
# Request descriptor and outcome
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Uri:
    """Target resource: ``entity`` is the path below the API version."""

    entity: str
    has_tenant_id: bool = False


@dataclass(frozen=True)
class RequestInput:
    """
    Everything needed to perform one logical operation.

    Built fresh by each wrapper; never mutated.  ``consistency_failure`` is
    the retry strategy for this call (``None`` means never retry).
    """

    method: str
    uri: Uri
    valid_status_codes: frozenset[int] = frozenset({200})
    body: bytes | None = None
    query: Query = field(default_factory=Query)
    consistency_failure: ConsistencyPredicate | None = None
    valid_status_func: Callable[["Outcome"], bool] | None = None

    def is_valid_status(self, outcome: "Outcome") -> bool:
        if outcome.status_code in self.valid_status_codes:
            return True
        return self.valid_status_func is not None and self.valid_status_func(outcome)


@dataclass
class Outcome:
    """
    A completed response, already read and closed.

    ``body`` holds the full response bytes, so it can be inspected by the
    predicate and decoded by the caller without touching the wire again.
    """

    status_code: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)
    odata_error: ODataError | None = None
    attempts: int = 1
    method: str = ""
    url: str = ""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Raises:
            DecodeError: The body is empty or not valid JSON.
        """
        try:
            return json.loads(self.body)
        except (UnicodeDecodeError, ValueError) as exc:
            raise DecodeError(
                f"json.loads(): invalid response body from {self.method} {self.url}: {exc}",
                status_code=self.status_code,
                odata_error=self.odata_error,
            ) from exc


def encode_body(payload: Any) -> bytes:
    """
    Serialize ``payload`` to JSON bytes for a request body.

    Raises:
        DecodeError: ``payload`` is not JSON-serializable.
    """
    try:
        return json.dumps(payload).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"json.dumps(): {exc}") from exc


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

class BaseClient:
    """
    Shared request executor used by every entity client.

    Args:
        config: Per-client settings; defaults from ``config/`` when omitted.
        authorizer: Zero-argument callable returning a bearer token.  Token
            acquisition lives outside this library.
        session: ``requests.Session`` to send on; one is created when omitted.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        authorizer: Callable[[], str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        # Private copy: the retry toggle below must not leak into other clients
        self.config = replace(config) if config is not None else ClientConfig()
        self.authorizer = authorizer
        self.session = session or requests.Session()
        if self.config.transport_retry is not None:
            adapter = HTTPAdapter(max_retries=self.config.transport_retry.to_urllib3())
            self.session.mount("https://", adapter)
            self.session.mount("http://", adapter)

    # ── retry toggle ───────────────────────────────────────────────────────

    @property
    def disable_retries(self) -> bool:
        return self.config.disable_retries

    @disable_retries.setter
    def disable_retries(self, value: bool) -> None:
        self.config.disable_retries = bool(value)

    @contextmanager
    def retries_disabled(self) -> Iterator["BaseClient"]:
        """Disable consistency retries for the ``with`` block, then restore."""
        previous = self.disable_retries
        self.disable_retries = True
        try:
            yield self
        finally:
            self.disable_retries = previous

    # ── request construction ───────────────────────────────────────────────

    def build_url(self, uri: Uri) -> str:
        """
        Return the full URL for ``uri``.

        Raises:
            ValueError: ``uri.has_tenant_id`` is set but no tenant is configured.
        """
        base = f"{self.config.endpoint.rstrip('/')}/{self.config.api_version}"
        if uri.has_tenant_id:
            if not self.config.tenant_id:
                raise ValueError(f"Uri '{uri.entity}' requires a tenant_id in ClientConfig")
            base = f"{base}/{self.config.tenant_id}"
        entity = uri.entity if uri.entity.startswith("/") else f"/{uri.entity}"
        return f"{base}{entity}"

    def build_headers(self, request_input: RequestInput) -> dict[str, str]:
        headers = {HEADER_USER_AGENT: self.config.user_agent}
        if self.authorizer is not None:
            headers[HEADER_AUTHORIZATION] = f"Bearer {self.authorizer()}"
        if request_input.body is not None:
            headers[HEADER_CONTENT_TYPE] = CONTENT_TYPE_JSON
        headers.update(request_input.query.headers())
        return headers

    # ── execution ──────────────────────────────────────────────────────────

    def execute(
        self,
        request_input: RequestInput,
        cancel_event: threading.Event | None = None,
        deadline: float | None = None,
    ) -> Outcome:
        """
        Perform one logical operation with bounded consistency retries.

        Each attempt re-sends an identical request.  After every response the
        consistency predicate is consulted; when it fires and the budget
        allows, the executor waits :func:`backoff_interval` and tries again.

        Args:
            request_input: Descriptor built by the calling wrapper.
            cancel_event: Set it from another thread to cancel.  Checked before
                each attempt, after each response, and throughout backoff waits.
            deadline: ``time.monotonic()`` value bounding the whole operation,
                including per-attempt socket timeouts.

        Returns:
            :class:`Outcome` whose status is accepted.

        Raises:
            UnexpectedStatusError: Final status not accepted (retries, if any,
                exhausted or disabled).  Carries the last status and error.
            TransportError: Connection failure or timeout.  Never retried here.
            RequestCancelledError: Cancelled or past ``deadline``.
        """
        method = request_input.method.upper()
        url = self.build_url(request_input.uri)
        headers = self.build_headers(request_input)
        params = request_input.query.values()
        predicate = request_input.consistency_failure or never_retry
        state = RetryState(
            max_retries=self.config.max_retries,
            enabled=not self.config.disable_retries,
        )

        while True:
            check_cancelled(cancel_event, deadline)
            attempt = state.record_attempt()
            outcome = self._send(method, url, params, headers, request_input.body, deadline)
            outcome.attempts = attempt
            check_cancelled(cancel_event, deadline)

            if not predicate(outcome):
                break

            if not state.enabled:
                logger.debug(
                    "Consistency retries disabled for %s %s; status %d returned as is",
                    method, url, outcome.status_code,
                )
                break

            if not state.can_retry():
                logger.warning(
                    "Consistency retries exhausted for %s %s after %d attempt(s) "
                    "in %.2fs; last status %d",
                    method, url, attempt, state.elapsed, outcome.status_code,
                )
                break

            delay = backoff_interval(
                attempt,
                base=self.config.backoff_seconds,
                maximum=self.config.max_backoff_seconds,
            )
            logger.info(
                "Consistency failure on %s %s (status %d, attempt %d/%d); retrying in %.2fs",
                method, url, outcome.status_code, attempt, state.max_retries + 1, delay,
            )
            wait_for_retry(delay, cancel_event, deadline)

        if not request_input.is_valid_status(outcome):
            raise UnexpectedStatusError(
                outcome.status_code,
                odata_error=outcome.odata_error,
                body=outcome.body,
                attempts=outcome.attempts,
            )
        return outcome

    def _send(
        self,
        method: str,
        url: str,
        params: Mapping[str, str],
        headers: Mapping[str, str],
        body: bytes | None,
        deadline: float | None,
    ) -> Outcome:
        """Send one attempt, buffer the body, close the response."""
        timeout = self.config.timeout_seconds
        left = remaining_time(deadline)
        if left is not None:
            timeout = min(timeout, left)

        logger.debug("%s %s params=%s", method, url, dict(params))
        try:
            response = self.session.request(
                method,
                url,
                params=dict(params),
                headers=dict(headers),
                data=body,
                timeout=timeout,
            )
        except requests.RequestException as exc:
            raise self._transport_failure(method, url, exc, deadline) from exc

        with response:
            try:
                content = response.content
            except requests.RequestException as exc:
                raise self._transport_failure(method, url, exc, deadline) from exc
            status = response.status_code
            response_headers = dict(response.headers)

        logger.debug("%s %s -> %d (%d bytes)", method, url, status, len(content or b""))
        return Outcome(
            status_code=status,
            body=content or b"",
            headers=response_headers,
            odata_error=parse_error_envelope(content),
            method=method,
            url=url,
        )

    @staticmethod
    def _transport_failure(
        method: str,
        url: str,
        exc: requests.RequestException,
        deadline: float | None,
    ) -> Exception:
        left = remaining_time(deadline)
        if left is not None and left <= 0:
            return RequestCancelledError(f"{method} {url}: operation deadline exceeded")
        category, message = categorize_transport_error(exc)
        return TransportError(f"{method} {url}: {message}", category=category)

    # ── verb helpers ───────────────────────────────────────────────────────

    def _verb(
        self,
        method: str,
        uri: Uri,
        valid_status_codes: Collection[int],
        body: bytes | None = None,
        query: Query | None = None,
        consistency_failure: ConsistencyPredicate | None = None,
        cancel_event: threading.Event | None = None,
        deadline: float | None = None,
    ) -> Outcome:
        request_input = RequestInput(
            method=method,
            uri=uri,
            valid_status_codes=frozenset(valid_status_codes),
            body=body,
            query=query or Query(),
            consistency_failure=consistency_failure,
        )
        return self.execute(request_input, cancel_event=cancel_event, deadline=deadline)

    def get(self, uri: Uri, valid_status_codes: Collection[int] = (200,), **kwargs: Any) -> Outcome:
        return self._verb("GET", uri, valid_status_codes, **kwargs)

    def post(self, uri: Uri, valid_status_codes: Collection[int] = (201,), **kwargs: Any) -> Outcome:
        return self._verb("POST", uri, valid_status_codes, **kwargs)

    def patch(self, uri: Uri, valid_status_codes: Collection[int] = (204,), **kwargs: Any) -> Outcome:
        return self._verb("PATCH", uri, valid_status_codes, **kwargs)

    def put(self, uri: Uri, valid_status_codes: Collection[int] = (200, 204), **kwargs: Any) -> Outcome:
        return self._verb("PUT", uri, valid_status_codes, **kwargs)

    def delete(self, uri: Uri, valid_status_codes: Collection[int] = (204,), **kwargs: Any) -> Outcome:
        return self._verb("DELETE", uri, valid_status_codes, **kwargs)
