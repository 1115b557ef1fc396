"""
Consistency predicates, backoff schedule, and cancellation-aware waiting.

A consistency predicate is any callable ``predicate(outcome) -> bool`` that
inspects a completed, fully buffered response and says whether the failure
is backend replication lag (retry) or a real error (surface it).  Predicates
are pure: they never raise, and they return ``False`` when the structured
error is absent.

The executor owns the retry loop; this module only answers "should we?" and
"how long do we wait?".
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from .config import (
    MAX_RETRIES,
    RETRY_BACKOFF_BASE_SECONDS,
    RETRY_BACKOFF_MAX_SECONDS,
    ROSTER_NOT_READY_MESSAGE,
)
from .errors import RequestCancelledError

if TYPE_CHECKING:
    from .executor import Outcome

ConsistencyPredicate = Callable[["Outcome"], bool]

HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def never_retry(outcome: Outcome) -> bool:  # noqa: ARG001
    """Default predicate: every response is terminal."""
    return False


def retry_on_status(*status_codes: int) -> ConsistencyPredicate:
    """
    Build a predicate that retries when the status is one of ``status_codes``.

    Args:
        *status_codes: HTTP statuses considered transient for this call.

    Returns:
        Predicate callable.
    """
    codes = frozenset(status_codes)

    def predicate(outcome: Outcome) -> bool:
        return outcome is not None and outcome.status_code in codes

    predicate.__name__ = f"retry_on_status_{'_'.join(str(c) for c in sorted(codes))}"
    return predicate


# Read-after-write lag: a just-created or just-updated object is not yet
# visible to the replica serving this request.
retry_on_404: ConsistencyPredicate = retry_on_status(HTTP_NOT_FOUND)


def retry_on_matched_error(status_code: int, pattern: str) -> ConsistencyPredicate:
    """
    Build a predicate that retries only when both the status and the
    structured error text match.

    The same status with unrelated error text is *not* retried, so genuine
    failures (e.g. real authorization errors on 403) surface immediately.

    Args:
        status_code: The otherwise-terminal status signalling the transient case.
        pattern: Regular expression matched via :meth:`ODataError.match`.

    Returns:
        Predicate callable.
    """

    def predicate(outcome: Outcome) -> bool:
        if outcome is None or outcome.odata_error is None:
            return False
        if outcome.status_code != status_code:
            return False
        return outcome.odata_error.match(pattern)

    predicate.__name__ = f"retry_on_matched_error_{status_code}"
    return predicate


# Chat creation races member provisioning: the API rejects the roster with
# 403 until every member has propagated.
retry_on_roster_not_ready: ConsistencyPredicate = retry_on_matched_error(
    HTTP_FORBIDDEN, ROSTER_NOT_READY_MESSAGE
)


def any_of(*predicates: Optional[ConsistencyPredicate]) -> ConsistencyPredicate:
    """Retry when any of ``predicates`` fires.  ``None`` entries are skipped."""
    active = [p for p in predicates if p is not None]

    def predicate(outcome: Outcome) -> bool:
        return any(p(outcome) for p in active)

    return predicate


def all_of(*predicates: Optional[ConsistencyPredicate]) -> ConsistencyPredicate:
    """Retry only when every one of ``predicates`` fires.  ``None`` entries are skipped."""
    active = [p for p in predicates if p is not None]

    def predicate(outcome: Outcome) -> bool:
        return bool(active) and all(p(outcome) for p in active)

    return predicate


# ---------------------------------------------------------------------------
# Retry state
# ---------------------------------------------------------------------------

@dataclass
class RetryState:
    """
    Per-operation retry bookkeeping.

    Created fresh by the executor for every logical operation and never
    shared between operations.
    """

    max_retries: int = MAX_RETRIES
    enabled: bool = True
    attempts: int = 0
    started_at: float = field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def record_attempt(self) -> int:
        self.attempts += 1
        return self.attempts

    def can_retry(self) -> bool:
        """``True`` while retries are enabled and the budget is not spent."""
        return self.enabled and self.attempts <= self.max_retries


# ---------------------------------------------------------------------------
# Backoff helpers
# ---------------------------------------------------------------------------

def backoff_interval(
    attempt: int,
    base: float = RETRY_BACKOFF_BASE_SECONDS,
    maximum: float = RETRY_BACKOFF_MAX_SECONDS,
) -> float:
    """
    Return the wait time in seconds before the retry that follows ``attempt``.

    Schedule: ``base * 2 ** (attempt - 1)``, capped at ``maximum``.  With the
    defaults this gives 2 s, 4 s, 8 s, 16 s, 30 s, 30 s, ...

    Args:
        attempt: 1-based attempt number that just failed.
        base: Wait after the first failed attempt.
        maximum: Upper bound for any single wait.

    Returns:
        Seconds to wait; never negative.
    """
    if base <= 0:
        return 0.0
    exponent = max(attempt - 1, 0)
    return min(base * (2 ** exponent), maximum)


def remaining_time(deadline: float | None) -> float | None:
    """Seconds left until ``deadline`` (a ``time.monotonic()`` value), or ``None``."""
    if deadline is None:
        return None
    return deadline - time.monotonic()


def check_cancelled(
    cancel_event: threading.Event | None = None,
    deadline: float | None = None,
) -> None:
    """
    Raise :class:`RequestCancelledError` if the operation was cancelled.

    Raises:
        RequestCancelledError: ``cancel_event`` is set or ``deadline`` has passed.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise RequestCancelledError("operation cancelled")
    left = remaining_time(deadline)
    if left is not None and left <= 0:
        raise RequestCancelledError("operation deadline exceeded")


def wait_for_retry(
    seconds: float,
    cancel_event: threading.Event | None = None,
    deadline: float | None = None,
) -> None:
    """
    Sleep for ``seconds`` unless cancelled first.

    The wait wakes as soon as ``cancel_event`` is set.  When ``deadline``
    falls inside the wait the retry could never be sent, so it fails at once
    instead of sleeping.

    Args:
        seconds: Backoff duration.
        cancel_event: Optional event the caller sets to cancel.
        deadline: Optional ``time.monotonic()`` value after which to give up.

    Raises:
        RequestCancelledError: Cancelled before or during the wait, or the
            deadline falls inside the wait.
    """
    check_cancelled(cancel_event, deadline)

    left = remaining_time(deadline)
    if left is not None and left < seconds:
        raise RequestCancelledError("operation deadline exceeded during retry backoff")

    if _sleep(seconds, cancel_event):
        raise RequestCancelledError("operation cancelled during retry backoff")


def _sleep(seconds: float, cancel_event: threading.Event | None) -> bool:
    """Sleep; return ``True`` if woken by ``cancel_event``."""
    if seconds <= 0:
        return cancel_event is not None and cancel_event.is_set()
    if cancel_event is None:
        time.sleep(seconds)
        return False
    return cancel_event.wait(seconds)
