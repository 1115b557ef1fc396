"""
Retry budget, backoff schedule, timeouts and transient-failure phrases.

This is the AUTHORITATIVE source for all execution constants.
src/graph_client/config.py imports from here; do not maintain parallel copies.

Design rationale:
- Consistency retries cover read-after-write lag in the remote directory;
  replication normally settles within a few seconds, so the default budget
  of 8 retries with a 2 s base and 30 s cap spans about two and a half
  minutes of waiting.
- Transport retries (429 / 5xx / dropped connections) are a separate policy
  and are off unless a client opts in.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Consistency retry budget
# ---------------------------------------------------------------------------

# Retries after the initial attempt (total attempts = MAX_RETRIES + 1)
MAX_RETRIES: int = 8

# Backoff schedule: BASE * 2**(attempt - 1), capped at MAX
RETRY_BACKOFF_BASE_SECONDS: float = 2.0
RETRY_BACKOFF_MAX_SECONDS: float = 30.0

# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

# Per-attempt HTTP timeout (connect + read)
REQUEST_TIMEOUT_SECONDS: float = 60.0

# Statuses the optional transport retry policy re-sends
TRANSPORT_RETRY_STATUSES: frozenset[int] = frozenset({429, 502, 503, 504})
TRANSPORT_RETRY_TOTAL: int = 3
TRANSPORT_RETRY_BACKOFF_FACTOR: float = 1.0

# ---------------------------------------------------------------------------
# Transient-failure phrases
# ---------------------------------------------------------------------------
# Matched as regular expressions against the structured error text.
# Kept verbatim: the remote API returns exactly this wording while a newly
# created member is still propagating to the chat roster.

ROSTER_NOT_READY_MESSAGE: str = (
    "One or more members cannot be added to the thread roster"
)
