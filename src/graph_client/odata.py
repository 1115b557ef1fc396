"""
OData query descriptors and structured error envelope parsing.

No I/O occurs here; all functions are pure transformations of query options
and response bytes so they can be unit tested without a transport.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from .config import (
    CONSISTENCY_LEVEL_EVENTUAL,
    CONTENT_TYPE_JSON,
    ERROR_ENVELOPE_FIELD,
    HEADER_ACCEPT,
    HEADER_CONSISTENCY_LEVEL,
    METADATA_LEVELS,
)


# ---------------------------------------------------------------------------
# Query descriptor
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrderBy:
    """Single ``$orderby`` clause, e.g. ``OrderBy("displayName", "desc")``."""

    field: str
    direction: str = ""

    def __str__(self) -> str:
        if self.direction:
            return f"{self.field} {self.direction}"
        return self.field


@dataclass(frozen=True)
class Expand:
    """``$expand`` clause with an optional nested ``$select``."""

    relationship: str
    select: tuple[str, ...] = ()

    def __str__(self) -> str:
        if not self.relationship:
            return ""
        if self.select:
            return f"{self.relationship}($select={','.join(self.select)})"
        return self.relationship


@dataclass(frozen=True)
class Query:
    """
    Immutable bag of OData query options for one request.

    Query-string options are rendered by :meth:`values`; ``metadata`` and
    ``consistency_level`` travel as headers and are rendered by
    :meth:`headers`.  Use :meth:`with_metadata` to derive a copy with a
    different metadata level (wrappers force ``full`` on reads).
    """

    filter: str = ""
    select: tuple[str, ...] = ()
    top: int = 0
    skip: int = 0
    order_by: OrderBy | None = None
    expand: Expand | None = None
    search: str = ""
    count: bool = False
    format: str = ""
    metadata: str = ""
    consistency_level: str = ""

    def __post_init__(self) -> None:
        if self.metadata and self.metadata not in METADATA_LEVELS:
            raise ValueError(
                f"Unknown metadata level '{self.metadata}'. "
                f"Expected one of: {sorted(METADATA_LEVELS)}"
            )
        if self.top < 0 or self.skip < 0:
            raise ValueError("$top and $skip must not be negative")

    def with_metadata(self, level: str) -> "Query":
        return replace(self, metadata=level)

    def values(self) -> dict[str, str]:
        """
        Render the query-string options.

        Options left at their zero value are omitted.  ``$search`` is
        wrapped in double quotes as the API requires.

        Returns:
            Dict of ``$option`` name → string value, in a stable order.
        """
        params: dict[str, str] = {}
        if self.count:
            params["$count"] = "true"
        if self.expand is not None and str(self.expand):
            params["$expand"] = str(self.expand)
        if self.filter:
            params["$filter"] = self.filter
        if self.format:
            params["$format"] = self.format
        if self.order_by is not None and self.order_by.field:
            params["$orderby"] = str(self.order_by)
        if self.search:
            params["$search"] = f'"{self.search}"'
        if self.select:
            params["$select"] = ",".join(self.select)
        if self.skip > 0:
            params["$skip"] = str(self.skip)
        if self.top > 0:
            params["$top"] = str(self.top)
        return params

    def headers(self) -> dict[str, str]:
        """Render the header-borne options (metadata level, consistency level)."""
        headers: dict[str, str] = {}
        if self.consistency_level:
            headers[HEADER_CONSISTENCY_LEVEL] = self.consistency_level
        if self.metadata:
            headers[HEADER_ACCEPT] = f"{CONTENT_TYPE_JSON}; odata.metadata={self.metadata}"
        return headers


def eventual(query: Query | None = None) -> Query:
    """Return ``query`` with ``ConsistencyLevel: eventual`` set (advanced queries)."""
    return replace(query or Query(), consistency_level=CONSISTENCY_LEVEL_EVENTUAL)


# ---------------------------------------------------------------------------
# Structured error envelope
# ---------------------------------------------------------------------------

@dataclass
class ODataError:
    """
    Structured error decoded from ``{"error": {...}}``.

    :meth:`match` is what consistency predicates use to recognise specific
    transient failure text; it searches the rendered error, so nested detail
    messages are matched as well as the top-level message.
    """

    code: str | None = None
    message: str | None = None
    target: str | None = None
    details: list["ODataError"] = field(default_factory=list)
    inner_error: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ODataError":
        details = [
            cls.from_dict(d) for d in data.get("details") or [] if isinstance(d, Mapping)
        ]
        inner = data.get("innerError") or data.get("innererror")
        return cls(
            code=_as_str(data.get("code")),
            message=_as_str(data.get("message")),
            target=_as_str(data.get("target")),
            details=details,
            inner_error=dict(inner) if isinstance(inner, Mapping) else None,
        )

    def match(self, pattern: str) -> bool:
        """
        Return ``True`` if ``pattern`` (a regular expression) occurs in the
        rendered error text.

        An invalid pattern is treated as a literal substring.
        """
        text = str(self)
        try:
            return re.search(pattern, text) is not None
        except re.error:
            return pattern in text

    def __str__(self) -> str:
        parts: list[str] = []
        if self.code:
            parts.append(f"{self.code}:")
        if self.message:
            parts.append(self.message)
        if self.target:
            parts.append(f"(target: {self.target})")
        for detail in self.details:
            parts.append(f"[{detail}]")
        return " ".join(parts)


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def parse_error_envelope(body: bytes | None) -> ODataError | None:
    """
    Best-effort decode of the standard error envelope.

    A missing, non-JSON or differently-shaped body is not an error here;
    callers simply get ``None``.

    Args:
        body: Fully buffered response body.

    Returns:
        :class:`ODataError` or ``None``.
    """
    if not body:
        return None
    try:
        decoded = json.loads(body)
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(decoded, Mapping):
        return None
    envelope = decoded.get(ERROR_ENVELOPE_FIELD)
    if not isinstance(envelope, Mapping):
        return None
    return ODataError.from_dict(envelope)
