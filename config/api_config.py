"""
Endpoint, API version and wire-header configuration.

This is the AUTHORITATIVE source for API configuration.
src/graph_client/config.py imports from here; do not maintain parallel copies.

BEFORE USING THE CLIENT AGAINST A NATIONAL CLOUD:
1. Override ``endpoint`` on ClientConfig with the matching entry from
   ENDPOINTS below.
2. Confirm the API version you target; ``beta`` resources can change shape
   without notice.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Endpoints, one entry per cloud environment
# ---------------------------------------------------------------------------

ENDPOINTS: dict[str, str] = {
    "global": "https://graph.microsoft.com",
    "usgov_l4": "https://graph.microsoft.us",
    "usgov_l5": "https://dod-graph.microsoft.us",
    "china": "https://microsoftgraph.chinacloudapi.cn",
}

DEFAULT_ENDPOINT: str = ENDPOINTS["global"]

# ---------------------------------------------------------------------------
# API versions
# ---------------------------------------------------------------------------

VERSION_1_0: str = "v1.0"
VERSION_BETA: str = "beta"

API_VERSIONS: frozenset[str] = frozenset({VERSION_1_0, VERSION_BETA})

DEFAULT_API_VERSION: str = VERSION_1_0

# ---------------------------------------------------------------------------
# OData metadata levels (sent as odata.metadata=<level> on the Accept header)
# ---------------------------------------------------------------------------

METADATA_FULL: str = "full"
METADATA_MINIMAL: str = "minimal"
METADATA_NONE: str = "none"

METADATA_LEVELS: frozenset[str] = frozenset({
    METADATA_FULL,
    METADATA_MINIMAL,
    METADATA_NONE,
})

# Advanced queries ($count, $search, ne/not filters) require eventual consistency
CONSISTENCY_LEVEL_EVENTUAL: str = "eventual"

# ---------------------------------------------------------------------------
# Wire headers and envelope field names
# ---------------------------------------------------------------------------

HEADER_ACCEPT: str = "Accept"
HEADER_AUTHORIZATION: str = "Authorization"
HEADER_CONSISTENCY_LEVEL: str = "ConsistencyLevel"
HEADER_CONTENT_TYPE: str = "Content-Type"
HEADER_USER_AGENT: str = "User-Agent"

CONTENT_TYPE_JSON: str = "application/json"

# Collection responses carry results under this field
LIST_ENVELOPE_FIELD: str = "value"

# Error responses carry the structured error under this field
ERROR_ENVELOPE_FIELD: str = "error"

DEFAULT_USER_AGENT: str = "graph-client-python"
