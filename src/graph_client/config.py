"""
Client defaults re-exported from the top-level ``config`` package.

Config is separated from logic: modules in this package import constants
from here only, and ``executor.ClientConfig`` copies them as per-instance
defaults.
"""

from config.api_config import (
    API_VERSIONS,
    CONSISTENCY_LEVEL_EVENTUAL,
    CONTENT_TYPE_JSON,
    DEFAULT_API_VERSION,
    DEFAULT_ENDPOINT,
    DEFAULT_USER_AGENT,
    ERROR_ENVELOPE_FIELD,
    HEADER_ACCEPT,
    HEADER_AUTHORIZATION,
    HEADER_CONSISTENCY_LEVEL,
    HEADER_CONTENT_TYPE,
    HEADER_USER_AGENT,
    LIST_ENVELOPE_FIELD,
    METADATA_FULL,
    METADATA_LEVELS,
    METADATA_MINIMAL,
    METADATA_NONE,
    VERSION_1_0,
    VERSION_BETA,
)
from config.client_params import (
    MAX_RETRIES,
    REQUEST_TIMEOUT_SECONDS,
    RETRY_BACKOFF_BASE_SECONDS,
    RETRY_BACKOFF_MAX_SECONDS,
    ROSTER_NOT_READY_MESSAGE,
    TRANSPORT_RETRY_BACKOFF_FACTOR,
    TRANSPORT_RETRY_STATUSES,
    TRANSPORT_RETRY_TOTAL,
)

__all__ = [
    "API_VERSIONS",
    "CONSISTENCY_LEVEL_EVENTUAL",
    "CONTENT_TYPE_JSON",
    "DEFAULT_API_VERSION",
    "DEFAULT_ENDPOINT",
    "DEFAULT_USER_AGENT",
    "ERROR_ENVELOPE_FIELD",
    "HEADER_ACCEPT",
    "HEADER_AUTHORIZATION",
    "HEADER_CONSISTENCY_LEVEL",
    "HEADER_CONTENT_TYPE",
    "HEADER_USER_AGENT",
    "LIST_ENVELOPE_FIELD",
    "MAX_RETRIES",
    "METADATA_FULL",
    "METADATA_LEVELS",
    "METADATA_MINIMAL",
    "METADATA_NONE",
    "REQUEST_TIMEOUT_SECONDS",
    "RETRY_BACKOFF_BASE_SECONDS",
    "RETRY_BACKOFF_MAX_SECONDS",
    "ROSTER_NOT_READY_MESSAGE",
    "TRANSPORT_RETRY_BACKOFF_FACTOR",
    "TRANSPORT_RETRY_STATUSES",
    "TRANSPORT_RETRY_TOTAL",
    "VERSION_1_0",
    "VERSION_BETA",
]
