"""
src/graph_client: resilient request core for the object-graph API.

Module layout
-------------
config.py   : defaults re-exported from the top-level config package
odata.py    : Query descriptor, structured error envelope parsing/matching
errors.py   : exception taxonomy, transport-error categorization
retry.py    : consistency predicates, backoff schedule, cancellable waits
executor.py : ClientConfig, RequestInput, Outcome, BaseClient retry loop
models.py   : Chat, ConversationMember, AttributeSet wire shapes
entities.py : ChatClient / AttributeSetClient operation wrappers

Public interface
----------------
Build a client and call an entity operation:
    base = BaseClient(ClientConfig(max_retries=4), authorizer=get_token)
    chat, status = ChatClient(base).get(chat_id)

Turn consistency retries off around an existence check:
    with base.retries_disabled():
        AttributeSetClient(base).get("test")

Pass a custom retry strategy on a raw request:
    base.get(Uri("/groups/x"), consistency_failure=any_of(retry_on_404, mine))
"""

from .entities import AttributeSetClient, ChatClient
from .errors import (
    DecodeError,
    GraphClientError,
    RequestCancelledError,
    TransportError,
    UnexpectedStatusError,
)
from .executor import (
    BaseClient,
    ClientConfig,
    Outcome,
    RequestInput,
    TransportRetryPolicy,
    Uri,
)
from .models import AttributeSet, Chat, ConversationMember
from .odata import Expand, ODataError, OrderBy, Query, eventual
from .retry import (
    all_of,
    any_of,
    never_retry,
    retry_on_404,
    retry_on_matched_error,
    retry_on_roster_not_ready,
    retry_on_status,
)

__all__ = [
    # Executor
    "BaseClient",
    "ClientConfig",
    "Outcome",
    "RequestInput",
    "TransportRetryPolicy",
    "Uri",
    # Entity wrappers and models
    "AttributeSet",
    "AttributeSetClient",
    "Chat",
    "ChatClient",
    "ConversationMember",
    # Query descriptor and structured errors
    "Expand",
    "ODataError",
    "OrderBy",
    "Query",
    "eventual",
    # Consistency predicates
    "all_of",
    "any_of",
    "never_retry",
    "retry_on_404",
    "retry_on_matched_error",
    "retry_on_roster_not_ready",
    "retry_on_status",
    # Errors
    "DecodeError",
    "GraphClientError",
    "RequestCancelledError",
    "TransportError",
    "UnexpectedStatusError",
]
