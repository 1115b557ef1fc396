"""
Entity operation wrappers: serialize, delegate to the executor, deserialize.

Wrappers carry no retry logic of their own.  Each one picks the verb, path,
accepted statuses and consistency predicate for its operation and hands the
rest to :class:`BaseClient`.  Errors propagate unchanged in kind, annotated
with the wrapper's operation name.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any
from urllib.parse import quote

from .config import LIST_ENVELOPE_FIELD, METADATA_FULL
from .errors import DecodeError, GraphClientError
from .executor import BaseClient, Outcome, Uri, encode_body
from .models import AttributeSet, Chat
from .odata import Query
from .retry import retry_on_404, retry_on_roster_not_ready


@contextmanager
def annotate_errors(operation: str) -> Iterator[None]:
    """Re-raise any :class:`GraphClientError` with ``operation`` prepended."""
    try:
        yield
    except GraphClientError as exc:
        exc.annotate(operation)
        raise


def _segment(value: str) -> str:
    return quote(str(value), safe="")


def decode_entity(outcome: Outcome) -> Mapping[str, Any]:
    """
    Decode a single-entity response body.

    Raises:
        DecodeError: Body is not a JSON object.
    """
    data = outcome.json()
    if not isinstance(data, Mapping):
        raise DecodeError(
            f"expected a JSON object, got {type(data).__name__}",
            status_code=outcome.status_code,
        )
    return data


def decode_collection(outcome: Outcome, field: str = LIST_ENVELOPE_FIELD) -> list[Any]:
    """
    Unwrap the ordered result sequence from a collection envelope.

    Raises:
        DecodeError: Body is not an object, or ``field`` is not a list.
    """
    data = decode_entity(outcome)
    items = data.get(field)
    if not isinstance(items, list) or not all(isinstance(i, Mapping) for i in items):
        raise DecodeError(
            f"expected '{field}' to hold a list of objects in collection response",
            status_code=outcome.status_code,
        )
    return items


class EntityClient:
    """Base for wrappers: owns a :class:`BaseClient` and exposes its toggle."""

    def __init__(self, base_client: BaseClient | None = None) -> None:
        self.base_client = base_client or BaseClient()

    @property
    def disable_retries(self) -> bool:
        return self.base_client.disable_retries

    @disable_retries.setter
    def disable_retries(self, value: bool) -> None:
        self.base_client.disable_retries = value


# ---------------------------------------------------------------------------
# Chats
# ---------------------------------------------------------------------------

class ChatClient(EntityClient):

    def create(self, chat: Chat, **kwargs: Any) -> tuple[Chat, int]:
        """Create a chat.  Retries while new members are still propagating to the roster."""
        with annotate_errors("ChatClient.create()"):
            outcome = self.base_client.post(
                Uri("/chats"),
                valid_status_codes=(201,),
                body=encode_body(chat.to_dict()),
                query=Query(metadata=METADATA_FULL),
                consistency_failure=retry_on_roster_not_ready,
                **kwargs,
            )
            return Chat.from_dict(decode_entity(outcome)), outcome.status_code

    def get(self, chat_id: str, query: Query | None = None, **kwargs: Any) -> tuple[Chat, int]:
        with annotate_errors("ChatClient.get()"):
            outcome = self.base_client.get(
                Uri(f"/chats/{_segment(chat_id)}"),
                valid_status_codes=(200,),
                query=(query or Query()).with_metadata(METADATA_FULL),
                consistency_failure=retry_on_404,
                **kwargs,
            )
            return Chat.from_dict(decode_entity(outcome)), outcome.status_code

    def list(self, user_id: str, query: Query | None = None, **kwargs: Any) -> tuple[list[Chat], int]:
        """
        List the chats a user belongs to.

        To fetch IDs only, pass ``Query(select=("id",))``.
        """
        with annotate_errors("ChatClient.list()"):
            outcome = self.base_client.get(
                Uri(f"/users/{_segment(user_id)}/chats"),
                valid_status_codes=(200,),
                query=(query or Query()).with_metadata(METADATA_FULL),
                consistency_failure=retry_on_404,
                **kwargs,
            )
            chats = [Chat.from_dict(item) for item in decode_collection(outcome)]
            return chats, outcome.status_code

    def update(self, chat: Chat, **kwargs: Any) -> int:
        if not chat.id:
            raise ValueError("ChatClient.update(): chat.id is required")
        with annotate_errors("ChatClient.update()"):
            outcome = self.base_client.patch(
                Uri(f"/chats/{_segment(chat.id)}"),
                valid_status_codes=(204,),
                body=encode_body(chat.to_dict()),
                consistency_failure=retry_on_404,
                **kwargs,
            )
            return outcome.status_code

    def delete(self, chat_id: str, **kwargs: Any) -> int:
        with annotate_errors("ChatClient.delete()"):
            outcome = self.base_client.delete(
                Uri(f"/chats/{_segment(chat_id)}"),
                valid_status_codes=(204,),
                consistency_failure=retry_on_404,
                **kwargs,
            )
            return outcome.status_code


# ---------------------------------------------------------------------------
# Attribute sets
# ---------------------------------------------------------------------------

class AttributeSetClient(EntityClient):

    def create(self, attribute_set: AttributeSet, **kwargs: Any) -> tuple[AttributeSet, int]:
        with annotate_errors("AttributeSetClient.create()"):
            outcome = self.base_client.post(
                Uri("/directory/attributeSets"),
                valid_status_codes=(201,),
                body=encode_body(attribute_set.to_dict()),
                **kwargs,
            )
            return AttributeSet.from_dict(decode_entity(outcome)), outcome.status_code

    def get(
        self,
        attribute_set_id: str,
        query: Query | None = None,
        **kwargs: Any,
    ) -> tuple[AttributeSet, int]:
        with annotate_errors("AttributeSetClient.get()"):
            outcome = self.base_client.get(
                Uri(f"/directory/attributeSets/{_segment(attribute_set_id)}"),
                valid_status_codes=(200,),
                query=(query or Query()).with_metadata(METADATA_FULL),
                consistency_failure=retry_on_404,
                **kwargs,
            )
            return AttributeSet.from_dict(decode_entity(outcome)), outcome.status_code

    def list(self, query: Query | None = None, **kwargs: Any) -> tuple[list[AttributeSet], int]:
        with annotate_errors("AttributeSetClient.list()"):
            outcome = self.base_client.get(
                Uri("/directory/attributeSets"),
                valid_status_codes=(200,),
                query=(query or Query()).with_metadata(METADATA_FULL),
                **kwargs,
            )
            items = [AttributeSet.from_dict(item) for item in decode_collection(outcome)]
            return items, outcome.status_code

    def update(self, attribute_set: AttributeSet, **kwargs: Any) -> int:
        if not attribute_set.id:
            raise ValueError("AttributeSetClient.update(): attribute_set.id is required")
        # id is immutable server-side and must not appear in the PATCH body
        payload = attribute_set.to_dict()
        payload.pop("id", None)
        with annotate_errors("AttributeSetClient.update()"):
            outcome = self.base_client.patch(
                Uri(f"/directory/attributeSets/{_segment(attribute_set.id)}"),
                valid_status_codes=(204,),
                body=encode_body(payload),
                consistency_failure=retry_on_404,
                **kwargs,
            )
            return outcome.status_code
