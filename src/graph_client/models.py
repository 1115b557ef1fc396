"""
Entity shapes for the representative wrappers: chats, conversation members,
attribute sets.

Field names are snake_case in Python; the JSON key for each field is stored
in the dataclass field metadata.  ``None`` fields are omitted on the wire so
PATCH bodies only carry what the caller set.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping

from .config import DEFAULT_API_VERSION, DEFAULT_ENDPOINT
from .errors import DecodeError

TYPE_CONVERSATION_MEMBER = "#microsoft.graph.aadUserConversationMember"

MEMBER_ROLE_OWNER = "owner"


def _json(key: str, default: Any = None) -> Any:
    return field(default=default, metadata={"json": key})


def _to_wire(model: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(model):
        value = getattr(model, f.name)
        if value is None:
            continue
        if isinstance(value, list):
            value = [_to_wire(v) if hasattr(v, "__dataclass_fields__") else v for v in value]
        out[f.metadata.get("json", f.name)] = value
    return out


def _from_wire(cls: type, data: Mapping[str, Any]) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = f.metadata.get("json", f.name)
        if key in data:
            kwargs[f.name] = data[key]
    return kwargs


@dataclass
class ConversationMember:
    """Member of a chat; ``user_bind`` is the ``user@odata.bind`` reference."""

    id: str | None = _json("id")
    odata_type: str | None = _json("@odata.type")
    display_name: str | None = _json("displayName")
    roles: list[str] | None = _json("roles")
    user_bind: str | None = _json("user@odata.bind")
    user_id: str | None = _json("userId")
    email: str | None = _json("email")
    tenant_id: str | None = _json("tenantId")
    visible_history_start_date_time: str | None = _json("visibleHistoryStartDateTime")

    @classmethod
    def for_user(
        cls,
        user_id: str,
        roles: list[str] | None = None,
        endpoint: str = DEFAULT_ENDPOINT,
        api_version: str = DEFAULT_API_VERSION,
    ) -> "ConversationMember":
        """Build the member reference the API expects when creating a chat."""
        return cls(
            odata_type=TYPE_CONVERSATION_MEMBER,
            roles=roles if roles is not None else [MEMBER_ROLE_OWNER],
            user_bind=f"{endpoint}/{api_version}/users('{user_id}')",
        )

    def to_dict(self) -> dict[str, Any]:
        return _to_wire(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConversationMember":
        return cls(**_from_wire(cls, data))


@dataclass
class Chat:
    id: str | None = _json("id")
    topic: str | None = _json("topic")
    chat_type: str | None = _json("chatType")
    created_date_time: str | None = _json("createdDateTime")
    last_updated_date_time: str | None = _json("lastUpdatedDateTime")
    members: list[ConversationMember] | None = _json("members")
    tenant_id: str | None = _json("tenantId")
    web_url: str | None = _json("webUrl")

    def to_dict(self) -> dict[str, Any]:
        return _to_wire(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Chat":
        kwargs = _from_wire(cls, data)
        members = kwargs.get("members")
        if members is not None:
            if not isinstance(members, list) or not all(isinstance(m, Mapping) for m in members):
                raise DecodeError("expected 'members' to hold a list of objects in chat")
            kwargs["members"] = [ConversationMember.from_dict(m) for m in members]
        return cls(**kwargs)


@dataclass
class AttributeSet:
    """Custom security attribute set; ``id`` is caller-chosen and immutable."""

    id: str | None = _json("id")
    description: str | None = _json("description")
    max_attributes_per_set: int | None = _json("maxAttributesPerSet")

    def to_dict(self) -> dict[str, Any]:
        return _to_wire(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AttributeSet":
        return cls(**_from_wire(cls, data))
