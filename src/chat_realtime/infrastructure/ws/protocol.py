"""Delivery event envelope shared by the socket, the poller and the hub.

Wire shape (both directions)::

    {"type": str, "data"?: any, "message"?: str, "chatId"?: str,
     "timestamp"?: str, "status"?: str, "messageId"?: str}

Every ``type`` gets its own model; :data:`DeliveryEvent` is the tagged union
consumers dispatch on. Unknown fields are carried through untouched so a
rebroadcast stays close to what the sender wrote.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from chat_realtime.application.exceptions import MalformedEventError
from chat_realtime.domain.value_objects.enums import TypingStatus


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    timestamp: str | None = None


class ConnectionEstablishedEvent(_Event):
    """Synthesised when polling takes over the session."""

    type: Literal["connection_established"] = "connection_established"


class ConnectionEvent(_Event):
    """Server welcome sent right after the socket is accepted."""

    type: Literal["connection"] = "connection"
    message: str | None = None


class JoinEvent(_Event):
    type: Literal["join"] = "join"
    chat_id: str = Field(alias="chatId")


class JoinedEvent(_Event):
    type: Literal["joined"] = "joined"
    chat_id: str | None = Field(default=None, alias="chatId")


class TypingEvent(_Event):
    type: Literal["typing"] = "typing"
    status: TypingStatus
    chat_id: str | None = Field(default=None, alias="chatId")
    message_id: str | None = Field(default=None, alias="messageId")


class PingEvent(_Event):
    type: Literal["ping"] = "ping"


class PongEvent(_Event):
    type: Literal["pong"] = "pong"


class ChatEvent(_Event):
    """Opaque chat payload, fanned out to the chat's sockets."""

    type: Literal["chat"] = "chat"
    chat_id: str | None = Field(default=None, alias="chatId")
    data: Any = None
    message: str | None = None


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    message: str | None = None
    data: Any = None


DeliveryEvent = Annotated[
    Union[
        ConnectionEstablishedEvent,
        ConnectionEvent,
        JoinEvent,
        JoinedEvent,
        TypingEvent,
        PingEvent,
        PongEvent,
        ChatEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

_adapter: TypeAdapter[DeliveryEvent] = TypeAdapter(DeliveryEvent)


def parse_event(raw: str | bytes | dict[str, Any]) -> DeliveryEvent:
    """Validate a wire payload into its concrete event model.

    Raises :class:`MalformedEventError` for invalid JSON, non-object payloads,
    unknown ``type`` values and fields that fail validation.
    """
    try:
        if isinstance(raw, (str, bytes, bytearray)):
            return _adapter.validate_json(raw)
        return _adapter.validate_python(raw)
    except PydanticValidationError as exc:
        raise MalformedEventError(str(exc)) from exc


def encode_event(event: DeliveryEvent) -> str:
    return event.model_dump_json(by_alias=True, exclude_none=True)
