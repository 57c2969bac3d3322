"""HTTP surface used by clients that have no socket."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Query

from chat_realtime.api.deps import ChatReaderDep, RelayDep
from chat_realtime.api.v1.schemas.chat import AcceptedResponse, ChatResponse, MessageResponse
from chat_realtime.application.exceptions import MalformedEventError, NotFoundError, ValidationError
from chat_realtime.infrastructure.ws.protocol import ChatEvent, TypingEvent, parse_event

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/chats", tags=["chats"])


@router.get("/{chat_id}", response_model=ChatResponse)
async def get_chat(
    chat_id: str,
    chats: ChatReaderDep,
    t: int | None = Query(None, description="Cache buster, ignored"),
    limit: int = Query(200, ge=1, le=1000),
) -> ChatResponse:
    chat = await chats.get_chat(chat_id, limit=limit)
    if chat is None:
        raise NotFoundError(f"Chat {chat_id} not found")
    return ChatResponse(
        id=chat.id,
        title=chat.title,
        created_at=chat.created_at,
        messages=[
            MessageResponse(
                id=m.id,
                chat_id=m.chat_id,
                role=m.role,
                content=m.content,
                created_at=m.created_at,
            )
            for m in chat.messages
        ],
    )


@router.post("/{chat_id}/ws-message", response_model=AcceptedResponse, status_code=202)
async def post_ws_message(
    chat_id: str,
    chats: ChatReaderDep,
    relay: RelayDep,
    payload: dict[str, Any] = Body(...),
) -> AcceptedResponse:
    """Accept an outbound socket event from a client that is polling."""
    if await chats.get_chat(chat_id, limit=1) is None:
        raise NotFoundError(f"Chat {chat_id} not found")

    try:
        event = parse_event({**payload, "chatId": chat_id})
    except MalformedEventError as exc:
        raise ValidationError(exc.detail) from exc

    if isinstance(event, (ChatEvent, TypingEvent)):
        await relay.relay(event)
    else:
        logger.debug("Ignoring %s posted over HTTP for chat %s", event.type, chat_id)
    return AcceptedResponse()
