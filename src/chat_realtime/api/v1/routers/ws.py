from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from chat_realtime.api.deps import RelayDep
from chat_realtime.application.exceptions import MalformedEventError
from chat_realtime.config import settings
from chat_realtime.domain.value_objects.enums import BroadcastScope
from chat_realtime.infrastructure.ws.protocol import (
    ChatEvent,
    DeliveryEvent,
    ErrorEvent,
    JoinEvent,
    PingEvent,
    PongEvent,
    TypingEvent,
    now_iso,
    parse_event,
)
from chat_realtime.services.relay_service import EventRelay

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket(settings.WS_PATH)
async def ws_endpoint(websocket: WebSocket, relay: RelayDep) -> None:
    hub = relay.hub
    try:
        await hub.connect(websocket)
        await _read_loop(websocket, relay)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error")
    finally:
        hub.disconnect(websocket)


async def _read_loop(ws: WebSocket, relay: EventRelay) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            event = parse_event(raw)
        except MalformedEventError as exc:
            logger.warning("Invalid WS payload: %s", exc.detail)
            await relay.hub.send(ws, ErrorEvent(message="invalid_payload", timestamp=now_iso()))
            continue
        await _handle(ws, event, raw, relay)


async def _handle(ws: WebSocket, event: DeliveryEvent, raw: str, relay: EventRelay) -> None:
    hub = relay.hub

    if isinstance(event, PingEvent):
        await hub.send(ws, PongEvent(timestamp=now_iso()))

    elif isinstance(event, PongEvent):
        logger.debug("WS pong received")

    elif isinstance(event, JoinEvent):
        await hub.join(ws, event.chat_id)

    elif isinstance(event, (ChatEvent, TypingEvent)):
        if event.chat_id is None and hub.scope is BroadcastScope.CHAT:
            await hub.send(ws, ErrorEvent(message="chatId required", timestamp=now_iso()))
            return
        await relay.relay(event, raw)

    else:
        await hub.send(
            ws,
            ErrorEvent(message="unsupported_type", data={"type": event.type}, timestamp=now_iso()),
        )
