"""In-process WebSocket fan-out hub."""
from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from chat_realtime.domain.value_objects.enums import BroadcastScope
from chat_realtime.infrastructure.ws.protocol import (
    ConnectionEvent,
    DeliveryEvent,
    JoinedEvent,
    PingEvent,
    encode_event,
    now_iso,
)

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Welcome to WebSocket!"


class FanoutHub:
    """Tracks the live sockets of this process and the chats they joined.

    Only touched from the event loop, so the sets need no locking.
    """

    def __init__(
        self,
        *,
        heartbeat_seconds: float = 30,
        scope: BroadcastScope = BroadcastScope.CHAT,
    ) -> None:
        self._heartbeat_seconds = heartbeat_seconds
        self._scope = scope
        self._sockets: set[WebSocket] = set()
        self._rooms: dict[str, set[WebSocket]] = {}
        self._keepalive: dict[WebSocket, asyncio.Task[None]] = {}

    @property
    def scope(self) -> BroadcastScope:
        return self._scope

    def __len__(self) -> int:
        return len(self._sockets)

    def __contains__(self, ws: object) -> bool:
        return ws in self._sockets

    def members(self, chat_id: str) -> set[WebSocket]:
        return set(self._rooms.get(chat_id, ()))

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self._sockets.add(ws)
        try:
            await self.send(ws, ConnectionEvent(message=WELCOME_MESSAGE, timestamp=now_iso()))
        except Exception:
            self.disconnect(ws)
            raise
        self._keepalive[ws] = asyncio.create_task(self._keep_alive(ws), name="ws-keepalive")
        logger.info("WS connected (total=%d)", len(self._sockets))

    def disconnect(self, ws: WebSocket) -> None:
        self._sockets.discard(ws)
        for chat_id in [cid for cid, members in self._rooms.items() if ws in members]:
            members = self._rooms[chat_id]
            members.discard(ws)
            if not members:
                del self._rooms[chat_id]
        task = self._keepalive.pop(ws, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        logger.info("WS disconnected (total=%d)", len(self._sockets))

    async def join(self, ws: WebSocket, chat_id: str) -> None:
        self._rooms.setdefault(chat_id, set()).add(ws)
        logger.debug("WS joined chat %s (members=%d)", chat_id, len(self._rooms[chat_id]))
        await self.send(ws, JoinedEvent(chat_id=chat_id, timestamp=now_iso()))

    async def broadcast(self, event: DeliveryEvent, raw: str | None = None) -> int:
        """Send ``event`` to its audience; ``raw`` is forwarded verbatim when given.

        Returns the number of sockets the event reached.
        """
        if self._scope is BroadcastScope.ALL:
            targets = set(self._sockets)
        else:
            chat_id = getattr(event, "chat_id", None)
            targets = self.members(chat_id) if chat_id else set()

        text = raw if raw is not None else encode_event(event)
        sent = 0
        dead: list[WebSocket] = []
        for ws in targets:
            if ws.client_state != WebSocketState.CONNECTED:
                dead.append(ws)
                continue
            try:
                await ws.send_text(text)
                sent += 1
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)
        return sent

    async def send(self, ws: WebSocket, event: DeliveryEvent) -> None:
        await ws.send_text(encode_event(event))

    def close(self) -> None:
        for ws in list(self._sockets):
            self.disconnect(ws)

    async def _keep_alive(self, ws: WebSocket) -> None:
        try:
            while True:
                await asyncio.sleep(self._heartbeat_seconds)
                if ws.client_state != WebSocketState.CONNECTED:
                    return
                await self.send(ws, PingEvent(timestamp=now_iso()))
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.debug("Keepalive stopped", exc_info=True)
