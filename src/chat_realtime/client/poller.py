"""HTTP polling stand-in for the socket.

The poller fetches chat state on a fixed interval and turns new messages
into the same typing events the socket would have pushed, so consumers
can't tell which transport is active.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable

import httpx

from chat_realtime.application.ports.clock import Clock, SystemClock, epoch_millis
from chat_realtime.domain.value_objects.enums import EventType, MessageRole, TypingStatus
from chat_realtime.infrastructure.ws.protocol import (
    ConnectionEstablishedEvent,
    DeliveryEvent,
    JoinedEvent,
    PongEvent,
    TypingEvent,
)

logger = logging.getLogger(__name__)

EmitCallback = Callable[[DeliveryEvent], None]
ErrorCallback = Callable[[BaseException], None]


def _parse_created_at(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class Poller:
    def __init__(
        self,
        http: httpx.AsyncClient,
        emit: EmitCallback,
        *,
        interval: float,
        on_error: ErrorCallback | None = None,
        pong_delay: float = 0.05,
        clock: Clock | None = None,
        chat_id: str | None = None,
    ) -> None:
        self._http = http
        self._emit = emit
        self._on_error = on_error
        self._interval = interval
        self._pong_delay = pong_delay
        self._clock = clock or SystemClock()
        self._pending: set[asyncio.Task[None]] = set()
        self._stopped = False
        self.chat_id = chat_id
        self.last_seen: datetime | None = None

    @property
    def interval(self) -> float:
        return self._interval

    def announce(self) -> None:
        """Tell consumers the polling "connection" is up."""
        logger.info("Starting polling as fallback")
        self._emit(ConnectionEstablishedEvent(timestamp=self._stamp()))

    async def run(self) -> None:
        """Poll the active chat every ``interval`` seconds until cancelled."""
        logger.info("Polling every %.2fs", self._interval)
        while not self._stopped:
            await asyncio.sleep(self._interval)
            if self._stopped:
                break
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Polling tick failed")

    async def poll_once(self) -> int:
        """Fetch the active chat once. Returns the number of new messages seen."""
        chat_id = self.chat_id
        if not chat_id:
            return 0

        now = self._clock.now()
        try:
            resp = await self._http.get(
                f"/api/chats/{chat_id}", params={"t": epoch_millis(self._clock)},
            )
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Polling chat %s failed: %s", chat_id, exc)
            return 0

        messages = body.get("messages") if isinstance(body, dict) else None
        if not isinstance(messages, list):
            return 0

        fresh = [m for m in messages if isinstance(m, dict) and self._is_new(m)]
        if not fresh:
            return 0

        self._emit(TypingEvent(status=TypingStatus.STARTED, chat_id=chat_id, timestamp=now.isoformat()))
        for message in fresh:
            if message.get("role") == MessageRole.ASSISTANT:
                self._emit(
                    TypingEvent(
                        status=TypingStatus.FINISHED,
                        chat_id=chat_id,
                        message_id=str(message.get("id")),
                        timestamp=now.isoformat(),
                    )
                )
        self.last_seen = now
        return len(fresh)

    def join(self, chat_id: str) -> None:
        logger.info("Joining chat %s via polling API", chat_id)
        self.chat_id = chat_id
        self._emit(JoinedEvent(chat_id=chat_id, timestamp=self._stamp()))

    async def send(self, event: DeliveryEvent) -> None:
        """Answer control messages locally, post everything else over HTTP."""
        if event.type == EventType.PING:
            task = asyncio.create_task(self._delayed_pong(), name="chat-poller-pong")
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return

        if event.type == EventType.JOIN:
            self.chat_id = event.chat_id
            logger.debug("Join for %s handled locally", event.chat_id)
            return

        await self.post_event(event)

    async def post_event(self, event: DeliveryEvent) -> bool:
        chat_id = self.chat_id
        if not chat_id:
            logger.warning("Cannot send %s, not joined to any chat", event.type)
            return False

        try:
            resp = await self._http.post(
                f"/api/chats/{chat_id}/ws-message",
                json=event.model_dump(mode="json", by_alias=True, exclude_none=True),
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Sending %s via HTTP API failed: %s", event.type, exc)
            if self._on_error is not None:
                self._on_error(exc)
            return False
        return True

    def stop(self) -> None:
        self._stopped = True
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

    async def _delayed_pong(self) -> None:
        await asyncio.sleep(self._pong_delay)
        self._emit(PongEvent(timestamp=self._stamp()))

    def _is_new(self, message: dict[str, Any]) -> bool:
        if self.last_seen is None:
            return True
        created = _parse_created_at(message.get("createdAt"))
        if created is None:
            return True
        if created.tzinfo is None:
            created = created.replace(tzinfo=self.last_seen.tzinfo)
        return created > self.last_seen

    def _stamp(self) -> str:
        return self._clock.now().isoformat()
