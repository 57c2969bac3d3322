"""Redis Pub/Sub bridge so every server process fans out every chat event."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from chat_realtime.application.exceptions import MalformedEventError
from chat_realtime.infrastructure.bus.serializer import deserialize_event, serialize_event
from chat_realtime.infrastructure.ws.protocol import DeliveryEvent

logger = logging.getLogger(__name__)

OnEventCallback = Callable[[DeliveryEvent, str | None], Coroutine[Any, Any, Any]]


class RedisFanoutBus:
    """Publishes relayed events and hands everything heard on the channel to ``on_event``.

    Implements :class:`~chat_realtime.application.ports.bus.EventPublisher`.
    The publishing process hears its own messages too, which is how its local
    sockets get them. A dropped subscription is re-established after
    ``retry_delay`` seconds; events published meanwhile are lost.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        on_event: OnEventCallback,
        *,
        retry_delay: float = 1.0,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._on_event = on_event
        self._retry_delay = retry_delay
        self._listener: asyncio.Task[None] | None = None

    @property
    def channel(self) -> str:
        return self._channel

    async def publish(self, channel: str, event: DeliveryEvent, *, raw: str | None = None) -> None:
        receivers = await self._redis.publish(channel, serialize_event(event, raw=raw))
        logger.debug("Published %s to %s (%d subscribers)", event.type, channel, receivers)

    async def start(self) -> None:
        if self._listener is not None:
            return
        self._listener = asyncio.create_task(self._listen(), name="redis-fanout-listener")
        logger.info("Fan-out bus listening on channel=%s", self._channel)

    async def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is None:
            return
        listener.cancel()
        try:
            await listener
        except asyncio.CancelledError:
            pass
        logger.info("Fan-out bus stopped")

    async def _listen(self) -> None:
        while True:
            try:
                await self._consume()
            except RedisError as exc:
                logger.warning(
                    "Lost subscription to %s (%s), retrying in %.1fs",
                    self._channel, exc, self._retry_delay,
                )
                await asyncio.sleep(self._retry_delay)

    async def _consume(self) -> None:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] == "message":
                    await self._handle(message["data"])
        finally:
            await pubsub.aclose()

    async def _handle(self, data: str | bytes) -> None:
        try:
            event, raw = deserialize_event(data)
        except (ValueError, KeyError, TypeError, MalformedEventError) as exc:
            logger.warning("Dropping malformed bus message: %s", exc)
            return
        try:
            await self._on_event(event, raw)
        except Exception:
            logger.exception("Local fan-out of %s failed", event.type)
