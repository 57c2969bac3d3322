"""Routes inbound chat events to the fan-out hub(s)."""
from __future__ import annotations

import logging

from redis.exceptions import RedisError

from chat_realtime.application.ports.bus import EventPublisher
from chat_realtime.infrastructure.ws.manager import FanoutHub
from chat_realtime.infrastructure.ws.protocol import DeliveryEvent

logger = logging.getLogger(__name__)


class EventRelay:
    """Publishes to Redis when configured, otherwise straight to the local hub.

    With Redis every process (this one included) receives the event back
    through its subscriber, so the local hub is never called twice. When a
    publish fails the event still reaches this process's sockets.
    """

    def __init__(
        self,
        hub: FanoutHub,
        publisher: EventPublisher | None = None,
        channel: str = "chat.fanout",
    ) -> None:
        self._hub = hub
        self._publisher = publisher
        self._channel = channel

    @property
    def hub(self) -> FanoutHub:
        return self._hub

    def use_publisher(self, publisher: EventPublisher | None, channel: str | None = None) -> None:
        self._publisher = publisher
        if channel is not None:
            self._channel = channel

    async def relay(self, event: DeliveryEvent, raw: str | None = None) -> None:
        if self._publisher is not None:
            try:
                await self._publisher.publish(self._channel, event, raw=raw)
                return
            except RedisError as exc:
                logger.warning(
                    "Publishing %s to %s failed (%s), delivering locally only",
                    event.type, self._channel, exc,
                )
        sent = await self._hub.broadcast(event, raw)
        logger.debug("Relayed %s to %d sockets", event.type, sent)

    async def deliver(self, event: DeliveryEvent, raw: str | None = None) -> None:
        """Subscriber callback: hand a bus event to this process's sockets."""
        await self._hub.broadcast(event, raw)
