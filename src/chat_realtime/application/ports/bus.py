from __future__ import annotations

from typing import Protocol

from chat_realtime.infrastructure.ws.protocol import DeliveryEvent


class EventPublisher(Protocol):
    async def publish(self, channel: str, event: DeliveryEvent, *, raw: str | None = None) -> None: ...
