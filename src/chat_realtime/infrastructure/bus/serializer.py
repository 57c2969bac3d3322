from __future__ import annotations

import json
from typing import Any

from chat_realtime.infrastructure.ws.protocol import DeliveryEvent, parse_event


def serialize_event(event: DeliveryEvent, *, raw: str | None = None) -> str:
    """Wrap an event for the bus, keeping the sender's original text if known."""
    envelope: dict[str, Any] = {
        "event": event.model_dump(mode="json", by_alias=True, exclude_none=True),
    }
    if raw is not None:
        envelope["raw"] = raw
    return json.dumps(envelope)


def deserialize_event(raw: str | bytes) -> tuple[DeliveryEvent, str | None]:
    data = json.loads(raw)
    return parse_event(data["event"]), data.get("raw")
