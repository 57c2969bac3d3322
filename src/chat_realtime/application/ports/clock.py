"""Time source for the poller: event stamps and the cache-busting ``t`` query."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def epoch_millis(clock: Clock) -> int:
    return int(clock.now().timestamp() * 1000)
