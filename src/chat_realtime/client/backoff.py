"""Bounded reconnection with exponential backoff."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RetryDecision:
    retry: bool
    delay: float = 0.0


@dataclass(slots=True)
class ReconnectionPolicy:
    """Counts consecutive socket failures for one logical chat session.

    While ``attempts <= max_attempts`` each failure yields a retry after
    ``min(base_delay * 2 ** (attempts - 1), max_delay)`` seconds. The failure
    after that exhausts the policy for good: the caller switches to polling
    and no further retry is ever offered.
    """

    base_delay: float
    max_delay: float
    max_attempts: int
    attempts: int = field(default=0, init=False)
    exhausted: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be non-negative")

    @classmethod
    def for_socket_hook(cls) -> ReconnectionPolicy:
        return cls(base_delay=2.0, max_delay=10.0, max_attempts=3)

    @classmethod
    def for_chat_session(cls) -> ReconnectionPolicy:
        return cls(base_delay=3.0, max_delay=30.0, max_attempts=5)

    def delay_for(self, attempt: int) -> float:
        if attempt < 1:
            raise ValueError("attempt numbers start at 1")
        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)

    def record_failure(self) -> RetryDecision:
        if self.exhausted:
            return RetryDecision(retry=False)

        self.attempts += 1
        if self.attempts > self.max_attempts:
            self.exhausted = True
            logger.info("Max reconnect attempts (%d) reached", self.max_attempts)
            return RetryDecision(retry=False)

        delay = self.delay_for(self.attempts)
        logger.info(
            "Reconnect attempt %d/%d in %.2fs", self.attempts, self.max_attempts, delay,
        )
        return RetryDecision(retry=True, delay=delay)

    def reset(self) -> None:
        self.attempts = 0
