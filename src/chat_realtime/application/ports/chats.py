from __future__ import annotations

from typing import Protocol

from chat_realtime.domain.entities.chat import Chat


class ChatReader(Protocol):
    async def get_chat(self, chat_id: str, *, limit: int = 200) -> Chat | None:
        """Return the chat with its latest ``limit`` messages, oldest first."""
        ...
