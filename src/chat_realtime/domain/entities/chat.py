from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class ChatMessage:
    id: int
    chat_id: str
    role: str
    content: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Chat:
    id: str
    title: str | None
    created_at: datetime
    messages: list[ChatMessage] = field(default_factory=list)
