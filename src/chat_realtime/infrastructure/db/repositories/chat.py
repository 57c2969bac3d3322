from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.domain.entities.chat import Chat, ChatMessage
from chat_realtime.infrastructure.db.models.chat import ChatModel
from chat_realtime.infrastructure.db.models.message import MessageModel


def _to_message(model: MessageModel) -> ChatMessage:
    return ChatMessage(
        id=model.id,
        chat_id=model.chat_id,
        role=model.role,
        content=model.content,
        created_at=model.created_at,
    )


class ChatReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_chat(self, chat_id: str, *, limit: int = 200) -> Chat | None:
        chat = await self._session.get(ChatModel, chat_id)
        if chat is None:
            return None

        stmt = (
            select(MessageModel)
            .where(MessageModel.chat_id == chat_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        rows = list(reversed(result.scalars().all()))
        return Chat(
            id=chat.id,
            title=chat.title,
            created_at=chat.created_at,
            messages=[_to_message(m) for m in rows],
        )
