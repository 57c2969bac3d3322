"""Import all models so Base.metadata sees every table."""
from chat_realtime.infrastructure.db.models.chat import ChatModel
from chat_realtime.infrastructure.db.models.message import MessageModel

__all__ = [
    "ChatModel",
    "MessageModel",
]
