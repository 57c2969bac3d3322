from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MessageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    chat_id: str = Field(alias="chatId")
    role: str
    content: str
    created_at: datetime = Field(alias="createdAt")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str | None
    created_at: datetime = Field(alias="createdAt")
    messages: list[MessageResponse]


class AcceptedResponse(BaseModel):
    status: str = "accepted"
