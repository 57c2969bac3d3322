"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

import redis.asyncio as aioredis
from fastapi import Depends
from starlette.requests import HTTPConnection

from chat_realtime.application.ports.chats import ChatReader
from chat_realtime.infrastructure.db.repositories.chat import ChatReaderRepo
from chat_realtime.infrastructure.db.session import AsyncSessionLocal
from chat_realtime.infrastructure.ws.manager import FanoutHub
from chat_realtime.services.relay_service import EventRelay


async def get_chat_reader() -> AsyncIterator[ChatReader]:
    async with AsyncSessionLocal() as session:
        yield ChatReaderRepo(session)


ChatReaderDep = Annotated[ChatReader, Depends(get_chat_reader)]


def get_hub(conn: HTTPConnection) -> FanoutHub:
    return conn.app.state.hub


def get_relay(conn: HTTPConnection) -> EventRelay:
    return conn.app.state.relay


HubDep = Annotated[FanoutHub, Depends(get_hub)]
RelayDep = Annotated[EventRelay, Depends(get_relay)]


def get_redis(conn: HTTPConnection) -> aioredis.Redis | None:
    return conn.app.state.redis


RedisDep = Annotated[aioredis.Redis | None, Depends(get_redis)]
