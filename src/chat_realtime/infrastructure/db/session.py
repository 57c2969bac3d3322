"""Async engine for the chat store. The realtime service only reads from it."""
from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from chat_realtime.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def ping_database() -> None:
    """Round-trip ``SELECT 1``; raises whatever the driver raises."""
    async with AsyncSessionLocal() as session:
        await session.execute(text("SELECT 1"))
