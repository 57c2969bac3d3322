from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_realtime.api.middleware.correlation_id import CorrelationIdMiddleware
from chat_realtime.api.v1.routers import chats, health, ws
from chat_realtime.application.exceptions import AppError, NotFoundError, ValidationError
from chat_realtime.config import settings
from chat_realtime.infrastructure.bus.redis_pubsub import RedisFanoutBus
from chat_realtime.infrastructure.ws.manager import FanoutHub
from chat_realtime.services.relay_service import EventRelay

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    bus: RedisFanoutBus | None = None
    relay: EventRelay = app.state.relay

    if settings.REDIS_URL:
        app.state.redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        logger.info("Redis connection pool created")
        bus = RedisFanoutBus(app.state.redis, settings.REDIS_PUBSUB_CHANNEL, relay.deliver)
        await bus.start()
        relay.use_publisher(bus, bus.channel)
    else:
        logger.info("REDIS_URL not set, fan-out limited to this process")

    yield

    app.state.hub.close()
    if bus is not None:
        relay.use_publisher(None)
        await bus.stop()
        await app.state.redis.aclose()
        app.state.redis = None
        logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Realtime Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    hub = FanoutHub(
        heartbeat_seconds=settings.WS_HEARTBEAT_SECONDS,
        scope=settings.HUB_BROADCAST_SCOPE,
    )
    app.state.hub = hub
    app.state.relay = EventRelay(hub, channel=settings.REDIS_PUBSUB_CHANNEL)
    app.state.redis = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(chats.router)
    app.include_router(ws.router)

    return app


_STATUS_BY_ERROR: dict[type[AppError], int] = {
    NotFoundError: 404,
    ValidationError: 422,
}


def _register_exception_handlers(app: FastAPI) -> None:
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        status = _STATUS_BY_ERROR.get(type(exc), 400)
        return JSONResponse(status_code=status, content={"detail": exc.detail})

    for error in _STATUS_BY_ERROR:
        app.add_exception_handler(error, _app_error)
