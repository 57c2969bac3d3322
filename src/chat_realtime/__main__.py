"""Entrypoint: python -m chat_realtime"""
from __future__ import annotations

import uvicorn

from chat_realtime.api.middleware.correlation_id import configure_logging
from chat_realtime.config import settings


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "chat_realtime.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
