"""Follow a chat from the terminal: python -m chat_realtime.client ORIGIN --chat ID"""
from __future__ import annotations

import argparse
import asyncio
import logging

from chat_realtime.api.middleware.correlation_id import configure_logging
from chat_realtime.client.session import RealtimeSession
from chat_realtime.config import client_settings
from chat_realtime.domain.value_objects.enums import ConnectionStatus
from chat_realtime.infrastructure.ws.protocol import DeliveryEvent, encode_event

logger = logging.getLogger("chat_realtime.client")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="python -m chat_realtime.client")
    parser.add_argument("origin", nargs="?", default=client_settings.ORIGIN)
    parser.add_argument("--chat", dest="chat_id", default=None, help="chat to follow")
    parser.add_argument("--log-level", default="info")
    return parser.parse_args(argv)


async def follow(origin: str, chat_id: str | None) -> None:
    def on_event(event: DeliveryEvent) -> None:
        logger.info("event %s", encode_event(event))

    def on_status(status: ConnectionStatus) -> None:
        logger.info("status %s", status)

    session = RealtimeSession(origin, chat_id=chat_id)
    session.subscribe(on_event, on_status)
    async with session:
        await asyncio.Event().wait()


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    configure_logging(args.log_level)
    try:
        asyncio.run(follow(args.origin, args.chat_id))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
