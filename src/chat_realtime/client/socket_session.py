"""One persistent socket connection and its lifecycle callbacks."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol
from urllib.parse import urlsplit, urlunsplit

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, InvalidURI, WebSocketException

from chat_realtime.application.exceptions import (
    MalformedEventError,
    SendFailedError,
    TransportUnsupportedError,
)
from chat_realtime.domain.value_objects.enums import ConnectionStatus
from chat_realtime.infrastructure.ws.protocol import DeliveryEvent, encode_event, parse_event

logger = logging.getLogger(__name__)

_SCHEMES = {"http": "ws", "https": "wss", "ws": "ws", "wss": "wss"}

ConnectFactory = Callable[[str], Awaitable[Any]]


def socket_url(origin: str, path: str = "/ws") -> str:
    """Map a page origin to its socket endpoint (``https`` -> ``wss``)."""
    parts = urlsplit(origin)
    scheme = _SCHEMES.get(parts.scheme.lower())
    if scheme is None or not parts.netloc:
        raise TransportUnsupportedError(f"no socket transport for origin {origin!r}")
    return urlunsplit((scheme, parts.netloc, path, "", ""))


class SocketListener(Protocol):
    async def on_open(self) -> None: ...

    async def on_event(self, event: DeliveryEvent) -> None: ...

    async def on_error(self, exc: BaseException) -> None: ...

    async def on_close(self) -> None: ...


class SocketSession:
    """Wraps a single connection attempt and the reader that follows it.

    Failures never propagate out of :meth:`establish`; they become status
    changes plus listener callbacks. :meth:`close` is the consumer's manual
    disconnect and deliberately skips ``on_close`` so no reconnect is
    scheduled for it.
    """

    def __init__(
        self,
        url: str,
        listener: SocketListener,
        *,
        connect: ConnectFactory = ws_connect,
    ) -> None:
        self._url = url
        self._listener = listener
        self._connect = connect
        self._conn: Any = None
        self._reader: asyncio.Task[None] | None = None
        self._closing = False
        self.status = ConnectionStatus.CLOSED
        self.unsupported = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_open(self) -> bool:
        return self.status is ConnectionStatus.OPEN

    async def establish(self) -> None:
        self._closing = False
        self.status = ConnectionStatus.CONNECTING
        logger.info("Connecting to %s", self._url)

        try:
            conn = await self._connect(self._url)
        except InvalidURI as exc:
            self.unsupported = True
            self.status = ConnectionStatus.ERROR
            await self._listener.on_error(TransportUnsupportedError(str(exc)))
            return
        except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
            logger.warning("Socket connect to %s failed: %s", self._url, exc)
            self.status = ConnectionStatus.ERROR
            await self._listener.on_error(exc)
            self.status = ConnectionStatus.CLOSED
            await self._listener.on_close()
            return

        self._conn = conn
        self.status = ConnectionStatus.OPEN
        self._reader = asyncio.create_task(self._read_loop(conn), name="chat-socket-reader")
        await self._listener.on_open()

    async def send(self, event: DeliveryEvent) -> bool:
        """Transmit ``event`` if open. Returns False without sending otherwise."""
        if not self.is_open or self._conn is None:
            return False
        try:
            await self._conn.send(encode_event(event))
        except (ConnectionClosed, OSError) as exc:
            raise SendFailedError(str(exc)) from exc
        return True

    async def close(self) -> None:
        self._closing = True
        conn, self._conn = self._conn, None
        if conn is not None:
            self.status = ConnectionStatus.CLOSING
            try:
                await conn.close()
            except (ConnectionClosed, OSError):
                logger.debug("Socket already gone while closing", exc_info=True)

        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        self.status = ConnectionStatus.CLOSED

    async def _read_loop(self, conn: Any) -> None:
        try:
            async for raw in conn:
                try:
                    event = parse_event(raw)
                except MalformedEventError as exc:
                    logger.warning("Dropping malformed socket payload: %s", exc)
                    continue
                await self._listener.on_event(event)
        except ConnectionClosed as exc:
            if not self._closing:
                logger.warning("Socket closed abnormally: %s", exc)
                self.status = ConnectionStatus.ERROR
                await self._listener.on_error(exc)
        except Exception as exc:
            if not self._closing:
                logger.exception("Socket reader failed")
                self.status = ConnectionStatus.ERROR
                await self._listener.on_error(exc)

        if self._closing:
            return
        logger.info("Socket to %s closed", self._url)
        self._conn = None
        self._reader = None
        self.status = ConnectionStatus.CLOSED
        await self._listener.on_close()
