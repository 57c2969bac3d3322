"""Consumer-facing realtime session: socket first, polling when it has to be.

A :class:`RealtimeSession` is created, started and closed explicitly by its
owner (use it as an async context manager), so there is no process-wide
socket shared between consumers.

Mode switches go through one timer slot (reconnect delay or poll loop),
cancelled before the next one starts, so only one transport is ever
delivering events.
"""
from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Any, Callable, Coroutine, Mapping, Self

import httpx

from chat_realtime.application.exceptions import SendFailedError, TransportUnsupportedError
from chat_realtime.application.ports.clock import Clock
from chat_realtime.client.backoff import ReconnectionPolicy
from chat_realtime.client.poller import Poller
from chat_realtime.client.selector import detect_deployment, select_initial_mode
from chat_realtime.client.socket_session import ConnectFactory, SocketSession, socket_url
from chat_realtime.config import client_settings
from chat_realtime.domain.value_objects.enums import (
    ConnectionStatus,
    Deployment,
    TransportMode,
)
from chat_realtime.infrastructure.ws.protocol import DeliveryEvent, JoinEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DeliveryEvent], None]
StatusHandler = Callable[[ConnectionStatus], None]


class RealtimeSession:
    def __init__(
        self,
        origin: str | None = None,
        *,
        chat_id: str | None = None,
        policy: ReconnectionPolicy | None = None,
        http: httpx.AsyncClient | None = None,
        deployment: Deployment | None = None,
        env: Mapping[str, str] | None = None,
        connect: ConnectFactory | None = None,
        clock: Clock | None = None,
        ws_path: str = "/ws",
    ) -> None:
        self._origin = origin or client_settings.ORIGIN
        self._policy = policy or ReconnectionPolicy(
            base_delay=client_settings.RECONNECT_BASE_DELAY,
            max_delay=client_settings.RECONNECT_MAX_DELAY,
            max_attempts=client_settings.MAX_RECONNECT_ATTEMPTS,
        )
        self._deployment = deployment or detect_deployment(self._origin, env)
        self._connect = connect
        self._ws_path = ws_path

        self._owns_http = http is None
        self._http = http or self._build_http()
        self._poller = Poller(
            self._http,
            self._dispatch,
            interval=self._policy.base_delay,
            on_error=self._on_poller_error,
            pong_delay=client_settings.PONG_DELAY,
            clock=clock,
            chat_id=chat_id,
        )

        self._mode = select_initial_mode(self._deployment)
        self._socket: SocketSession | None = None
        self._timer: asyncio.Task[None] | None = None
        self._status = ConnectionStatus.CLOSED
        self._event_handlers: list[EventHandler] = []
        self._status_handlers: list[StatusHandler] = []
        self._started = False
        self._closed = False

    @property
    def mode(self) -> TransportMode:
        return self._mode

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def chat_id(self) -> str | None:
        return self._poller.chat_id

    @property
    def policy(self) -> ReconnectionPolicy:
        return self._policy

    @property
    def active_timer(self) -> asyncio.Task[None] | None:
        """The pending reconnect delay or the running poll loop, if any."""
        if self._timer is None or self._timer.done():
            return None
        return self._timer

    def subscribe(
        self,
        on_event: EventHandler | None = None,
        on_status: StatusHandler | None = None,
    ) -> Callable[[], None]:
        if on_event is not None:
            self._event_handlers.append(on_event)
        if on_status is not None:
            self._status_handlers.append(on_status)

        def unsubscribe() -> None:
            if on_event is not None and on_event in self._event_handlers:
                self._event_handlers.remove(on_event)
            if on_status is not None and on_status in self._status_handlers:
                self._status_handlers.remove(on_status)

        return unsubscribe

    async def start(self) -> None:
        if self._started:
            return
        self._started = True

        if self._mode is TransportMode.POLLING:
            logger.info("Starting in polling mode (%s)", self._deployment)
            self._start_polling()
            if self.chat_id:
                self._poller.join(self.chat_id)
            return

        try:
            url = socket_url(self._origin, self._ws_path)
        except TransportUnsupportedError as exc:
            logger.warning("%s, falling back to polling", exc)
            self._fallback_to_polling()
            return

        kwargs: dict[str, Any] = {}
        if self._connect is not None:
            kwargs["connect"] = self._connect
        self._socket = SocketSession(url, self, **kwargs)
        self._set_status(ConnectionStatus.CONNECTING)
        await self._socket.establish()

    async def join_chat(self, chat_id: str) -> None:
        if self._closed:
            return
        if self._mode is TransportMode.POLLING:
            self._poller.join(chat_id)
            return

        self._poller.chat_id = chat_id
        if self._socket is not None and self._socket.is_open:
            await self._send_over_socket(JoinEvent(chat_id=chat_id))

    async def send(self, event: DeliveryEvent) -> None:
        """Deliver ``event`` over whichever transport can take it right now."""
        if self._closed:
            logger.warning("Session closed, dropping outbound %s", event.type)
            return

        if self._mode is TransportMode.SOCKET and self._socket is not None and self._socket.is_open:
            await self._send_over_socket(event)
            return

        await self._poller.send(event)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        self._poller.stop()
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task() and not timer.done():
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass
        if self._socket is not None:
            await self._socket.close()
            self._socket = None
        if self._owns_http:
            await self._http.aclose()

        self._set_status(ConnectionStatus.CLOSED, force=True)
        self._event_handlers.clear()
        self._status_handlers.clear()
        logger.info("Realtime session closed")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def on_open(self) -> None:
        self._set_status(ConnectionStatus.OPEN)
        self._policy.reset()
        if self.chat_id:
            await self._send_over_socket(JoinEvent(chat_id=self.chat_id))

    async def on_event(self, event: DeliveryEvent) -> None:
        if self._mode is TransportMode.SOCKET:
            self._dispatch(event)

    async def on_error(self, exc: BaseException) -> None:
        if self._closed:
            return
        self._set_status(ConnectionStatus.ERROR)
        if isinstance(exc, TransportUnsupportedError):
            logger.warning("Socket transport unsupported (%s), switching to polling", exc)
            await self._demote()

    async def on_close(self) -> None:
        if self._closed or self._mode is TransportMode.POLLING:
            return
        self._set_status(ConnectionStatus.CLOSED)

        decision = self._policy.record_failure()
        if decision.retry:
            self._set_timer(self._reconnect_after(decision.delay), name="chat-reconnect")
            return

        logger.info("Switching to polling mode after %d failed attempts", self._policy.max_attempts)
        await self._demote()

    def _build_http(self) -> httpx.AsyncClient:
        headers = {}
        if client_settings.AUTH_TOKEN:
            headers["Authorization"] = f"Bearer {client_settings.AUTH_TOKEN}"
        return httpx.AsyncClient(
            base_url=self._origin,
            headers=headers,
            timeout=client_settings.HTTP_TIMEOUT,
        )

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._closed or self._socket is None or self._mode is not TransportMode.SOCKET:
            return
        self._set_status(ConnectionStatus.CONNECTING)
        await self._socket.establish()

    async def _send_over_socket(self, event: DeliveryEvent) -> None:
        assert self._socket is not None
        try:
            if await self._socket.send(event):
                return
        except SendFailedError as exc:
            logger.warning("Socket send of %s failed (%s), using HTTP once", event.type, exc)
        await self._poller.send(event)

    async def _demote(self) -> None:
        """Permanently leave socket mode for this session."""
        socket, self._socket = self._socket, None
        if socket is not None:
            await socket.close()
        self._fallback_to_polling()

    def _fallback_to_polling(self) -> None:
        self._mode = TransportMode.POLLING
        self._start_polling()

    def _start_polling(self) -> None:
        self._set_status(ConnectionStatus.OPEN)
        self._poller.announce()
        self._set_timer(self._poller.run(), name="chat-poller")

    def _set_timer(self, coro: Coroutine[Any, Any, None], *, name: str) -> None:
        self._cancel_timer()
        self._timer = asyncio.create_task(coro, name=name)

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task() and not timer.done():
            timer.cancel()

    def _on_poller_error(self, exc: BaseException) -> None:
        self._set_status(ConnectionStatus.ERROR)

    def _set_status(self, status: ConnectionStatus, *, force: bool = False) -> None:
        if status is self._status and not force:
            return
        self._status = status
        logger.debug("Realtime status -> %s", status)
        for handler in list(self._status_handlers):
            try:
                handler(status)
            except Exception:
                logger.exception("Status handler failed")

    def _dispatch(self, event: DeliveryEvent) -> None:
        if self._closed:
            return
        for handler in list(self._event_handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler failed for %s", event.type)
