"""Shared test fixtures."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import pytest
from starlette.websockets import WebSocketState

from chat_realtime.domain.entities.chat import Chat, ChatMessage
from chat_realtime.infrastructure.ws.protocol import DeliveryEvent

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_chat(
    chat_id: str = "chat-1",
    *,
    messages: list[tuple[str, str]] | None = None,
    start: datetime = T0,
) -> Chat:
    return Chat(
        id=chat_id,
        title="Test chat",
        created_at=start,
        messages=[
            ChatMessage(
                id=i + 1,
                chat_id=chat_id,
                role=role,
                content=content,
                created_at=start + timedelta(seconds=i),
            )
            for i, (role, content) in enumerate(messages or [])
        ],
    )


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@dataclass
class FixedClock:
    current: datetime = T0

    def now(self) -> datetime:
        return self.current


@dataclass
class FakeChatReader:
    _store: dict[str, Chat] = field(default_factory=dict)

    async def get_chat(self, chat_id: str, *, limit: int = 200) -> Chat | None:
        return self._store.get(chat_id)


_CLOSE = object()


class FakeConnection:
    """Client connection double: feed it frames, read what was sent."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self.fail_send: BaseException | None = None
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()

    def feed(self, raw: str) -> None:
        self._inbox.put_nowait(raw)

    def drop(self, exc: BaseException | None = None) -> None:
        """Peer goes away: clean close, or ``exc`` raised from the iterator."""
        self._inbox.put_nowait(exc if exc is not None else _CLOSE)

    async def send(self, text: str) -> None:
        if self.fail_send is not None:
            raise self.fail_send
        self.sent.append(text)

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(_CLOSE)

    def __aiter__(self) -> FakeConnection:
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeConnector:
    """Stands in for ``websockets`` connect: replays queued outcomes."""

    def __init__(self, *outcomes: FakeConnection | BaseException) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[str] = []

    async def __call__(self, url: str) -> FakeConnection:
        self.calls.append(url)
        outcome = self.outcomes.pop(0) if self.outcomes else OSError("connection refused")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@dataclass
class RecordingListener:
    calls: list[str] = field(default_factory=list)
    events: list[DeliveryEvent] = field(default_factory=list)
    errors: list[BaseException] = field(default_factory=list)

    async def on_open(self) -> None:
        self.calls.append("open")

    async def on_event(self, event: DeliveryEvent) -> None:
        self.calls.append("event")
        self.events.append(event)

    async def on_error(self, exc: BaseException) -> None:
        self.calls.append("error")
        self.errors.append(exc)

    async def on_close(self) -> None:
        self.calls.append("close")


class FakeWebSocket:
    """Server-side socket double for hub tests."""

    def __init__(self, *, fail: bool = False) -> None:
        self.accepted = False
        self.sent: list[str] = []
        self.fail = fail
        self.client_state = WebSocketState.CONNECTING

    async def accept(self) -> None:
        self.accepted = True
        self.client_state = WebSocketState.CONNECTED

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(text)


@dataclass
class FakeHttp:
    """Collects requests and answers through an ``httpx.MockTransport``."""

    responder: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(200, json={})
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def client(self, base_url: str = "http://chat.example.com") -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url=base_url)


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(current=T0 + timedelta(minutes=5))
