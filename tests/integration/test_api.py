"""Integration smoke tests for the HTTP and socket surface (chat store overridden)."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from chat_realtime.api.deps import get_chat_reader
from chat_realtime.app import create_app
from tests.conftest import FakeChatReader, make_chat


@pytest.fixture
def app_with_reader():
    app = create_app()
    reader = FakeChatReader()
    reader._store["chat-1"] = make_chat(
        "chat-1", messages=[("user", "hello"), ("assistant", "hi there")],
    )

    async def _override():
        yield reader

    app.dependency_overrides[get_chat_reader] = _override
    return app, reader


@pytest.fixture
def client(app_with_reader):
    app, _ = app_with_reader
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "connections": 0}


def test_get_chat_returns_messages(client):
    resp = client.get("/api/chats/chat-1", params={"t": 1714564800000})
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == "chat-1"
    assert [m["role"] for m in body["messages"]] == ["user", "assistant"]
    assert body["messages"][1]["chatId"] == "chat-1"
    assert "createdAt" in body["messages"][0]


def test_get_unknown_chat_is_404(client):
    resp = client.get("/api/chats/missing")
    assert resp.status_code == 404
    assert "missing" in resp.json()["detail"]


def test_post_ws_message_accepted(client):
    resp = client.post(
        "/api/chats/chat-1/ws-message",
        json={"type": "chat", "message": "from polling"},
    )
    assert resp.status_code == 202
    assert resp.json() == {"status": "accepted"}


def test_post_ws_message_unknown_chat_is_404(client):
    resp = client.post("/api/chats/missing/ws-message", json={"type": "chat"})
    assert resp.status_code == 404


def test_post_ws_message_invalid_event_is_422(client):
    resp = client.post("/api/chats/chat-1/ws-message", json={"type": "no-such-type"})
    assert resp.status_code == 422


def test_post_ws_message_reaches_chat_sockets(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "join", "chatId": "chat-1"})
        assert ws.receive_json()["type"] == "joined"

        resp = client.post(
            "/api/chats/chat-1/ws-message",
            json={"type": "typing", "status": "started"},
        )
        assert resp.status_code == 202

        event = ws.receive_json()
        assert event["type"] == "typing"
        assert event["status"] == "started"
        assert event["chatId"] == "chat-1"


def test_ws_welcome_and_ping(client):
    with client.websocket_connect("/ws") as ws:
        welcome = ws.receive_json()
        assert welcome["type"] == "connection"
        assert welcome["message"] == "Welcome to WebSocket!"

        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"


def test_ws_connection_is_counted(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        assert client.get("/healthz").json()["connections"] == 1


def test_ws_join_acknowledged(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "join", "chatId": "chat-1"})
        joined = ws.receive_json()
        assert joined == {"type": "joined", "chatId": "chat-1", "timestamp": joined["timestamp"]}


def test_ws_invalid_payload_keeps_connection(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_text("not json")
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["message"] == "invalid_payload"

        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"


def test_ws_chat_event_without_chat_id_is_rejected(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "chat", "message": "where does this go?"})
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["message"] == "chatId required"


def test_ws_unsupported_type(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"type": "joined", "chatId": "chat-1"})
        error = ws.receive_json()
        assert error["message"] == "unsupported_type"
        assert error["data"] == {"type": "joined"}


def test_ws_broadcast_is_scoped_to_chat(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob, \
            client.websocket_connect("/ws") as carol:
        for ws in (alice, bob, carol):
            ws.receive_json()
        alice.send_json({"type": "join", "chatId": "chat-1"})
        alice.receive_json()
        bob.send_json({"type": "join", "chatId": "chat-1"})
        bob.receive_json()
        carol.send_json({"type": "join", "chatId": "chat-2"})
        carol.receive_json()

        raw = '{"type": "typing", "status": "finished", "chatId": "chat-1", "messageId": "2"}'
        alice.send_text(raw)

        assert bob.receive_text() == raw
        assert alice.receive_text() == raw

        # a socket in another chat only sees its own traffic
        carol.send_json({"type": "ping"})
        assert carol.receive_json()["type"] == "pong"
