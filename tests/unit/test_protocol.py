from __future__ import annotations

import json

import pytest

from chat_realtime.application.exceptions import MalformedEventError
from chat_realtime.domain.value_objects.enums import TypingStatus
from chat_realtime.infrastructure.bus.serializer import deserialize_event, serialize_event
from chat_realtime.infrastructure.ws.protocol import (
    ChatEvent,
    JoinEvent,
    PongEvent,
    TypingEvent,
    encode_event,
    parse_event,
)


def test_parse_typing_event_with_wire_names():
    event = parse_event(
        '{"type": "typing", "status": "finished", "chatId": "c1", "messageId": "7"}'
    )

    assert isinstance(event, TypingEvent)
    assert event.status is TypingStatus.FINISHED
    assert event.chat_id == "c1"
    assert event.message_id == "7"


def test_parse_accepts_dicts():
    event = parse_event({"type": "join", "chatId": "c1"})

    assert isinstance(event, JoinEvent)
    assert event.chat_id == "c1"


def test_encode_uses_wire_names_and_drops_unset_fields():
    raw = encode_event(TypingEvent(status=TypingStatus.STARTED, chat_id="c1"))

    assert json.loads(raw) == {"type": "typing", "status": "started", "chatId": "c1"}


def test_encode_pong_is_minimal():
    assert json.loads(encode_event(PongEvent())) == {"type": "pong"}


def test_chat_event_keeps_unknown_fields():
    event = parse_event('{"type": "chat", "chatId": "c1", "data": {"text": "hi"}, "sender": "bob"}')

    assert isinstance(event, ChatEvent)
    assert json.loads(encode_event(event)) == {
        "type": "chat",
        "chatId": "c1",
        "data": {"text": "hi"},
        "sender": "bob",
    }


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2, 3]",
        '"ping"',
        '{"data": 1}',
        '{"type": "teleport"}',
        '{"type": "typing", "status": "thinking"}',
        '{"type": "join"}',
    ],
)
def test_parse_rejects_malformed_payloads(raw):
    with pytest.raises(MalformedEventError):
        parse_event(raw)


def test_bus_envelope_carries_original_text():
    raw = '{"type":"chat","chatId":"c1","data":"x"}'
    event = parse_event(raw)

    decoded, original = deserialize_event(serialize_event(event, raw=raw))

    assert isinstance(decoded, ChatEvent)
    assert decoded.chat_id == "c1"
    assert original == raw
