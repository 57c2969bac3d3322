from __future__ import annotations

from enum import StrEnum


class ConnectionStatus(StrEnum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    ERROR = "error"


class TransportMode(StrEnum):
    SOCKET = "socket"
    POLLING = "polling"


class Deployment(StrEnum):
    LOCAL = "local"
    HOSTED = "hosted"
    SERVERLESS = "serverless"


class EventType(StrEnum):
    CONNECTION_ESTABLISHED = "connection_established"
    CONNECTION = "connection"
    JOIN = "join"
    JOINED = "joined"
    TYPING = "typing"
    PING = "ping"
    PONG = "pong"
    CHAT = "chat"
    ERROR = "error"


class TypingStatus(StrEnum):
    STARTED = "started"
    FINISHED = "finished"


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class BroadcastScope(StrEnum):
    CHAT = "chat"
    ALL = "all"
