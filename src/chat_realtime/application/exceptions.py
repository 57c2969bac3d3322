from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ValidationError(AppError):
    pass


class TransportError(AppError):
    """Realtime transport failure. Never raised past a RealtimeSession."""


class TransportUnsupportedError(TransportError):
    pass


class SendFailedError(TransportError):
    pass


class MalformedEventError(TransportError):
    pass
