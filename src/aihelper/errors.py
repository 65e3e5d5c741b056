"""Exceptions raised inside the request pipeline.

Every one of these is caught by ``ChatOrchestrator`` and turned into a
``NormalizedResult``; none of them reach the caller of ``submit_chat``.
"""


class ChatError(Exception):
    """Base class for request pipeline failures."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class RequestCancelled(ChatError):
    """The request's cancellation token was triggered."""

    def __init__(self, message: str = "Cancelled.") -> None:
        super().__init__(message)


class StreamErrorEvent(ChatError):
    """The upstream sent an explicit error event inside the stream."""


class InvalidResponseError(ChatError):
    """The response body could not be decoded into text."""


class ConfigError(ChatError):
    """Required configuration is missing or invalid."""


class ApiStatusError(ChatError):
    """The API answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int = 0) -> None:
        self.status_code = status_code
        super().__init__(message)
