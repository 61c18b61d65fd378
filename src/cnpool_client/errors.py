from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .protocol import ErrorReply


class PoolClientError(Exception):
    """Base class for everything that ends a client operation."""


class PoolIOError(PoolClientError):
    """Transport failure. The underlying OSError is chained as __cause__."""


class MessageError(PoolClientError, ValueError):
    """Malformed JSON, or a well-formed message with an unexpected shape."""


class Disconnected(PoolClientError):
    def __init__(self) -> None:
        super().__init__("disconnected")


class LoginTimedOut(PoolClientError):
    def __init__(self) -> None:
        super().__init__("read timeout during login")


class LoginUnexpectedReply(PoolClientError):
    def __init__(self) -> None:
        super().__init__("unexpected reply during login")


class ServerError(PoolClientError):
    def __init__(self, reply: ErrorReply):
        super().__init__(f"server reports error: {reply}")
        self.reply = reply

    @property
    def code(self) -> int:
        return self.reply.code

    @property
    def message(self) -> str:
        return self.reply.message
