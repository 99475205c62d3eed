"""Exception hierarchy shared by the device client and the controller."""

from __future__ import annotations

from typing import Optional


class SandBotError(RuntimeError):
    """Base class for every failure the dashboard reports."""


class TransportError(SandBotError):
    """Raised when a request to the robot fails or times out."""


class DeviceRejected(SandBotError):
    """Raised when the robot answers but its result code signals failure."""

    def __init__(self, message: str, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.reason = reason


class ParseError(SandBotError):
    """Raised when a response body does not have the expected shape."""


class PreconditionError(SandBotError):
    """Raised before an action is attempted without its prerequisites."""
