"""
Session Errors
==============

Structured errors surfaced to callers of the session API.

Every error is terminal for the operation that raised it; nothing in
this package retries.
"""

from __future__ import annotations

from enum import Enum


class StatusCode(Enum):
    """Canonical status of a failed operation."""
    INVALID_ARGUMENT = "invalid_argument"
    ABORTED = "aborted"
    FAILED_PRECONDITION = "failed_precondition"


class SessionError(Exception):
    """Base exception for session errors."""

    code: StatusCode = StatusCode.ABORTED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value}, message={self.message!r})"


class InvalidArgumentError(SessionError, ValueError):
    """Raised when caller input violates a precondition."""
    code = StatusCode.INVALID_ARGUMENT


class AbortedError(SessionError):
    """Raised when an underlying cryptographic operation fails."""
    code = StatusCode.ABORTED


class SessionClosedError(SessionError):
    """Raised when a channel is used after its session was closed."""
    code = StatusCode.FAILED_PRECONDITION
