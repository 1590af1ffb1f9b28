"""
Session module - Sender-side session establishment and channels.
"""

from sealedsession.core.session.channels import OpeningChannel, SealingChannel
from sealedsession.core.session.errors import (
    AbortedError,
    InvalidArgumentError,
    SessionClosedError,
    SessionError,
    StatusCode,
)
from sealedsession.core.session.sender import Session, establish, set_up_base_sender

__all__ = [
    "AbortedError",
    "InvalidArgumentError",
    "OpeningChannel",
    "SealingChannel",
    "Session",
    "SessionClosedError",
    "SessionError",
    "StatusCode",
    "establish",
    "set_up_base_sender",
]
