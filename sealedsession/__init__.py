"""
SealedSession - HPKE Sender Sessions
====================================

Opens an encrypted request/response session with a remote party whose
static X25519 public key is known in advance (RFC 9180, base mode).

    with establish(recipient_public_key, b"session-1") as session:
        transmit(bytes(session.encapsulated_key))
        request = session.sealing_channel.seal(b"hello", b"")
        response = session.opening_channel.open(reply, b"")

Security Notice:
- No secrets are logged
- Fail-closed: establishment is all-or-nothing
- Every cryptographic context is released exactly once
"""

from sealedsession.core.config import SessionConfig
from sealedsession.core.logging import configure_logging, get_secure_logger
from sealedsession.core.session import (
    AbortedError,
    InvalidArgumentError,
    OpeningChannel,
    SealingChannel,
    Session,
    SessionClosedError,
    SessionError,
    StatusCode,
    establish,
    set_up_base_sender,
)

__version__ = "0.1.0"

__all__ = [
    "AbortedError",
    "InvalidArgumentError",
    "OpeningChannel",
    "SealingChannel",
    "Session",
    "SessionClosedError",
    "SessionConfig",
    "SessionError",
    "StatusCode",
    "configure_logging",
    "establish",
    "get_secure_logger",
    "set_up_base_sender",
    "__version__",
]
