"""
Session Establishment
=====================

Sets up the sender side of an HPKE session against a recipient whose
static public key is known in advance.

Establishment Flow:
    recipient_public_key, info
        ↓ allocate HPKE sender context
        ↓ SetupBaseS → encapsulated key (truncated to its length)
        ↓ export "response_key" (32 bytes) → AES-256-GCM opening context
        ↓ export "response_nonce" (12 bytes)
    Session(encapsulated_key, SealingChannel, OpeningChannel)

Security Properties:
    - All-or-nothing: a failure at any step returns no session
    - Every context acquired before a failure is released exactly once
    - The exported response key is wiped as soon as the AEAD holds it
    - Only lengths are ever logged
"""

from __future__ import annotations

import logging
from typing import Final

from sealedsession.core.config import SessionConfig
from sealedsession.core.crypto.aes_gcm import AesGcmOpeningContext
from sealedsession.core.crypto.hpke import HpkeError, HpkeSenderContext
from sealedsession.core.memory.secure_memory import KeyMaterial, ReleaseGuard
from sealedsession.core.memory.zeroization import ZeroizeContext
from sealedsession.core.session.channels import OpeningChannel, SealingChannel
from sealedsession.core.session.errors import AbortedError, InvalidArgumentError
from sealedsession.security.constants import (
    AEAD_KEY_SIZE,
    AEAD_NONCE_SIZE,
    MAX_ENC_LENGTH,
    RESPONSE_KEY_LABEL,
    RESPONSE_NONCE_LABEL,
)

_log = logging.getLogger(__name__)

NO_KEY: Final[str] = "no key was provided"
CONTEXT_FAILED: Final[str] = "unable to generate context"
SETUP_FAILED: Final[str] = "unable to setup sender context"
EXPORT_KEY_FAILED: Final[str] = "unable to export response key"
AEAD_FAILED: Final[str] = "unable to generate AEAD response context"
EXPORT_NONCE_FAILED: Final[str] = "unable to export response nonce"
CONFIG_FAILED: Final[str] = "unable to load session configuration"


def new_sender_context() -> HpkeSenderContext:
    """Allocate an empty HPKE sender context."""
    return HpkeSenderContext()


class Session:
    """
    Sender session: encapsulated key plus both channels.

    The session owns all three fields and releases them together.

    Usage:
        with establish(recipient_public_key, b"session-1") as session:
            send(bytes(session.encapsulated_key))
            request = session.sealing_channel.seal(b"hello")
            ...
            reply = session.opening_channel.open(response)

    Concurrency:
        seal() calls on one session are serialized internally.
        open() keeps no per-call state.

    Lifetime:
        The channels do not keep their session alive. Once the last
        reference to the Session is dropped it closes both channels,
        so hold the Session for as long as a channel is in use:

            channel = establish(pk).sealing_channel  # already closed
            channel.seal(b"hello")                   # SessionClosedError
    """

    __slots__ = ("_encapsulated_key", "_sealing_channel", "_opening_channel", "_closed")

    def __init__(
        self,
        encapsulated_key: KeyMaterial,
        sealing_channel: SealingChannel,
        opening_channel: OpeningChannel,
    ) -> None:
        self._encapsulated_key = encapsulated_key
        self._sealing_channel = sealing_channel
        self._opening_channel = opening_channel
        self._closed = False

    @property
    def encapsulated_key(self) -> KeyMaterial:
        """Encapsulated key to transmit to the recipient."""
        return self._encapsulated_key

    @property
    def sealing_channel(self) -> SealingChannel:
        return self._sealing_channel

    @property
    def opening_channel(self) -> OpeningChannel:
        return self._opening_channel

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release both channels and wipe the encapsulated key. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            self._sealing_channel.close()
        finally:
            try:
                self._opening_channel.close()
            finally:
                self._encapsulated_key.wipe()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __del__(self) -> None:
        """Best-effort release if the owner forgot to close."""
        try:
            self.close()
        except Exception:
            pass

    def __repr__(self) -> str:
        if self._closed:
            return "Session(CLOSED)"
        return f"Session(encapsulated_key_len={len(self._encapsulated_key)})"


def establish(recipient_public_key: bytes, info: bytes = b"") -> Session:
    """
    Establish a sender session with a recipient.

    Args:
        recipient_public_key: Serialized X25519 public key of the recipient
        info: Context string bound into the key schedule (may be empty)

    Returns:
        A fully constructed Session

    Raises:
        InvalidArgumentError: If recipient_public_key is empty
        AbortedError: If the configuration cannot be loaded or any
            cryptographic step fails
    """
    if not recipient_public_key:
        raise InvalidArgumentError(NO_KEY)

    recipient_public_key = bytes(recipient_public_key)
    info = bytes(info)
    try:
        security = SessionConfig.get_instance().security
    except ValueError as e:
        _log_failure(CONFIG_FAILED, e)
        raise AbortedError(CONFIG_FAILED) from e

    with ReleaseGuard() as guard:
        try:
            context = guard.track(new_sender_context())
        except (MemoryError, OSError) as e:
            _log_failure(CONTEXT_FAILED, e)
            raise AbortedError(CONTEXT_FAILED) from e

        encapsulated_key = guard.track(KeyMaterial(capacity=MAX_ENC_LENGTH, lock_memory=False))
        try:
            context.setup_base_sender(encapsulated_key, recipient_public_key, info)
        except HpkeError as e:
            _log_failure(SETUP_FAILED, e)
            raise AbortedError(SETUP_FAILED) from e
        encapsulated_key.truncate()

        try:
            response_key = bytearray(context.export(RESPONSE_KEY_LABEL, AEAD_KEY_SIZE))
        except HpkeError as e:
            _log_failure(EXPORT_KEY_FAILED, e)
            raise AbortedError(EXPORT_KEY_FAILED) from e

        with ZeroizeContext(*((response_key,) if security.secure_memory_wipe else ())):
            try:
                aead_context = guard.track(AesGcmOpeningContext(response_key))
            except ValueError as e:
                _log_failure(AEAD_FAILED, e)
                raise AbortedError(AEAD_FAILED) from e

        try:
            response_nonce = guard.track(
                KeyMaterial.from_bytes(
                    context.export(RESPONSE_NONCE_LABEL, AEAD_NONCE_SIZE),
                    lock_memory=security.lock_memory,
                )
            )
        except HpkeError as e:
            _log_failure(EXPORT_NONCE_FAILED, e)
            raise AbortedError(EXPORT_NONCE_FAILED) from e

        session = Session(
            encapsulated_key=encapsulated_key,
            sealing_channel=SealingChannel(context),
            opening_channel=OpeningChannel(aead_context, response_nonce),
        )
        guard.commit()

    _log.debug(
        "Sender session established (enc_len=%d, info_len=%d)",
        len(encapsulated_key), len(info),
    )
    return session


def _log_failure(message: str, cause: BaseException) -> None:
    _log.warning("Session establishment failed: %s (%s)", message, type(cause).__name__)


set_up_base_sender = establish
