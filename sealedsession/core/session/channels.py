"""
Session Channels
================

The two halves of a sender session.

SealingChannel:
    Seals outbound requests with the HPKE sender context. Each seal
    advances a private sequence number, so identical inputs never
    produce identical ciphertexts.

OpeningChannel:
    Opens inbound responses with an AES-256-GCM key and a nonce, both
    exported once at establishment.

WARNING:
    The OpeningChannel uses the same nonce for every open(). This is
    only safe when the responder sends at most one message per session
    under that key. It is kept as-is for wire compatibility with the
    responder, which derives the same fixed nonce.
"""

from __future__ import annotations

import logging
from typing import Final

from cryptography.exceptions import InvalidTag

from sealedsession.core.crypto.aes_gcm import AesGcmOpeningContext
from sealedsession.core.crypto.hpke import HpkeError, HpkeSenderContext
from sealedsession.core.memory.secure_memory import KeyMaterial
from sealedsession.core.session.errors import (
    AbortedError,
    InvalidArgumentError,
    SessionClosedError,
)

_log = logging.getLogger(__name__)

SEAL_FAILED: Final[str] = "failed to seal request"
NO_CIPHERTEXT: Final[str] = "no ciphertext was provided"
OPEN_FAILED: Final[str] = "unable to decrypt response message"


class SealingChannel:
    """
    Forward channel: sealed requests to the recipient.

    Owns one HPKE sender context exclusively.
    """

    __slots__ = ("_context", "_closed")

    def __init__(self, context: HpkeSenderContext) -> None:
        self._context = context
        self._closed = False

    @property
    def overhead(self) -> int:
        """Bytes added to every plaintext by seal()."""
        return self._context.max_overhead

    @property
    def is_closed(self) -> bool:
        return self._closed

    def seal(self, plaintext: bytes, associated_data: bytes = b"") -> bytes:
        """
        Encrypt and authenticate one request.

        Args:
            plaintext: Request bytes (may be empty)
            associated_data: Authenticated but unencrypted context

        Returns:
            Ciphertext of len(plaintext) + overhead bytes

        Raises:
            SessionClosedError: If the channel was closed
            AbortedError: If the primitive fails
        """
        if self._closed:
            raise SessionClosedError("sealing channel is closed")

        try:
            out = KeyMaterial(
                capacity=len(plaintext) + self._context.max_overhead,
                lock_memory=False,
                max_size=None,
            )
            with out:
                out.write(self._context.seal(bytes(plaintext), bytes(associated_data)))
                out.truncate()
                return out.data
        except (HpkeError, ValueError, MemoryError) as e:
            _log.warning("Request seal failed: %s", type(e).__name__)
            raise AbortedError(SEAL_FAILED) from e

    def close(self) -> None:
        """Release the sender context. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._context.release()

    def __repr__(self) -> str:
        return f"SealingChannel(closed={self._closed})"


class OpeningChannel:
    """
    Reverse channel: responses from the recipient.

    Owns one AES-256-GCM context and one fixed nonce exclusively.
    """

    __slots__ = ("_context", "_nonce", "_closed")

    def __init__(self, context: AesGcmOpeningContext, nonce: KeyMaterial) -> None:
        self._context = context
        self._nonce = nonce
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def open(self, ciphertext: bytes, associated_data: bytes = b"") -> bytes:
        """
        Authenticate and decrypt one response.

        Args:
            ciphertext: Response ciphertext with appended tag
            associated_data: Must match what the responder bound

        Returns:
            Recovered plaintext

        Raises:
            InvalidArgumentError: If ciphertext is empty
            SessionClosedError: If the channel was closed
            AbortedError: If authentication fails or input is malformed
        """
        if not ciphertext:
            raise InvalidArgumentError(NO_CIPHERTEXT)
        if self._closed:
            raise SessionClosedError("opening channel is closed")

        try:
            # Plaintext is never longer than the ciphertext
            out = KeyMaterial(capacity=len(ciphertext), lock_memory=False, max_size=None)
            with out:
                out.write(
                    self._context.open(self._nonce.data, bytes(ciphertext), bytes(associated_data))
                )
                out.truncate()
                return out.data
        except (InvalidTag, ValueError, MemoryError) as e:
            _log.warning("Response open failed: %s", type(e).__name__)
            raise AbortedError(OPEN_FAILED) from e

    def close(self) -> None:
        """Release the AEAD context and wipe the nonce. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            self._context.release()
        finally:
            self._nonce.wipe()

    def __repr__(self) -> str:
        return f"OpeningChannel(closed={self._closed})"
