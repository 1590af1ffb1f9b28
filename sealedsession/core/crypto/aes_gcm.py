"""
AES-256-GCM Opening Context
===========================

An owned AEAD decryption context with a key fixed at construction.

Security Properties:
    - 256-bit key
    - 96-bit nonce
    - 128-bit authentication tag (full length)
    - Integrity is verified before any plaintext is returned

WARNING:
    - The context never chooses nonces; the caller supplies them
    - After release() the key is unreachable and the context unusable
"""

from __future__ import annotations

from typing import Final, Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sealedsession.core.memory.zeroization import ResourceLedger
from sealedsession.security.constants import AEAD_KEY_SIZE, AEAD_NONCE_SIZE, AEAD_TAG_SIZE

AES_KEY_SIZE: Final[int] = AEAD_KEY_SIZE
AES_NONCE_SIZE: Final[int] = AEAD_NONCE_SIZE
AES_TAG_SIZE: Final[int] = AEAD_TAG_SIZE


class AesGcmOpeningContext:
    """
    AES-256-GCM decryption context.

    Usage:
        ctx = AesGcmOpeningContext(key)
        try:
            plaintext = ctx.open(nonce, ciphertext, aad)
        finally:
            ctx.release()

    Raises from open():
        ValueError: Malformed nonce or ciphertext, or context released
        cryptography.exceptions.InvalidTag: Authentication failed
    """

    __slots__ = ("_cipher", "__weakref__")

    kind: Final[str] = "aead_opening_context"

    def __init__(self, key: bytes | bytearray, tag_length: int = AES_TAG_SIZE) -> None:
        """
        Args:
            key: 32-byte AES-256 key
            tag_length: Only the full 16-byte tag is supported

        Raises:
            ValueError: If key or tag length is wrong
        """
        if len(key) != AES_KEY_SIZE:
            raise ValueError(f"Key must be exactly {AES_KEY_SIZE} bytes")
        if tag_length != AES_TAG_SIZE:
            raise ValueError(f"Only {AES_TAG_SIZE}-byte tags are supported")

        self._cipher: Optional[AESGCM] = AESGCM(bytes(key))
        ResourceLedger().acquired(self)

    @property
    def is_released(self) -> bool:
        return self._cipher is None

    def open(self, nonce: bytes, ciphertext: bytes, aad: bytes) -> bytes:
        if self._cipher is None:
            raise ValueError("AEAD context has been released")
        if len(nonce) != AES_NONCE_SIZE:
            raise ValueError(f"Nonce must be exactly {AES_NONCE_SIZE} bytes")
        if len(ciphertext) < AES_TAG_SIZE:
            raise ValueError("Ciphertext too short (missing authentication tag)")
        return self._cipher.decrypt(nonce, ciphertext, aad)

    def release(self) -> None:
        """Drop the key schedule. Idempotent."""
        if self._cipher is None:
            return
        self._cipher = None
        ResourceLedger().released(self)

    def __repr__(self) -> str:
        state = "released" if self._cipher is None else "live"
        return f"AesGcmOpeningContext({state})"
