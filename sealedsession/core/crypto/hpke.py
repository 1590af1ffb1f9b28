"""
HPKE Sender Context
===================

Base-mode HPKE sender (RFC 9180) for the fixed suite
DHKEM(X25519, HKDF-SHA256) / HKDF-SHA256 / AES-256-GCM.

The key schedule, sequence nonces and exporter come from hybrid_pke.
This module owns the library context: it validates the peer key,
serializes access and drops the context on release().

Setup Flow:
    pkR, info
        ↓ peer key check (length, low-order point)
        ↓ hybrid_pke setup_sender: ephemeral X25519 key, KeySchedule
    enc, sender context

Context Operations:
    - seal: AES-256-GCM with nonce = base_nonce XOR seq, seq advances
    - export: LabeledExpand(exporter_secret, "sec", context, L)

Security Properties:
    - Fresh ephemeral key per setup
    - Sequence number is private to the library context
    - Seals on one context are serialized
    - release() drops the only reference to the library context

WARNING:
    - A context is single-use: setup_base_sender() may run once
    - Never share one context between independent senders
    - Key material lives inside the library and cannot be zeroed from Python
"""

from __future__ import annotations

import threading
from typing import Any, Final, Optional

import hybrid_pke
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey

from sealedsession.core.memory.secure_memory import KeyMaterial
from sealedsession.core.memory.zeroization import ResourceLedger
from sealedsession.security.constants import (
    AEAD_TAG_SIZE,
    KEM_ENC_SIZE,
    KEM_PUBLIC_KEY_SIZE,
    MAX_ENC_LENGTH,
    MAX_EXPORT_LENGTH,
)


class HpkeError(Exception):
    """Raised when an HPKE primitive operation fails."""
    pass


def new_suite() -> hybrid_pke.Hpke:
    """Build the fixed HPKE suite."""
    return hybrid_pke.Hpke(
        hybrid_pke.Mode.BASE,
        hybrid_pke.Kem.DHKEM_X25519,
        hybrid_pke.Kdf.HKDF_SHA256,
        hybrid_pke.Aead.AES_256_GCM,
    )


def check_public_key(recipient_public_key: bytes) -> None:
    """
    Validate a serialized X25519 public key.

    Raises:
        HpkeError: Wrong length or a low-order point
    """
    if len(recipient_public_key) != KEM_PUBLIC_KEY_SIZE:
        raise HpkeError(f"Public key must be exactly {KEM_PUBLIC_KEY_SIZE} bytes")

    try:
        pk_r = X25519PublicKey.from_public_bytes(recipient_public_key)
        # Raises ValueError on an all-zero result
        X25519PrivateKey.generate().exchange(pk_r)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise HpkeError("Invalid recipient public key") from e


class HpkeSenderContext:
    """
    Owned HPKE sender context.

    A context is allocated empty, initialized once by
    setup_base_sender(), and then used to seal messages and export
    secrets until release().

    Usage:
        ctx = HpkeSenderContext()
        enc = KeyMaterial(capacity=MAX_ENC_LENGTH)
        try:
            ctx.setup_base_sender(enc, recipient_public_key, info)
            ciphertext = ctx.seal(plaintext, aad)
            secret = ctx.export(b"label", 32)
        finally:
            ctx.release()
    """

    __slots__ = ("_context", "_lock", "_released", "__weakref__")

    kind: Final[str] = "hpke_sender_context"

    def __init__(self) -> None:
        self._context: Optional[Any] = None
        self._lock = threading.Lock()
        self._released = False
        ResourceLedger().acquired(self)

    @property
    def is_set_up(self) -> bool:
        return self._context is not None

    @property
    def is_released(self) -> bool:
        return self._released

    @property
    def max_overhead(self) -> int:
        """Largest difference between ciphertext and plaintext length."""
        return AEAD_TAG_SIZE

    def setup_base_sender(
        self,
        out_enc: KeyMaterial,
        recipient_public_key: bytes,
        info: bytes,
    ) -> None:
        """
        SetupBaseS(pkR, info).

        Writes the encapsulated key into `out_enc` and records its
        length; the caller truncates.

        Raises:
            HpkeError: Bad peer key, enc larger than `out_enc`, or
                the context is already set up or released
        """
        with self._lock:
            self._check_usable()
            if self._context is not None:
                raise HpkeError("Context is already set up")
            if out_enc.capacity < MAX_ENC_LENGTH:
                raise HpkeError("Encapsulated key buffer is too small")

            check_public_key(recipient_public_key)
            # hybrid_pke raises its own exception types from the Rust core
            try:
                enc, context = new_suite().setup_sender(bytes(recipient_public_key), bytes(info))
            except Exception as e:
                raise HpkeError("Sender setup failed") from e
            if len(enc) != KEM_ENC_SIZE:
                raise HpkeError("Unexpected encapsulated key length")

            out_enc.write(enc)
            self._context = context

    def seal(self, plaintext: bytes, aad: bytes) -> bytes:
        """
        Seal one message and advance the sequence number.

        Raises:
            HpkeError: Context not usable, sequence exhausted, or the
                AEAD rejected the input
        """
        with self._lock:
            self._check_ready()
            try:
                return bytes(self._context.seal(bytes(aad), bytes(plaintext)))
            except Exception as e:
                raise HpkeError("AEAD seal failed") from e

    def export(self, exporter_context: bytes, length: int) -> bytes:
        """
        Export a secret bound to this context.

        Does not touch the sealing state.

        Raises:
            HpkeError: Context not usable or length outside 1..255*Nh
        """
        if length <= 0 or length > MAX_EXPORT_LENGTH:
            raise HpkeError(f"Export length must be in 1..{MAX_EXPORT_LENGTH}")
        with self._lock:
            self._check_ready()
            try:
                return bytes(self._context.export(bytes(exporter_context), length))
            except Exception as e:
                raise HpkeError("Secret export failed") from e

    def release(self) -> None:
        """Drop the library context. Idempotent."""
        with self._lock:
            if self._released:
                return
            self._context = None
            self._released = True
        ResourceLedger().released(self)

    def _check_usable(self) -> None:
        if self._released:
            raise HpkeError("Context has been released")

    def _check_ready(self) -> None:
        self._check_usable()
        if self._context is None:
            raise HpkeError("Context is not set up")

    def __repr__(self) -> str:
        if self._released:
            return "HpkeSenderContext(released)"
        return f"HpkeSenderContext(set_up={self.is_set_up})"
