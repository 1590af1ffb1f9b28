"""
SealedSession Cryptographic Core
================================

HPKE sender primitives for one fixed suite.

Architecture:
    1. DHKEM(X25519, HKDF-SHA256): key encapsulation to the recipient
    2. HKDF-SHA256: key schedule and secret export (via hybrid_pke)
    3. AES-256-GCM: request sealing and response opening

WARNING: This module handles sensitive cryptographic material.
         Incorrect usage can compromise security.
"""

from sealedsession.core.crypto.aes_gcm import AesGcmOpeningContext
from sealedsession.core.crypto.hpke import HpkeError, HpkeSenderContext, check_public_key

__all__ = [
    "AesGcmOpeningContext",
    "HpkeError",
    "HpkeSenderContext",
    "check_public_key",
]
