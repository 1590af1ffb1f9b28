"""
Protocol Constants
==================

Fixed parameters of the HPKE suite used by every session.

The suite is not negotiable: DHKEM(X25519, HKDF-SHA256), HKDF-SHA256
and AES-256-GCM in base mode (RFC 9180). These values must match the
recipient byte for byte and should not be modified.
"""

from typing import Final

# KEM sizes
KEM_ENC_SIZE: Final[int] = 32  # Nenc
KEM_PUBLIC_KEY_SIZE: Final[int] = 32  # Npk
MAX_ENC_LENGTH: Final[int] = 32

# KDF sizes
KDF_HASH_SIZE: Final[int] = 32  # Nh
MAX_EXPORT_LENGTH: Final[int] = 255 * KDF_HASH_SIZE

# AEAD sizes
AEAD_KEY_SIZE: Final[int] = 32  # Nk
AEAD_NONCE_SIZE: Final[int] = 12  # Nn
AEAD_TAG_SIZE: Final[int] = 16  # Nt

# Exporter labels for the response channel
RESPONSE_KEY_LABEL: Final[bytes] = b"response_key"
RESPONSE_NONCE_LABEL: Final[bytes] = b"response_nonce"
