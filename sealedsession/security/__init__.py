"""
Security module - Fixed protocol parameters.
"""

from sealedsession.security.constants import (
    AEAD_KEY_SIZE,
    AEAD_NONCE_SIZE,
    AEAD_TAG_SIZE,
    MAX_ENC_LENGTH,
    RESPONSE_KEY_LABEL,
    RESPONSE_NONCE_LABEL,
)

__all__ = [
    "AEAD_KEY_SIZE",
    "AEAD_NONCE_SIZE",
    "AEAD_TAG_SIZE",
    "MAX_ENC_LENGTH",
    "RESPONSE_KEY_LABEL",
    "RESPONSE_NONCE_LABEL",
]
