"""
SealedSession Memory Security Module
====================================

Provides secure memory handling primitives.

Security Features:
- Fixed-capacity key buffers truncated to their logical length
- Explicit zeroization (don't rely on GC)
- Scope-bound release of cryptographic contexts
- Process-wide ledger of live contexts

Components:
- secure_memory.py: KeyMaterial and ReleaseGuard
- zeroization.py: Memory wiping and resource accounting

WARNING:
- Python's memory model doesn't guarantee secure erasure
- These are best-effort mitigations
"""

from sealedsession.core.memory.secure_memory import KeyMaterial, ReleaseGuard
from sealedsession.core.memory.zeroization import (
    Releasable,
    ResourceLedger,
    ZeroizeContext,
    secure_zero,
)

__all__ = [
    "KeyMaterial",
    "ReleaseGuard",
    "Releasable",
    "ResourceLedger",
    "ZeroizeContext",
    "secure_zero",
]
