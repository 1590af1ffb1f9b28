"""
Memory Zeroization and Resource Accounting
==========================================

Provides explicit zeroization of key buffers and a process-wide ledger
of live cryptographic contexts.

Security Properties:
- Explicit zeroization (no GC reliance)
- Exception-safe cleanup
- Every owned context is released exactly once
- Emergency release of everything still live

Key Concepts:
- Zeroization: Overwriting memory with zeros/patterns
- Ledger: Counts acquisitions and releases per resource kind
- Release-all: Emergency wipe of all live contexts
"""

from __future__ import annotations

import ctypes
import threading
import weakref
from collections import Counter
from contextlib import contextmanager
from typing import Final, Iterator, Optional, Protocol


# Zeroization constants
WIPE_PASSES: Final[int] = 3


def secure_zero(data: bytearray | memoryview) -> None:
    """
    Securely zero a byte buffer.

    Uses ctypes for direct memory access where possible,
    with fallback to Python-level zeroing.

    Args:
        data: Mutable byte buffer to zero

    Security Notes:
        - This is best-effort; Python may have copies
        - Buffer must be mutable (bytearray, not bytes)
    """
    if len(data) == 0:
        return

    if isinstance(data, memoryview):
        if data.readonly:
            raise TypeError("Cannot zero a read-only buffer")
        data[:] = bytes(len(data))
        return

    try:
        addr = ctypes.addressof(
            (ctypes.c_char * len(data)).from_buffer(data)
        )

        # Multi-pass wipe
        ctypes.memset(addr, 0, len(data))
        ctypes.memset(addr, 0xFF, len(data))
        ctypes.memset(addr, 0, len(data))

    except (TypeError, ValueError, BufferError):
        # Fallback: Python-level zeroing
        for i in range(len(data)):
            data[i] = 0


@contextmanager
def ZeroizeContext(*buffers: bytearray) -> Iterator[None]:
    """
    Context manager that zeroizes buffers on exit.

    Always zeroizes, whether exit is normal or exceptional.

    Usage:
        response_key = bytearray(32)

        with ZeroizeContext(response_key):
            fill(response_key)
            build_cipher(response_key)
        # response_key is now zeroed
    """
    try:
        yield
    finally:
        for buf in buffers:
            secure_zero(buf)


class Releasable(Protocol):
    """Anything owning key material that must be released once."""

    kind: str

    def release(self) -> None: ...


class ResourceLedger:
    """
    Process-wide accounting of owned cryptographic contexts.

    Each context registers itself on acquisition and reports its
    single release. The ledger keeps weak references only, so it never
    extends a context's lifetime.

    Usage:
        ledger = ResourceLedger()

        ledger.acquired(ctx)
        ...
        ledger.released(ctx)

        assert ledger.live_count() == 0

        # Emergency: release everything still live
        ledger.release_all()

    Security Notes:
        - A second release report for the same object is an error
        - release_all() is irreversible for the contexts it touches
    """

    _instance: Optional["ResourceLedger"] = None
    _instance_lock = threading.Lock()

    def __new__(cls) -> "ResourceLedger":
        """Singleton pattern for the global ledger."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self) -> None:
        if getattr(self, "_initialized", False):
            return

        self._lock = threading.Lock()
        self._live: dict[int, weakref.ref] = {}
        self._acquired: Counter[str] = Counter()
        self._released: Counter[str] = Counter()
        self._initialized = True

    def acquired(self, resource: Releasable) -> None:
        """Record that a resource has been acquired."""
        with self._lock:
            self._live[id(resource)] = weakref.ref(resource)
            self._acquired[resource.kind] += 1

    def released(self, resource: Releasable) -> None:
        """
        Record that a resource has been released.

        Raises:
            RuntimeError: If the resource is not live (double release)
        """
        with self._lock:
            ref = self._live.pop(id(resource), None)
            if ref is None or ref() is not resource:
                raise RuntimeError(f"{resource.kind} released twice or never acquired")
            self._released[resource.kind] += 1

    def acquired_count(self, kind: Optional[str] = None) -> int:
        """Number of acquisitions, optionally for one kind."""
        with self._lock:
            if kind is None:
                return sum(self._acquired.values())
            return self._acquired[kind]

    def released_count(self, kind: Optional[str] = None) -> int:
        """Number of releases, optionally for one kind."""
        with self._lock:
            if kind is None:
                return sum(self._released.values())
            return self._released[kind]

    def live_count(self, kind: Optional[str] = None) -> int:
        """Number of resources acquired but not yet released."""
        with self._lock:
            live = [ref() for ref in self._live.values()]
        return sum(
            1 for obj in live
            if obj is not None and (kind is None or obj.kind == kind)
        )

    def release_all(self) -> int:
        """
        Release every live resource.

        Returns:
            Number of resources released
        """
        with self._lock:
            live = [ref() for ref in self._live.values()]

        count = 0
        for obj in live:
            if obj is not None:
                obj.release()
                count += 1
        return count

    def reset(self) -> None:
        """
        Clear all counters and live references.

        Should only be used for testing.
        """
        with self._lock:
            self._live.clear()
            self._acquired.clear()
            self._released.clear()
