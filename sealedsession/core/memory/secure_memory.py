"""
Secure Memory Buffers
=====================

Fixed-capacity key buffers and scope-bound release of owned contexts.

Security Properties:
- Explicit zeroization (don't rely on Python GC)
- Memory locking where supported (prevent swapping)
- Only the logical content is ever exposed, never spare capacity
- Automatic cleanup on scope exit
- Exception-safe operation

Limitations:
- Python's memory model copies data internally
- GC may leave copies in memory
- Best-effort security, not guaranteed
"""

from __future__ import annotations

import ctypes
import platform
from typing import Final, List, Optional, TypeVar

from sealedsession.core.config import SessionConfig
from sealedsession.core.memory.zeroization import Releasable, secure_zero


# Platform detection
IS_WINDOWS: Final[bool] = platform.system() == "Windows"
IS_LINUX: Final[bool] = platform.system() == "Linux"
IS_MACOS: Final[bool] = platform.system() == "Darwin"

# Memory constants
MAX_BUFFER_SIZE: Final[int] = 64 * 1024 * 1024  # 64 MB


def _libc() -> Optional[ctypes.CDLL]:
    if IS_LINUX:
        return ctypes.CDLL("libc.so.6", use_errno=True)
    if IS_MACOS:
        return ctypes.CDLL("libc.dylib", use_errno=True)
    return None


def _mlock(address: int, size: int) -> bool:
    """
    Lock memory pages to prevent swapping.

    Returns True if successful, False otherwise.
    """
    try:
        if IS_WINDOWS:
            kernel32 = ctypes.windll.kernel32
            return bool(kernel32.VirtualLock(ctypes.c_void_p(address), ctypes.c_size_t(size)))
        libc = _libc()
        if libc is not None:
            return libc.mlock(ctypes.c_void_p(address), ctypes.c_size_t(size)) == 0
    except (OSError, AttributeError):
        pass
    return False


def _munlock(address: int, size: int) -> bool:
    """Unlock memory pages."""
    try:
        if IS_WINDOWS:
            kernel32 = ctypes.windll.kernel32
            return bool(kernel32.VirtualUnlock(ctypes.c_void_p(address), ctypes.c_size_t(size)))
        libc = _libc()
        if libc is not None:
            return libc.munlock(ctypes.c_void_p(address), ctypes.c_size_t(size)) == 0
    except (OSError, AttributeError):
        pass
    return False


class KeyMaterial:
    """
    Fixed-capacity byte buffer paired with its logical length.

    A primitive is given the full capacity to write into and reports
    how many bytes it produced; the buffer is then truncated to that
    length. Readers only ever see the logical content.

    Usage:
        enc = KeyMaterial(capacity=MAX_ENC_LENGTH)
        enc.write(produced)
        enc.truncate()
        send(bytes(enc))

        with KeyMaterial.from_bytes(secret) as km:
            use(km.data)
        # Buffer is now zeroed

    Security Notes:
        - Always use context manager or call wipe() explicitly
        - .data returns a copy
    """

    __slots__ = ("_buffer", "_capacity", "_used_length", "_wiped", "_locked", "__weakref__")

    kind: Final[str] = "key_material"

    def __init__(
        self,
        capacity: int,
        lock_memory: Optional[bool] = None,
        max_size: Optional[int] = MAX_BUFFER_SIZE,
    ) -> None:
        """
        Allocate a zeroed buffer.

        Args:
            capacity: Upper bound on the content, in bytes
            lock_memory: Try to lock memory; defaults to the configured policy
            max_size: Largest capacity accepted, or None for no bound
                beyond what the allocator can satisfy
        """
        self._buffer = bytearray()
        self._capacity = 0
        self._used_length = 0
        self._wiped = False
        self._locked = False

        if capacity < 0:
            raise ValueError("Capacity cannot be negative")
        if max_size is not None and capacity > max_size:
            raise ValueError(f"Buffer too large (max {max_size})")

        if lock_memory is None:
            lock_memory = SessionConfig.get_instance().security.lock_memory

        self._buffer = bytearray(capacity)
        self._capacity = capacity

        if lock_memory and capacity > 0:
            addr = ctypes.addressof((ctypes.c_char * capacity).from_buffer(self._buffer))
            self._locked = _mlock(addr, capacity)

    @classmethod
    def from_bytes(
        cls,
        data: bytes | bytearray,
        lock_memory: Optional[bool] = None,
    ) -> "KeyMaterial":
        """
        Create KeyMaterial holding exactly `data`.

        The original data is NOT wiped - caller is responsible.
        """
        km = cls(capacity=len(data), lock_memory=lock_memory)
        km.write(data)
        return km

    @property
    def capacity(self) -> int:
        """Get buffer capacity."""
        return self._capacity

    @property
    def used_length(self) -> int:
        """Get logical content length."""
        return self._used_length

    @property
    def data(self) -> bytes:
        """
        Get the logical content as immutable bytes.

        Warning: This creates a copy.
        """
        self._check_live()
        return bytes(self._buffer[:self._used_length])

    @property
    def is_wiped(self) -> bool:
        return self._wiped

    @property
    def is_locked(self) -> bool:
        return self._locked

    def writable(self) -> memoryview:
        """Expose the whole capacity for a primitive to fill in place."""
        self._check_live()
        return memoryview(self._buffer)

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """
        Write data at the start of the buffer and mark it as content.

        Raises:
            ValueError: If data exceeds the capacity
        """
        self._check_live()
        if len(data) > self._capacity:
            raise ValueError(
                f"Output of {len(data)} bytes exceeds capacity of {self._capacity}"
            )
        self._buffer[:len(data)] = data
        self._used_length = len(data)
        return len(data)

    def set_used_length(self, length: int) -> None:
        """Record how many bytes a primitive produced in place."""
        self._check_live()
        if length < 0 or length > self._capacity:
            raise ValueError(f"Invalid length: {length}")
        self._used_length = length

    def truncate(self) -> None:
        """
        Resize the buffer to its logical length.

        Spare capacity is zeroed before it is dropped.
        """
        self._check_live()
        if self._used_length == self._capacity:
            return

        secure_zero(memoryview(self._buffer)[self._used_length:])
        self._unlock()
        trimmed = bytearray(self._buffer[:self._used_length])
        secure_zero(self._buffer)
        self._buffer = trimmed
        self._capacity = self._used_length

    def wipe(self) -> None:
        """Zero the whole buffer. Idempotent."""
        if self._wiped:
            return
        secure_zero(self._buffer)
        self._unlock()
        self._used_length = 0
        self._wiped = True

    def release(self) -> None:
        """Alias of wipe() so a ReleaseGuard can own the buffer."""
        self.wipe()

    def _unlock(self) -> None:
        if self._locked:
            addr = ctypes.addressof(
                (ctypes.c_char * self._capacity).from_buffer(self._buffer)
            )
            _munlock(addr, self._capacity)
            self._locked = False

    def _check_live(self) -> None:
        if self._wiped:
            raise ValueError("Buffer has been wiped")

    def __bytes__(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        """Logical length, not capacity."""
        return self._used_length

    def __enter__(self) -> "KeyMaterial":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - always wipe."""
        self.wipe()

    def __repr__(self) -> str:
        """Safe representation."""
        if self._wiped:
            return "KeyMaterial(WIPED)"
        return f"KeyMaterial(used_length={self._used_length}, capacity={self._capacity})"


R = TypeVar("R", bound=Releasable)


class ReleaseGuard:
    """
    Scope-bound guard for owned cryptographic contexts.

    Every tracked context is released when the scope exits, unless
    ownership was handed on with commit(). This covers exceptions and
    early returns alike.

    Usage:
        with ReleaseGuard() as guard:
            ctx = guard.track(new_context())
            aead = guard.track(build_aead(...))
            session = Session(ctx, aead)
            guard.commit()
        return session
    """

    __slots__ = ("_tracked",)

    def __init__(self) -> None:
        self._tracked: List[Releasable] = []

    def track(self, resource: R) -> R:
        """
        Track a resource for release on scope exit.

        Returns the resource for convenience.
        """
        self._tracked.append(resource)
        return resource

    def commit(self) -> None:
        """Hand ownership of all tracked resources to the caller."""
        self._tracked.clear()

    def release_all(self) -> None:
        """Release tracked resources, newest first."""
        while self._tracked:
            self._tracked.pop().release()

    def __enter__(self) -> "ReleaseGuard":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release_all()
