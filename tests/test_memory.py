"""
KeyMaterial, ReleaseGuard and ResourceLedger tests.
"""

import pytest

from sealedsession.core.memory import (
    KeyMaterial,
    ReleaseGuard,
    ResourceLedger,
    ZeroizeContext,
    secure_zero,
)


class TestKeyMaterial:
    """Tests for the capacity/used-length buffer"""

    def test_fresh_buffer_is_empty(self):
        km = KeyMaterial(capacity=32, lock_memory=False)
        assert km.capacity == 32
        assert km.used_length == 0
        assert len(km) == 0
        assert km.data == b""

    def test_write_then_truncate(self):
        km = KeyMaterial(capacity=64, lock_memory=False)
        km.write(b"\xaa" * 20)
        assert km.used_length == 20
        assert km.capacity == 64
        km.truncate()
        assert km.capacity == 20
        assert bytes(km) == b"\xaa" * 20

    def test_data_never_exposes_spare_capacity(self):
        km = KeyMaterial(capacity=16, lock_memory=False)
        km.write(b"abcdefghijklmnop")
        km.write(b"xyz")
        assert km.data == b"xyz"

    def test_write_beyond_capacity_rejected(self):
        km = KeyMaterial(capacity=4, lock_memory=False)
        with pytest.raises(ValueError):
            km.write(b"12345")

    def test_set_used_length_after_in_place_write(self):
        km = KeyMaterial(capacity=8, lock_memory=False)
        view = km.writable()
        view[:3] = b"abc"
        del view
        km.set_used_length(3)
        km.truncate()
        assert km.data == b"abc"
        with pytest.raises(ValueError):
            km.set_used_length(4)

    def test_wipe(self):
        km = KeyMaterial.from_bytes(b"secret", lock_memory=False)
        km.wipe()
        km.wipe()
        assert km.is_wiped
        assert len(km) == 0
        with pytest.raises(ValueError):
            _ = km.data
        assert repr(km) == "KeyMaterial(WIPED)"

    def test_context_manager_wipes(self):
        with KeyMaterial.from_bytes(b"secret", lock_memory=False) as km:
            assert km.data == b"secret"
        assert km.is_wiped

    def test_repr_hides_content(self):
        km = KeyMaterial.from_bytes(b"topsecret", lock_memory=False)
        assert "topsecret" not in repr(km)

    def test_negative_capacity_rejected(self):
        with pytest.raises(ValueError):
            KeyMaterial(capacity=-1, lock_memory=False)

    def test_lock_memory_follows_config(self, monkeypatch):
        monkeypatch.setenv("SEALEDSESSION_SECURITY__LOCK_MEMORY", "false")
        assert KeyMaterial(capacity=32).is_locked is False

    def test_max_size_bound(self):
        with pytest.raises(ValueError):
            KeyMaterial(capacity=33, lock_memory=False, max_size=32)
        assert KeyMaterial(capacity=33, lock_memory=False, max_size=None).capacity == 33

    def test_repr_of_rejected_buffer(self):
        with pytest.raises(ValueError) as exc:
            KeyMaterial(capacity=-1, lock_memory=False)
        partial = exc.traceback[-1].frame.f_locals["self"]
        assert repr(partial) == "KeyMaterial(used_length=0, capacity=0)"


class TestZeroization:
    """Tests for secure_zero and ZeroizeContext"""

    def test_secure_zero_bytearray(self):
        buf = bytearray(b"\xff" * 16)
        secure_zero(buf)
        assert buf == bytearray(16)

    def test_secure_zero_memoryview_slice(self):
        buf = bytearray(b"\xff" * 8)
        secure_zero(memoryview(buf)[4:])
        assert buf == b"\xff" * 4 + b"\x00" * 4

    def test_zeroize_context_on_error(self):
        buf = bytearray(b"key material")
        with pytest.raises(RuntimeError):
            with ZeroizeContext(buf):
                raise RuntimeError()
        assert buf == bytearray(len(b"key material"))


class _Resource:
    kind = "test_resource"

    def __init__(self, ledger=None):
        self.released = 0
        self._ledger = ledger
        if ledger is not None:
            ledger.acquired(self)

    def release(self):
        if self.released:
            return
        self.released += 1
        if self._ledger is not None:
            self._ledger.released(self)


class TestReleaseGuard:
    """Tests for scope-bound release"""

    def test_releases_on_exception(self):
        a, b = _Resource(), _Resource()
        with pytest.raises(KeyError):
            with ReleaseGuard() as guard:
                guard.track(a)
                guard.track(b)
                raise KeyError()
        assert a.released == b.released == 1

    def test_commit_hands_over_ownership(self):
        a = _Resource()
        with ReleaseGuard() as guard:
            guard.track(a)
            guard.commit()
        assert a.released == 0

    def test_releases_without_commit(self):
        a = _Resource()
        with ReleaseGuard() as guard:
            guard.track(a)
        assert a.released == 1


class TestResourceLedger:
    """Tests for release accounting"""

    def test_singleton(self):
        assert ResourceLedger() is ResourceLedger()

    def test_counts(self, ledger):
        r = _Resource(ledger)
        assert ledger.acquired_count("test_resource") == 1
        assert ledger.live_count("test_resource") == 1
        r.release()
        assert ledger.released_count("test_resource") == 1
        assert ledger.live_count() == 0

    def test_double_release_report_raises(self, ledger):
        r = _Resource(ledger)
        ledger.released(r)
        with pytest.raises(RuntimeError):
            ledger.released(r)

    def test_release_all(self, ledger):
        resources = [_Resource(ledger) for _ in range(3)]
        assert ledger.release_all() == 3
        assert all(r.released == 1 for r in resources)
        assert ledger.live_count() == 0
