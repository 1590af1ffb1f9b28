"""
Shared fixtures, including an independent reference recipient.

The recipient is written against hashlib/hmac and cryptography's X25519
and AESGCM directly, so round-trip tests check the hybrid_pke sender
against a second implementation of the RFC 9180 key schedule.
"""

import hashlib
import hmac
import os

import pytest
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from sealedsession.core.config import SessionConfig
from sealedsession.core.memory.zeroization import ResourceLedger


def _extract(salt, ikm):
    return hmac.new(salt or bytes(32), ikm, hashlib.sha256).digest()


def _expand(prk, info, length):
    out, block, counter = b"", b"", 1
    while len(out) < length:
        block = hmac.new(prk, block + info + bytes([counter]), hashlib.sha256).digest()
        out += block
        counter += 1
    return out[:length]


def _labeled_extract(suite_id, salt, label, ikm):
    return _extract(salt, b"HPKE-v1" + suite_id + label + ikm)


def _labeled_expand(suite_id, prk, label, info, length):
    return _expand(prk, length.to_bytes(2, "big") + b"HPKE-v1" + suite_id + label + info, length)


KEM_SUITE = b"KEM\x00\x20"
HPKE_SUITE = b"HPKE\x00\x20\x00\x01\x00\x02"


def raw_public_bytes(key):
    return key.public_bytes(Encoding.Raw, PublicFormat.Raw)


class ReferenceRecipient:
    """Base-mode HPKE recipient for DHKEM(X25519)/HKDF-SHA256/AES-256-GCM."""

    def __init__(self, private_key, enc, info):
        pk_e = X25519PublicKey.from_public_bytes(enc)
        dh = private_key.exchange(pk_e)
        kem_context = enc + raw_public_bytes(private_key.public_key())
        eae_prk = _labeled_extract(KEM_SUITE, b"", b"eae_prk", dh)
        shared_secret = _labeled_expand(KEM_SUITE, eae_prk, b"shared_secret", kem_context, 32)

        psk_id_hash = _labeled_extract(HPKE_SUITE, b"", b"psk_id_hash", b"")
        info_hash = _labeled_extract(HPKE_SUITE, b"", b"info_hash", info)
        context = b"\x00" + psk_id_hash + info_hash
        secret = _labeled_extract(HPKE_SUITE, shared_secret, b"secret", b"")

        self.key = _labeled_expand(HPKE_SUITE, secret, b"key", context, 32)
        self.base_nonce = _labeled_expand(HPKE_SUITE, secret, b"base_nonce", context, 12)
        self.exporter_secret = _labeled_expand(HPKE_SUITE, secret, b"exp", context, 32)
        self.seq = 0

    def nonce(self, seq):
        seq_bytes = seq.to_bytes(12, "big")
        return bytes(a ^ b for a, b in zip(self.base_nonce, seq_bytes))

    def open(self, ciphertext, aad=b""):
        plaintext = AESGCM(self.key).decrypt(self.nonce(self.seq), ciphertext, aad)
        self.seq += 1
        return plaintext

    def open_at(self, seq, ciphertext, aad=b""):
        return AESGCM(self.key).decrypt(self.nonce(seq), ciphertext, aad)

    def export(self, exporter_context, length):
        return _labeled_expand(HPKE_SUITE, self.exporter_secret, b"sec", exporter_context, length)

    def seal_response(self, plaintext, aad=b""):
        """Seal a response the way the responder does: exported key, fixed nonce."""
        key = self.export(b"response_key", 32)
        nonce = self.export(b"response_nonce", 12)
        return AESGCM(key).encrypt(nonce, plaintext, aad)


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Fresh config singleton and resource ledger for every test."""
    for name in list(os.environ):
        if name.startswith("SEALEDSESSION_"):
            monkeypatch.delenv(name, raising=False)
    SessionConfig.reset_instance()
    ResourceLedger().reset()
    yield
    SessionConfig.reset_instance()


@pytest.fixture
def ledger():
    return ResourceLedger()


@pytest.fixture
def recipient_private_key():
    return X25519PrivateKey.generate()


@pytest.fixture
def recipient_public_key(recipient_private_key):
    return raw_public_bytes(recipient_private_key.public_key())


@pytest.fixture
def make_recipient(recipient_private_key):
    def _make(source, info):
        enc = getattr(source, "encapsulated_key", source)
        return ReferenceRecipient(recipient_private_key, bytes(enc), info)
    return _make
