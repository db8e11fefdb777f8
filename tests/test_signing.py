"""
Unit tests for the signature engine.

Tests that signatures round-trip, that the signer's key can be recovered, and
that tampered or malformed signatures fail closed.
"""
import hashlib
import random
import string
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from resource_server.app import codec, signing
from resource_server.app.errors import DecodeError, RecoveryError, SigningError
from resource_server.app.keys import KeyMaterial, get_curve


def test_message_hash_matches_sha256():
    assert signing.message_hash("héllo") == hashlib.sha256("héllo".encode("utf-8")).digest()
    assert len(signing.message_hash("")) == 32


@pytest.mark.parametrize("message", ["", "hello", "alice,localhost~3002,1700000000", "ünïcødé ✓"])
def test_signature_round_trip(message):
    key = KeyMaterial.generate()
    sig = signing.sign(key, message)
    assert isinstance(sig, str)
    assert signing.verify(key.public_only(), message, sig) is True


@pytest.mark.parametrize("curve", ["p256", "p384", "p521"])
def test_signature_round_trip_other_curves(curve):
    key = KeyMaterial.generate(curve)
    sig = signing.sign(key, "payload")
    assert signing.verify(key, "payload", sig) is True
    assert signing.recover_public_key("payload", sig, curve) == key


def test_signing_is_deterministic():
    key = KeyMaterial.generate()
    assert signing.sign(key, "same message") == signing.sign(key, "same message")


def test_signature_has_fixed_layout():
    key = KeyMaterial.generate()
    raw = codec.decode(codec.ZERO_CHAR + signing.sign(key, "m"))
    assert len(raw) == 1 + 2 * get_curve("secp256k1").order_size
    assert raw[0] in (0, 1)


def test_recovery_returns_signer():
    for i in range(20):
        key = KeyMaterial.generate()
        message = f"message {i}"
        recovered = signing.recover_public_key(message, signing.sign(key, message))
        assert recovered.public_encoded() == key.public_encoded()
        assert not recovered.has_private


def test_wrong_message_fails():
    key = KeyMaterial.generate()
    sig = signing.sign(key, "alice,localhost~3002,1")
    assert signing.verify(key, "alice,localhost~3002,2", sig) is False


def test_wrong_key_fails():
    sig = signing.sign(KeyMaterial.generate(), "m")
    assert signing.verify(KeyMaterial.generate(), "m", sig) is False


def test_any_single_byte_flip_fails():
    rng = random.Random(7)
    key = KeyMaterial.generate()
    sig = signing.sign(key, "tamper me")
    raw = codec.decode(codec.ZERO_CHAR + sig)
    for _ in range(200):
        position = rng.randrange(len(raw))
        flipped = bytearray(raw)
        # the dropped leading character holds the top six bits of byte 0
        mask = rng.randrange(1, 4) if position == 0 else rng.randrange(1, 256)
        flipped[position] ^= mask
        tampered = codec.encode(bytes(flipped))[1:]
        assert signing.verify(key, "tamper me", tampered) is False


def test_recovery_byte_flip_fails():
    key = KeyMaterial.generate()
    raw = bytearray(codec.decode(codec.ZERO_CHAR + signing.sign(key, "m")))
    raw[0] ^= 1
    assert signing.verify(key, "m", codec.encode(bytes(raw))[1:]) is False


@pytest.mark.parametrize("bad", ["", "A", "B", "!!!", "A" * 5, "+/==", "a,b", "\x00", "é" * 10, None, 42])
def test_verify_never_raises(bad):
    key = KeyMaterial.generate()
    assert signing.verify(key, "m", bad) is False


def test_verify_rejects_odd_body():
    key = KeyMaterial.generate()
    raw = codec.decode(codec.ZERO_CHAR + signing.sign(key, "m"))
    assert signing.verify(key, "m", codec.encode(raw[:-1])[1:]) is False


def test_leading_character_invariant():
    curve = get_curve("secp256k1")
    for i in range(1000):
        key = KeyMaterial.generate()
        sig = signing.sign(key, f"msg-{i}")
        recovery_param, r, s = signing.unpack_signature(sig)
        assert recovery_param in (0, 1)
        full = signing.encode_signature(recovery_param, r, s, curve)
        assert full[0] == codec.ZERO_CHAR
        assert full[1:] == sig


def test_unpack_rejects_malformed():
    with pytest.raises(DecodeError):
        signing.unpack_signature("@@@")
    with pytest.raises(DecodeError):
        signing.unpack_signature("")


def test_recover_rejects_bad_recovery_param():
    curve = get_curve("secp256k1")
    sig = signing.sign(KeyMaterial.generate(), "m")
    _, r, s = signing.unpack_signature(sig)
    forged = signing.encode_signature(2, r, s, curve)[1:]
    with pytest.raises(RecoveryError):
        signing.recover_public_key("m", forged)


def test_recover_rejects_zero_r():
    curve = get_curve("secp256k1")
    forged = signing.encode_signature(0, 0, 1, curve)[1:]
    with pytest.raises(RecoveryError):
        signing.recover_public_key("m", forged)


def test_recover_rejects_r_without_curve_point():
    curve = get_curve("secp256k1")
    failures = 0
    for candidate in range(1, 60):
        forged = signing.encode_signature(0, candidate, 1, curve)[1:]
        try:
            signing.recover_public_key("m", forged)
        except RecoveryError:
            failures += 1
    assert failures > 0


def test_recover_rejects_malformed_token():
    with pytest.raises(DecodeError):
        signing.recover_public_key("m", "not base64!")


_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-_"


def test_trailing_bit_variant_of_signature_fails():
    key = KeyMaterial.generate()
    sig = signing.sign(key, "m")
    alt = sig[:-1] + _ALPHABET[_ALPHABET.index(sig[-1]) ^ 1]
    assert alt != sig
    assert signing.verify(key, "m", alt) is False
    with pytest.raises(DecodeError):
        signing.recover_public_key("m", alt)


def test_sign_refuses_layout_without_zero_leading_char(monkeypatch):
    monkeypatch.setattr(signing, "encode_signature", lambda *args: "B" * 87)
    with pytest.raises(SigningError):
        signing.sign(KeyMaterial.generate(), "m")
