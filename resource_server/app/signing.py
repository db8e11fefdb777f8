"""
Recoverable ECDSA signatures over SHA-256, packed for text channels.

Packed layout (no length fields):

    [recovery_param: 1 byte] [r: order_size bytes] [s: order_size bytes]

r and s are left-padded to the curve order width, so the r/s boundary is the
midpoint of everything after the first byte. The packed buffer is encoded with
codec.encode() and its first character is dropped: recovery_param is 0 or 1,
so the first 6-bit group is always zero and the first character is always
codec.ZERO_CHAR. Decoders put it back before decoding. This holds only for
this byte layout together with this alphabet; change them together.

Signing and verification use `cryptography` (RFC 6979 deterministic nonces).
Public-key recovery uses `ecdsa`, which `cryptography` does not expose.
"""
import hashlib

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed, decode_dss_signature, encode_dss_signature,
)
from ecdsa import VerifyingKey
from ecdsa.errors import MalformedPointError
from ecdsa.numbertheory import Error as NumberTheoryError
from ecdsa.util import sigdecode_string, sigencode_string

from . import codec
from .errors import DecodeError, RecoveryError, SigningError
from .keys import DEFAULT_CURVE, Curve, KeyMaterial, get_curve


def message_hash(message: str) -> bytes:
    """Return the SHA-256 digest of the UTF-8 bytes of message."""
    return hashlib.sha256(message.encode("utf-8")).digest()


_SIGN_ALGORITHM = ec.ECDSA(Prehashed(hashes.SHA256()), deterministic_signing=True)
_VERIFY_ALGORITHM = ec.ECDSA(Prehashed(hashes.SHA256()))


def _recover_candidates(digest: bytes, r: int, s: int, curve: Curve) -> list:
    """Return the two public keys (as (x, y)) consistent with (r, s) over digest.

    Index 0 corresponds to the R point with even y, index 1 to odd y.
    """
    signature = sigencode_string(r, s, curve.order)
    try:
        verifying_keys = VerifyingKey.from_public_key_recovery_with_digest(
            signature,
            digest,
            curve.ecdsa_curve,
            hashfunc=hashlib.sha256,
            sigdecode=sigdecode_string,
            allow_truncate=True,
        )
    except (NumberTheoryError, MalformedPointError, ValueError) as exc:
        raise RecoveryError(f"no curve point for r: {exc}") from exc
    return [(int(vk.pubkey.point.x()), int(vk.pubkey.point.y())) for vk in verifying_keys]


def pack_signature(recovery_param: int, r: int, s: int, curve: Curve) -> bytes:
    size = curve.order_size
    return bytes([recovery_param]) + r.to_bytes(size, "big") + s.to_bytes(size, "big")


def encode_signature(recovery_param: int, r: int, s: int, curve: Curve) -> str:
    """Return the full codec token of a packed signature, leading char included."""
    return codec.encode(pack_signature(recovery_param, r, s, curve))


def unpack_signature(signature: str) -> tuple:
    """Split a stripped signature token into (recovery_param, r, s).

    Raises DecodeError when the token is not valid codec input or the bytes
    after the recovery byte cannot be split into two equal halves.
    """
    raw = codec.decode(codec.ZERO_CHAR + signature)
    body = raw[1:]
    if not body or len(body) % 2:
        raise DecodeError(f"signature body of {len(body)} bytes cannot be split into r and s")
    half = len(body) // 2
    return raw[0], int.from_bytes(body[:half], "big"), int.from_bytes(body[half:], "big")


def sign(key: KeyMaterial, message: str) -> str:
    """Sign message with the private part of key; return the stripped token."""
    curve = key.curve
    digest = message_hash(message)
    der = key.private_key.sign(digest, _SIGN_ALGORITHM)
    r, s = decode_dss_signature(der)

    candidates = _recover_candidates(digest, r, s, curve)
    recovery_param = candidates.index(key.public_point)

    token = encode_signature(recovery_param, r, s, curve)
    if not token.startswith(codec.ZERO_CHAR):
        raise SigningError("packed signature must start with a zero 6-bit group")
    return token[1:]


def _check_unpacked(recovery_param: int, r: int, s: int, curve: Curve) -> None:
    if recovery_param > 1:
        raise RecoveryError(f"recovery parameter {recovery_param} is not 0 or 1")
    if not (1 <= r < curve.order and 1 <= s < curve.order):
        raise RecoveryError("r or s is outside [1, n-1]")


def _verify(key: KeyMaterial, message: str, signature: str) -> bool:
    curve = key.curve
    recovery_param, r, s = unpack_signature(signature)
    _check_unpacked(recovery_param, r, s, curve)
    digest = message_hash(message)
    try:
        key.public_key.verify(encode_dss_signature(r, s), digest, _VERIFY_ALGORITHM)
    except InvalidSignature:
        return False
    # The recovery byte is part of the signed token; a flipped byte must not verify.
    return _recover_candidates(digest, r, s, curve)[recovery_param] == key.public_point


def verify(key: KeyMaterial, message: str, signature: str) -> bool:
    """Return True iff signature is a valid signature of message under key.

    Never raises: malformed tokens, out-of-range values and curve faults all
    return False.
    """
    try:
        return _verify(key, message, signature)
    except Exception:
        return False


def recover_public_key(message: str, signature: str, curve: str = DEFAULT_CURVE) -> KeyMaterial:
    """Reconstruct the signer's public key from message and signature alone.

    Raises DecodeError for a malformed token and RecoveryError when the
    recovery parameter or (r, s) are inconsistent with the curve.
    """
    params = get_curve(curve)
    recovery_param, r, s = unpack_signature(signature)
    _check_unpacked(recovery_param, r, s, params)
    x, y = _recover_candidates(message_hash(message), r, s, params)[recovery_param]
    try:
        return KeyMaterial.from_public_point(x, y, params.name)
    except DecodeError as exc:
        raise RecoveryError(str(exc)) from exc
