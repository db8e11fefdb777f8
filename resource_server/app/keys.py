"""
EC key material for a named curve.

A KeyMaterial holds a public point and optionally the private scalar. Keys are
carried on the wire as codec tokens:

  private key  ->  big-endian scalar, left-padded to the order width
  public key   ->  X || Y, each left-padded to the field width

Fixed-width coordinates keep the X/Y split point at the middle of the buffer
for every key, including keys whose X or Y has leading zero bytes.

Key generation, derivation and point validation use `cryptography`; the
`ecdsa` curve objects supply the group parameters needed for public-key
recovery in signing.py.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import ecdsa
from cryptography.hazmat.primitives.asymmetric import ec

from . import codec
from .errors import DecodeError, MissingPrivateKeyError, UnsupportedCurveError

DEFAULT_CURVE = "secp256k1"


@dataclass(frozen=True)
class Curve:
    name: str
    ec_curve: ec.EllipticCurve
    ecdsa_curve: ecdsa.curves.Curve

    @property
    def order(self) -> int:
        return self.ecdsa_curve.order

    @property
    def order_size(self) -> int:
        """Byte width of the group order (private scalar, r and s)."""
        return (self.order.bit_length() + 7) // 8

    @property
    def field_size(self) -> int:
        """Byte width of a point coordinate."""
        return (self.ecdsa_curve.curve.p().bit_length() + 7) // 8


_CURVES = {
    "secp256k1": Curve("secp256k1", ec.SECP256K1(), ecdsa.SECP256k1),
    "p256": Curve("p256", ec.SECP256R1(), ecdsa.NIST256p),
    "p384": Curve("p384", ec.SECP384R1(), ecdsa.NIST384p),
    "p521": Curve("p521", ec.SECP521R1(), ecdsa.NIST521p),
}
_ALIASES = {
    "secp256r1": "p256",
    "prime256v1": "p256",
    "secp384r1": "p384",
    "secp521r1": "p521",
}


def get_curve(name: str) -> Curve:
    """Look up a supported curve by name (case-insensitive)."""
    key = (name or "").lower()
    key = _ALIASES.get(key, key)
    try:
        return _CURVES[key]
    except KeyError:
        raise UnsupportedCurveError(
            f"unsupported curve {name!r}; expected one of {sorted(_CURVES) + sorted(_ALIASES)}"
        ) from None


def supported_curves() -> list[str]:
    return sorted(_CURVES)


def int_to_bytes(value: int, size: int) -> bytes:
    return value.to_bytes(size, "big")


class KeyMaterial:
    """One EC key: public-only, or a full pair derived from a private scalar.

    Instances are immutable. Build them through the classmethods rather than
    the constructor.
    """

    __slots__ = ("_curve", "_private_key", "_public_key")

    def __init__(
        self,
        curve: Curve,
        public_key: ec.EllipticCurvePublicKey,
        private_key: Optional[ec.EllipticCurvePrivateKey] = None,
    ):
        object.__setattr__(self, "_curve", curve)
        object.__setattr__(self, "_public_key", public_key)
        object.__setattr__(self, "_private_key", private_key)

    def __setattr__(self, name, value):
        raise AttributeError("KeyMaterial is immutable")

    # Construction

    @classmethod
    def generate(cls, curve: str = DEFAULT_CURVE) -> "KeyMaterial":
        params = get_curve(curve)
        private_key = ec.generate_private_key(params.ec_curve)
        return cls(params, private_key.public_key(), private_key)

    @classmethod
    def from_private_value(cls, value: int, curve: str = DEFAULT_CURVE) -> "KeyMaterial":
        params = get_curve(curve)
        if not 1 <= value < params.order:
            raise DecodeError("private scalar is outside [1, n-1]")
        private_key = ec.derive_private_key(value, params.ec_curve)
        return cls(params, private_key.public_key(), private_key)

    @classmethod
    def from_private_encoded(cls, token: str, curve: str = DEFAULT_CURVE) -> "KeyMaterial":
        raw = codec.decode(token)
        if not raw:
            raise DecodeError("empty private key")
        return cls.from_private_value(int.from_bytes(raw, "big"), curve)

    @classmethod
    def from_public_point(cls, x: int, y: int, curve: str = DEFAULT_CURVE) -> "KeyMaterial":
        params = get_curve(curve)
        try:
            public_key = ec.EllipticCurvePublicNumbers(x, y, params.ec_curve).public_key()
        except ValueError as exc:
            raise DecodeError(f"point is not on {params.name}: {exc}") from exc
        return cls(params, public_key)

    @classmethod
    def from_public_encoded(cls, token: str, curve: str = DEFAULT_CURVE) -> "KeyMaterial":
        """Decode an X || Y token. Both halves must be exactly the field width."""
        params = get_curve(curve)
        raw = codec.decode(token)
        if len(raw) != 2 * params.field_size:
            raise DecodeError(
                f"public key for {params.name} must be {2 * params.field_size} bytes, got {len(raw)}"
            )
        half = len(raw) // 2
        x = int.from_bytes(raw[:half], "big")
        y = int.from_bytes(raw[half:], "big")
        return cls.from_public_point(x, y, params.name)

    # Accessors

    @property
    def curve(self) -> Curve:
        return self._curve

    @property
    def has_private(self) -> bool:
        return self._private_key is not None

    @property
    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self._public_key

    @property
    def private_key(self) -> ec.EllipticCurvePrivateKey:
        if self._private_key is None:
            raise MissingPrivateKeyError("key has no private part")
        return self._private_key

    @property
    def public_point(self) -> tuple[int, int]:
        numbers = self._public_key.public_numbers()
        return numbers.x, numbers.y

    def public_only(self) -> "KeyMaterial":
        return KeyMaterial(self._curve, self._public_key)

    # Encodings

    def private_bytes(self) -> bytes:
        value = self.private_key.private_numbers().private_value
        return int_to_bytes(value, self._curve.order_size)

    def public_bytes(self) -> bytes:
        x, y = self.public_point
        size = self._curve.field_size
        return int_to_bytes(x, size) + int_to_bytes(y, size)

    def private_encoded(self) -> str:
        return codec.encode(self.private_bytes())

    def public_encoded(self) -> str:
        return codec.encode(self.public_bytes())

    def __eq__(self, other):
        if not isinstance(other, KeyMaterial):
            return NotImplemented
        return self._curve.name == other._curve.name and self.public_point == other.public_point

    def __hash__(self):
        return hash((self._curve.name, self.public_point))

    def __repr__(self):
        kind = "pair" if self.has_private else "public"
        return f"KeyMaterial({self._curve.name}, {kind}, {self.public_encoded()[:12]}...)"
