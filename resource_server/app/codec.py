"""
URL-safe, padding-free base64 used for every key and signature on the wire.

encode() maps '+' to '-', '/' to '_' and strips '=' padding.
decode() reverses it. The pad count is rebuilt from the token length alone:

    pad = 3 - ((len(token) - 1) % 4)

    len % 4 == 0  ->  0 pad   (whole 3-byte groups)
    len % 4 == 2  ->  2 pad   (1 trailing byte)
    len % 4 == 3  ->  1 pad   (2 trailing bytes)
    len % 4 == 1  ->  never produced by encode(); always a DecodeError

The empty token gives pad 0 because Python's modulo is non-negative.
"""
import base64
import binascii
import re

from .errors import DecodeError

# Character for an all-zero 6-bit group. Any buffer whose first byte is 0 or 1
# encodes to a token starting with this character.
ZERO_CHAR = "A"

_TOKEN_RE = re.compile(r"[A-Za-z0-9_-]*")
_TO_STANDARD = str.maketrans("-_", "+/")


def padding_length(token_length: int) -> int:
    """Return the number of '=' characters a standard decoder needs."""
    return 3 - ((token_length - 1) % 4)


def decoded_length(token_length: int) -> int:
    """Return the byte count a well-formed token of this length decodes to."""
    return token_length * 6 // 8


def encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(bytes(data)).decode("ascii").rstrip("=")


def decode(token: str) -> bytes:
    """Decode a padding-free URL-safe token.

    Raises DecodeError for non-string input, characters outside the URL-safe
    alphabet (including '+', '/' and '='), impossible lengths, and tokens whose
    unused trailing bits are not zero.
    """
    if not isinstance(token, str):
        raise DecodeError(f"expected a text token, got {type(token).__name__}")
    if not _TOKEN_RE.fullmatch(token):
        raise DecodeError("token contains characters outside the URL-safe alphabet")
    if len(token) % 4 == 1:
        raise DecodeError(f"token length {len(token)} cannot encode whole bytes")
    padded = token.translate(_TO_STANDARD) + "=" * padding_length(len(token))
    try:
        data = base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"invalid token: {exc}") from exc
    # unused trailing bits must be zero, so each byte string has exactly one token
    if encode(data) != token:
        raise DecodeError("token has non-zero trailing bits")
    return data
