"""
Error kinds raised by the resource server.

Cryptographic decode/verify faults never cross the authentication boundary:
signing.verify() maps them to False and the gate maps False to a denial.
TrustAnchorFetchError and ConfigError are startup-only and abort the process.
"""


class ResourceServerError(Exception):
    """Base class for every error raised by this package."""


class DecodeError(ResourceServerError, ValueError):
    """Token is not valid URL-safe base64 or does not have the expected layout."""


class RecoveryError(ResourceServerError):
    """Recovery parameter or (r, s) do not correspond to any point on the curve."""


class MissingPrivateKeyError(ResourceServerError):
    """A private-key operation was requested on a public-only key."""


class UnsupportedCurveError(ResourceServerError, ValueError):
    pass


class TrustAnchorFetchError(ResourceServerError):
    """The trust anchor could not be fetched or decoded. Fatal at startup."""


class ConfigError(ResourceServerError):
    pass


class SigningError(ResourceServerError):
    """A produced signature does not have the packed layout decoders expect."""
