"""
Runtime settings.

Values come from keyword overrides (CLI flags) first, then RS_* environment
variables, then defaults. A .env file is loaded by the CLI before this runs.
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError
from .keys import DEFAULT_CURVE, get_curve

log = logging.getLogger("resource_server")

DEFAULT_PORT = 3002
DEFAULT_HOST = "0.0.0.0"
DEFAULT_TRUST_URL = "https://api.ellx.io/certificate"
DEFAULT_TRUST_TIMEOUT = 10.0

# user and identity are comma-delimited fields of the signed payload
_FIELD_RE = re.compile(r"[A-Za-z0-9._~@-]+")


@dataclass(frozen=True)
class Settings:
    user: str
    identity: str
    trust_url: str = DEFAULT_TRUST_URL
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    root: Path = Path(".").resolve()
    curve: str = DEFAULT_CURVE
    trust_timeout: float = DEFAULT_TRUST_TIMEOUT
    max_skew_seconds: Optional[float] = None


def _pick(override, env_name: str, default=None):
    if override is not None:
        return override
    value = os.getenv(env_name)
    if value is None or value == "":
        return default
    return value


def _check_field(name: str, value: str) -> None:
    if "," in value:
        raise ConfigError(f"{name} must not contain ',': {value!r}")
    if not _FIELD_RE.fullmatch(value):
        log.warning("%s %r contains unusual characters; clients must sign it byte-for-byte", name, value)


def load_settings(
    user: Optional[str] = None,
    trust_url: Optional[str] = None,
    identity: Optional[str] = None,
    port: Optional[int] = None,
    host: Optional[str] = None,
    root: Optional[str] = None,
    curve: Optional[str] = None,
    max_skew_seconds: Optional[float] = None,
) -> Settings:
    user = _pick(user, "RS_USER")
    if not user:
        raise ConfigError("Please provide your user name using -u <username> option")

    try:
        port = int(_pick(port, "RS_PORT", DEFAULT_PORT))
        trust_timeout = float(os.getenv("RS_TRUST_TIMEOUT") or DEFAULT_TRUST_TIMEOUT)
        skew = _pick(max_skew_seconds, "RS_MAX_SKEW_SECONDS")
        skew = float(skew) if skew is not None else None
    except ValueError as exc:
        raise ConfigError(f"invalid numeric setting: {exc}") from exc

    curve = _pick(curve, "RS_CURVE", DEFAULT_CURVE)
    try:
        get_curve(curve)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    identity = _pick(identity, "RS_IDENTITY", f"localhost~{port}")
    _check_field("user", user)
    _check_field("identity", identity)

    root_path = Path(os.getcwd(), _pick(root, "RS_ROOT", ".")).resolve()

    return Settings(
        user=user,
        identity=identity,
        trust_url=_pick(trust_url, "RS_TRUST_URL", DEFAULT_TRUST_URL),
        port=port,
        host=_pick(host, "RS_HOST", DEFAULT_HOST),
        root=root_path,
        curve=curve,
        trust_timeout=trust_timeout,
        max_skew_seconds=skew,
    )
