"""
Signature gate for protected routes.

Clients send `Authorization: <timestamp>,<signature>` where signature signs

    <user_id>,<identity>,<timestamp>

with the key matching the trust anchor. The gate produces a Decision; the HTTP
layer turns a denial into 401 (missing or malformed header) or 403 (bad
signature).
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from fastapi import Header, HTTPException, Request

from . import signing
from .trust import TrustAnchor

log = logging.getLogger("resource_server.auth")

# Timestamps above this are taken as milliseconds since the epoch.
_MILLIS_THRESHOLD = 10 ** 11


class DenyReason(str, Enum):
    MISSING_CREDENTIALS = "MissingCredentials"
    MALFORMED_CREDENTIALS = "MalformedCredentials"
    FORBIDDEN = "Forbidden"


DENY_STATUS = {
    DenyReason.MISSING_CREDENTIALS: 401,
    DenyReason.MALFORMED_CREDENTIALS: 401,
    DenyReason.FORBIDDEN: 403,
}

DENY_MESSAGES = {
    DenyReason.MISSING_CREDENTIALS: "No authorization header",
    DenyReason.MALFORMED_CREDENTIALS: "Malformed authorization header",
    DenyReason.FORBIDDEN: "Forbidden",
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)

    @property
    def status_code(self) -> int:
        return 200 if self.allowed else DENY_STATUS[self.reason]

    @property
    def message(self) -> str:
        return "OK" if self.allowed else DENY_MESSAGES[self.reason]


def build_payload(user_id: str, identity: str, timestamp: str) -> str:
    """Return the exact string that is hashed and signed."""
    return f"{user_id},{identity},{timestamp}"


def parse_header(header: str) -> Optional[tuple]:
    """Split `timestamp,signature` on the first comma; None unless both are non-empty."""
    timestamp, sep, signature = header.partition(",")
    if not sep or not timestamp or not signature:
        return None
    return timestamp, signature


def _parse_epoch_seconds(timestamp: str) -> Optional[float]:
    try:
        value = int(timestamp)
    except ValueError:
        return None
    return value / 1000 if value > _MILLIS_THRESHOLD else float(value)


class AuthGate:
    """Accept/reject decisions against one trust anchor.

    max_skew_seconds enables a freshness window on the timestamp field; None
    (the default) accepts any timestamp, so a captured header stays valid.
    """

    def __init__(
        self,
        anchor: TrustAnchor,
        user_id: str,
        identity: str,
        max_skew_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.anchor = anchor
        self.user_id = user_id
        self.identity = identity
        self.max_skew_seconds = max_skew_seconds
        self._clock = clock

    def _is_fresh(self, timestamp: str) -> bool:
        if self.max_skew_seconds is None:
            return True
        seconds = _parse_epoch_seconds(timestamp)
        if seconds is None:
            return False
        return abs(self._clock() - seconds) <= self.max_skew_seconds

    def decide(self, header: Optional[str]) -> Decision:
        if not header:
            return Decision.deny(DenyReason.MISSING_CREDENTIALS)

        parts = parse_header(header)
        if parts is None:
            return Decision.deny(DenyReason.MALFORMED_CREDENTIALS)
        timestamp, signature = parts

        if not self._is_fresh(timestamp):
            log.warning("stale or unparseable timestamp=%r", timestamp)
            return Decision.deny(DenyReason.FORBIDDEN)

        payload = build_payload(self.user_id, self.identity, timestamp)
        if not signing.verify(self.anchor.key, payload, signature):
            return Decision.deny(DenyReason.FORBIDDEN)
        return Decision.allow()


def authorize(header: Optional[str], user_id: str, identity: str, anchor: TrustAnchor) -> Decision:
    """One-shot decision without a long-lived gate."""
    return AuthGate(anchor, user_id, identity).decide(header)


def require_signature(request: Request, authorization: Optional[str] = Header(default=None)) -> str:
    """FastAPI dependency: raises 401/403 unless the Authorization header verifies.

    Returns the verified timestamp.
    """
    gate: AuthGate = request.app.state.auth_gate
    decision = gate.decide(authorization)
    if not decision.allowed:
        log.warning("denied %s %s reason=%s", request.method, request.url.path, decision.reason.value)
        raise HTTPException(status_code=decision.status_code, detail={"error": decision.message})
    return parse_header(authorization)[0]
