"""
Client side of the protocol: build signed Authorization headers and fetch
protected resources from a running server.
"""
from __future__ import annotations

import time
from typing import Optional

import requests

from . import signing
from .auth import build_payload
from .keys import KeyMaterial


def now_millis() -> str:
    return str(int(time.time() * 1000))


def authorization_header(key: KeyMaterial, user: str, identity: str, timestamp: Optional[str] = None) -> str:
    """Return `timestamp,signature` for the given user and server identity."""
    timestamp = timestamp or now_millis()
    return f"{timestamp},{signing.sign(key, build_payload(user, identity, timestamp))}"


class ResourceClient:
    """Fetches protected paths, signing each request with key."""

    def __init__(self, base_url: str, key: KeyMaterial, user: str,
                 session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.key = key
        self.user = user
        self.timeout = timeout
        self._session = session or requests.Session()
        self._identity: Optional[str] = None

    @property
    def identity(self) -> str:
        """The server's identity string, fetched once from /identity."""
        if self._identity is None:
            response = self._session.get(f"{self.base_url}/identity", timeout=self.timeout)
            response.raise_for_status()
            self._identity = response.text.strip()
        return self._identity

    def get(self, path: str) -> requests.Response:
        header = authorization_header(self.key, self.user, self.identity)
        response = self._session.get(
            f"{self.base_url}/resource/{path.lstrip('/')}",
            headers={"Authorization": header},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response
