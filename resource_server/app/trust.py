"""
Trust anchor: the single public key this instance verifies signatures against.

Fetched once at startup with a blocking GET to the configured authority. Any
failure is fatal: the server must not accept protected requests without it.
The resulting TrustAnchor is immutable and is handed to the app explicitly;
there is no refresh path, rotating trust requires a restart.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .errors import DecodeError, TrustAnchorFetchError
from .keys import DEFAULT_CURVE, KeyMaterial

log = logging.getLogger("resource_server.trust")


@dataclass(frozen=True)
class TrustAnchor:
    url: str
    key: KeyMaterial

    @property
    def certificate(self) -> str:
        return self.key.public_encoded()

    @classmethod
    def from_certificate(cls, url: str, certificate: str, curve: str = DEFAULT_CURVE) -> "TrustAnchor":
        try:
            key = KeyMaterial.from_public_encoded(certificate.strip(), curve)
        except DecodeError as exc:
            raise TrustAnchorFetchError(f"{url} returned an invalid certificate: {exc}") from exc
        return cls(url=url, key=key)

    @classmethod
    def fetch(
        cls,
        url: str,
        curve: str = DEFAULT_CURVE,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> "TrustAnchor":
        http = session or requests
        try:
            response = http.get(url, timeout=timeout)
        except requests.RequestException as exc:
            raise TrustAnchorFetchError(f"could not fetch {url}: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise TrustAnchorFetchError(f"{url}: {response.status_code} {response.reason}")

        certificate = response.text
        anchor = cls.from_certificate(url, certificate, curve)
        log.info("Successfully fetched %s: %s", url, certificate.strip())
        return anchor
