"""TLS client certificate authentication."""

from __future__ import annotations

import os
from collections.abc import MutableMapping
from dataclasses import dataclass

from .base import AuthStrategy


@dataclass(slots=True)
class CertificateAuth(AuthStrategy):
    """Present a client certificate trusted by the LXD server."""

    cert_path: str
    key_path: str | None = None

    def apply(self, headers: MutableMapping[str, str]) -> None:
        # Credentials travel in the TLS handshake, not in headers.
        return None

    def client_cert(self) -> str | tuple[str, str]:
        cert = os.path.expanduser(self.cert_path)
        if self.key_path:
            return (cert, os.path.expanduser(self.key_path))
        return cert
