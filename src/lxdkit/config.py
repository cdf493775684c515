"""Configuration helpers for the LXD client."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from . import __version__

API_ENDPOINT = "https://localhost:8443"
MEDIA_TYPE = "application/json"
USER_AGENT = f"lxdkit/{__version__}"
CLIENT_CERT = os.path.join("~", ".config", "lxc", "client.crt")
CLIENT_KEY = os.path.join("~", ".config", "lxc", "client.key")

_FALSEY = {"0", "false", "no", "off"}
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class ClientConfig:
    """Typed configuration for `LXDClient`."""

    api_endpoint: str = API_ENDPOINT
    auto_sync: bool = True
    verify_ssl: bool | str = True
    timeout: float = 30.0
    client_cert: str | None = None
    client_key: str | None = None
    user_agent: str = USER_AGENT
    default_media_type: str = MEDIA_TYPE
    proxy: str | None = None
    default_headers: Mapping[str, str] | None = None

    def resolved_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Accept": self.default_media_type,
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }
        if self.default_headers:
            headers.update(self.default_headers)
        return headers

    def resolved_proxies(self) -> dict[str, str] | None:
        if not self.proxy:
            return None
        return {"http": self.proxy, "https": self.proxy}

    def resolved_cert(self) -> str | tuple[str, str] | None:
        """Return the client certificate in the form `requests` accepts.

        Files that do not exist are skipped, mirroring the `lxc` tool which
        silently runs unauthenticated until a certificate is generated.
        """

        if not self.client_cert:
            return None
        cert = os.path.expanduser(self.client_cert)
        if not os.path.exists(cert):
            return None
        if self.client_key:
            key = os.path.expanduser(self.client_key)
            if os.path.exists(key):
                return (cert, key)
        return cert


def parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in _FALSEY


def default_config(environ: Mapping[str, str] | None = None) -> ClientConfig:
    """Build the default configuration from ``LXDKIT_*`` variables.

    The environment is only read, never modified; pass an explicit mapping
    to avoid touching ``os.environ`` at all.
    """

    env = os.environ if environ is None else environ
    verify_raw = env.get("LXDKIT_VERIFY_SSL")
    verify_ssl: bool | str
    if verify_raw is not None and verify_raw.strip().lower() not in _FALSEY | _TRUTHY:
        # Anything other than a boolean is a CA bundle path.
        verify_ssl = verify_raw
    else:
        verify_ssl = parse_bool(verify_raw, True)
    return ClientConfig(
        api_endpoint=env.get("LXDKIT_API_ENDPOINT") or API_ENDPOINT,
        auto_sync=parse_bool(env.get("LXDKIT_AUTO_SYNC"), True),
        verify_ssl=verify_ssl,
        client_cert=env.get("LXDKIT_CLIENT_CERT") or CLIENT_CERT,
        client_key=env.get("LXDKIT_CLIENT_KEY") or CLIENT_KEY,
        user_agent=env.get("LXDKIT_USER_AGENT") or USER_AGENT,
        default_media_type=env.get("LXDKIT_DEFAULT_MEDIA_TYPE") or MEDIA_TYPE,
        proxy=env.get("LXDKIT_PROXY") or None,
    )


__all__ = ["ClientConfig", "default_config", "parse_bool"]
