"""High-level LXD REST client."""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import replace
from typing import Any
from urllib.parse import urljoin, urlparse

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from .auth.base import AuthStrategy
from .config import ClientConfig, default_config
from .exceptions import APIError, RequestError, redact_url
from .http import HttpResponse, Timeout
from .http import request as http_request
from .resources import (
    ContainersResource,
    ImagesResource,
    OperationsResource,
    ProfilesResource,
)

logger = logging.getLogger(__name__)


class LXDClient:
    """Wrap LXD REST endpoints with helper methods.

    A client keeps the last response it received, so a single instance
    should not be shared between threads without external locking.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        auth_strategy: AuthStrategy | None = None,
        session: requests.Session | None = None,
        **overrides: Any,
    ) -> None:
        base = config if config is not None else default_config()
        merged = replace(base, **overrides)
        self.config = replace(merged, api_endpoint=merged.api_endpoint.rstrip("/"))
        self._suppress_insecure_warning_if_needed()
        self._session = session or requests.Session()
        self._auth = auth_strategy
        self.last_response: HttpResponse | None = None
        self.containers = ContainersResource(self)
        self.images = ImagesResource(self)
        self.operations = OperationsResource(self)
        self.profiles = ProfilesResource(self)

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> LXDClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - passthrough
        self.close()

    # Public API --------------------------------------------------------------
    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_payload: Mapping[str, Any] | None = None,
        data_payload: Any | None = None,
        expect_json: bool = True,
        headers: Mapping[str, str] | None = None,
        timeout: Timeout | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        With ``expect_json=False`` the raw response bytes are returned instead.
        ``headers`` are merged over the defaults for this call only, and
        ``timeout`` replaces the configured transport timeout.
        """
        url = self.absolute_url(path)
        request_headers = self._prepare_headers()
        if headers:
            request_headers.update(headers)
        self._log_request(method, url)
        response = self._perform_request(
            method,
            url,
            params=params,
            headers=request_headers,
            json_payload=json_payload,
            data_payload=data_payload,
            expect_json=expect_json,
            timeout=self.config.timeout if timeout is None else timeout,
        )
        return response.data if expect_json else response.content

    def server(self) -> dict[str, Any]:
        """Return the server environment and API extension details."""
        body = self.request("GET", "/1.0") or {}
        return body.get("metadata") or {}

    def absolute_url(self, path: str) -> str:
        parsed = urlparse(path)
        if parsed.scheme and parsed.netloc:
            return path
        return urljoin(f"{self.config.api_endpoint}/", path.lstrip("/"))

    def close(self) -> None:
        self._session.close()

    # Internal helpers -------------------------------------------------------
    def _prepare_headers(self) -> MutableMapping[str, str]:
        headers = self.config.resolved_headers()
        if self._auth is not None:
            self._auth.apply(headers)
        return headers

    def _client_cert(self) -> str | tuple[str, str] | None:
        if self._auth is not None:
            cert = self._auth.client_cert()
            if cert is not None:
                return cert
        return self.config.resolved_cert()

    def _perform_request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None,
        headers: MutableMapping[str, str],
        json_payload: Mapping[str, Any] | None,
        data_payload: Any | None,
        expect_json: bool,
        timeout: Timeout,
    ) -> HttpResponse:
        try:
            response = http_request(
                self._session,
                method,
                url,
                params=params,
                headers=headers,
                json_payload=json_payload,
                data_payload=data_payload,
                expect_json=expect_json,
                timeout=timeout,
                verify=self.config.verify_ssl,
                cert=self._client_cert(),
                proxies=self.config.resolved_proxies(),
            )
        except APIError as exc:
            self.last_response = exc.response
            raise
        except requests.RequestException as exc:
            reason = str(exc).strip() or exc.__class__.__name__
            raise RequestError(
                f"Failed to communicate with LXD API: {reason}", details=reason
            ) from exc
        self.last_response = response
        return response

    def _log_request(self, method: str, url: str) -> None:
        logger.info("LXD request %s %s", method.upper(), redact_url(url))

    def _suppress_insecure_warning_if_needed(self) -> None:
        if isinstance(self.config.verify_ssl, bool) and not self.config.verify_ssl:
            urllib3.disable_warnings(InsecureRequestWarning)
