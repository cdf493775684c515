"""Common helpers for resource wrappers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..exceptions import UnexpectedResponseError
from ..operations import Operation

if TYPE_CHECKING:  # pragma: no cover - import-time guard
    from ..client import LXDClient


class ResourceBase:
    """Provide shared helpers for resource modules."""

    def __init__(self, client: LXDClient) -> None:
        self._client = client

    def _get(self, path: str, *, params: Mapping[str, str] | None = None) -> Any:
        return self._metadata(self._client.request("GET", path, params=params))

    def _post(self, path: str, payload: Mapping[str, Any] | None = None) -> Any:
        return self._metadata(self._client.request("POST", path, json_payload=payload))

    def _put(self, path: str, payload: Mapping[str, Any]) -> Any:
        return self._metadata(self._client.request("PUT", path, json_payload=payload))

    def _patch(self, path: str, payload: Mapping[str, Any]) -> Any:
        return self._metadata(self._client.request("PATCH", path, json_payload=payload))

    def _delete(self, path: str) -> Any:
        return self._metadata(self._client.request("DELETE", path))

    def _list_names(self, path: str) -> list[str]:
        """Return the trailing name of each URL in a collection listing."""
        urls = self._get(path) or []
        return [url.rstrip("/").rsplit("/", 1)[-1] for url in urls]

    def _async(
        self,
        method: str,
        path: str,
        payload: Mapping[str, Any] | None = None,
        *,
        sync: bool | None = None,
        timeout: int | None = None,
        **request_options: Any,
    ) -> Operation:
        """Send a request that starts a background operation and resolve it."""
        body = self._client.request(method, path, json_payload=payload, **request_options)
        operation = Operation.from_payload(self._metadata(body))
        return self._client.operations.resolve(operation, sync=sync, timeout=timeout)

    @staticmethod
    def _metadata(body: Any) -> Any:
        if body is None:
            return None
        if not isinstance(body, Mapping):
            raise UnexpectedResponseError("Expected a JSON object from LXD", details=body)
        return body.get("metadata")
