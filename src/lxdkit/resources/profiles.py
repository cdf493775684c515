"""Profile operations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..sources import stringify_mapping
from .base import ResourceBase

PROFILES_PATH = "/1.0/profiles"


class ProfilesResource(ResourceBase):
    """Interact with configuration profiles."""

    def list(self) -> list[str]:
        return self._list_names(PROFILES_PATH)

    def get(self, name: str) -> dict[str, Any]:
        return self._get(f"{PROFILES_PATH}/{name}")

    def create(
        self,
        name: str,
        *,
        config: Mapping[str, Any] | None = None,
        description: str | None = None,
        devices: Mapping[str, Any] | None = None,
    ) -> Any:
        payload = self._profile_fields(config, description, devices)
        payload["name"] = name
        return self._post(PROFILES_PATH, payload)

    def update(
        self,
        name: str,
        *,
        config: Mapping[str, Any] | None = None,
        description: str | None = None,
        devices: Mapping[str, Any] | None = None,
    ) -> Any:
        return self._put(f"{PROFILES_PATH}/{name}", self._profile_fields(config, description, devices))

    def patch(
        self,
        name: str,
        *,
        config: Mapping[str, Any] | None = None,
        description: str | None = None,
        devices: Mapping[str, Any] | None = None,
    ) -> Any:
        return self._patch(
            f"{PROFILES_PATH}/{name}", self._profile_fields(config, description, devices)
        )

    def rename(self, name: str, new_name: str) -> Any:
        return self._post(f"{PROFILES_PATH}/{name}", {"name": new_name})

    def delete(self, name: str) -> Any:
        return self._delete(f"{PROFILES_PATH}/{name}")

    @staticmethod
    def _profile_fields(
        config: Mapping[str, Any] | None,
        description: str | None,
        devices: Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if config is not None:
            payload["config"] = stringify_mapping(config)
        if description is not None:
            payload["description"] = description
        if devices is not None:
            payload["devices"] = dict(devices)
        return payload
