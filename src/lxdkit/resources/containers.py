"""Container operations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ..operations import Operation
from ..sources import (
    ContainerCopyOptions,
    ContainerCreateOptions,
    MigrationDescriptor,
    MigrationOptions,
    build_copy_request,
    build_create_request,
    build_migration_request,
    stringify_mapping,
)
from .base import ResourceBase

CONTAINERS_PATH = "/1.0/containers"


class ContainersResource(ResourceBase):
    """Interact with LXD containers."""

    def list(self) -> list[str]:
        return self._list_names(CONTAINERS_PATH)

    def get(self, name: str) -> dict[str, Any]:
        return self._get(self._path(name))

    def state(self, name: str) -> dict[str, Any]:
        return self._get(f"{self._path(name)}/state")

    def create(
        self,
        name: str,
        *,
        alias: str | None = None,
        fingerprint: str | None = None,
        properties: Mapping[str, Any] | None = None,
        empty: bool = False,
        server: str | None = None,
        protocol: str | None = None,
        certificate: str | None = None,
        secret: str | None = None,
        architecture: str | None = None,
        profiles: Sequence[str] | None = None,
        ephemeral: bool | None = None,
        config: Mapping[str, Any] | None = None,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        """Create a container from an image, or an empty one.

        Args:
            name: Name of the new container.
            alias: Image alias to create from.
            fingerprint: Image fingerprint (or unambiguous prefix). Takes
                precedence over ``alias`` and ``properties``.
            properties: Image properties to match, used only when neither a
                fingerprint nor an alias is given.
            empty: Create a container without a root filesystem.
            server: Remote image server; the image is pulled from there.
            protocol: ``lxd`` or ``simplestreams``, remote only.
            certificate: PEM certificate of the remote server.
            secret: Secret for a private remote image.
            sync: Wait for the operation to finish. Defaults to the client's
                ``auto_sync`` setting.
            timeout: Seconds the server should wait before returning.

        Returns:
            The terminal operation when synchronous, else the running one.
        """
        request = build_create_request(
            name,
            ContainerCreateOptions(
                alias=alias,
                fingerprint=fingerprint,
                properties=properties,
                empty=empty,
                server=server,
                protocol=protocol,
                certificate=certificate,
                secret=secret,
                architecture=architecture,
                profiles=profiles,
                ephemeral=ephemeral,
                config=config,
            ),
        )
        return self._async(
            "POST", CONTAINERS_PATH, request.to_payload(), sync=sync, timeout=timeout
        )

    def copy(
        self,
        source_name: str,
        dest_name: str,
        *,
        architecture: str | None = None,
        profiles: Sequence[str] | None = None,
        ephemeral: bool | None = None,
        config: Mapping[str, Any] | None = None,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        request = build_copy_request(
            source_name,
            dest_name,
            ContainerCopyOptions(
                architecture=architecture,
                profiles=profiles,
                ephemeral=ephemeral,
                config=config,
            ),
        )
        return self._async(
            "POST", CONTAINERS_PATH, request.to_payload(), sync=sync, timeout=timeout
        )

    def init_migration(self, name: str, snapshot: str | None = None) -> MigrationDescriptor:
        """Prepare a container or snapshot on this server to be pulled elsewhere.

        The returned descriptor is handed to ``migrate`` on the target
        client. The migration operation stays pending until the target
        connects, so it is never waited on here.
        """
        if snapshot:
            path = self._snapshot_path(name, snapshot)
        else:
            path = self._path(name)
        source = self._get(path) or {}

        body = self._client.request("POST", path, json_payload={"migration": True})
        operation = Operation.from_payload(self._metadata(body))
        operation_path = body.get("operation") or f"/1.0/operations/{operation.id}"

        server = self._get("/1.0") or {}
        environment = server.get("environment") or {}

        return MigrationDescriptor(
            architecture=source.get("architecture"),
            config=stringify_mapping(source.get("config") or {}),
            profiles=list(source.get("profiles") or []),
            websocket_url=self._client.absolute_url(operation_path),
            secrets=stringify_mapping(operation.metadata),
            certificate=environment.get("certificate"),
            snapshot=bool(snapshot),
            ephemeral=None if snapshot else source.get("ephemeral"),
        )

    def migrate(
        self,
        source: MigrationDescriptor,
        dest_name: str,
        *,
        architecture: str | None = None,
        certificate: str | None = None,
        config: Mapping[str, Any] | None = None,
        profiles: Sequence[str] | None = None,
        ephemeral: bool | None = None,
        move: bool = False,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        """Pull a container prepared with ``init_migration`` onto this server.

        ``volatile.*`` config keys are dropped unless ``move`` is set or an
        explicit ``config`` is given. Without explicit ``profiles`` every
        profile of the source must already exist here.
        """
        request = build_migration_request(
            source,
            dest_name,
            MigrationOptions(
                architecture=architecture,
                certificate=certificate,
                config=config,
                profiles=profiles,
                ephemeral=ephemeral,
                move=move,
            ),
            available_profiles=self._client.profiles.list,
        )
        return self._async(
            "POST", CONTAINERS_PATH, request.to_payload(), sync=sync, timeout=timeout
        )

    def rename(
        self, name: str, new_name: str, *, sync: bool | None = None, timeout: int | None = None
    ) -> Operation:
        return self._async("POST", self._path(name), {"name": new_name}, sync=sync, timeout=timeout)

    def delete(self, name: str, *, sync: bool | None = None, timeout: int | None = None) -> Operation:
        return self._async("DELETE", self._path(name), sync=sync, timeout=timeout)

    # State changes ----------------------------------------------------------
    def start(self, name: str, *, stateful: bool = False, **kwargs: Any) -> Operation:
        return self._change_state(name, "start", stateful=stateful, **kwargs)

    def stop(self, name: str, *, force: bool = False, stateful: bool = False, **kwargs: Any) -> Operation:
        return self._change_state(name, "stop", force=force, stateful=stateful, **kwargs)

    def restart(self, name: str, *, force: bool = False, **kwargs: Any) -> Operation:
        return self._change_state(name, "restart", force=force, **kwargs)

    def freeze(self, name: str, **kwargs: Any) -> Operation:
        return self._change_state(name, "freeze", **kwargs)

    def unfreeze(self, name: str, **kwargs: Any) -> Operation:
        return self._change_state(name, "unfreeze", **kwargs)

    def _change_state(
        self,
        name: str,
        action: str,
        *,
        force: bool | None = None,
        stateful: bool | None = None,
        state_timeout: int | None = None,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        payload: dict[str, Any] = {"action": action}
        if force:
            payload["force"] = True
        if stateful:
            payload["stateful"] = True
        if state_timeout is not None:
            payload["timeout"] = state_timeout
        return self._async(
            "PUT", f"{self._path(name)}/state", payload, sync=sync, timeout=timeout
        )

    # Snapshots --------------------------------------------------------------
    def snapshots(self, name: str) -> list[str]:
        return self._list_names(f"{self._path(name)}/snapshots")

    def snapshot(self, name: str, snapshot: str) -> dict[str, Any]:
        return self._get(self._snapshot_path(name, snapshot))

    def create_snapshot(
        self,
        name: str,
        snapshot: str,
        *,
        stateful: bool = False,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        payload = {"name": snapshot, "stateful": stateful}
        return self._async(
            "POST", f"{self._path(name)}/snapshots", payload, sync=sync, timeout=timeout
        )

    def delete_snapshot(
        self, name: str, snapshot: str, *, sync: bool | None = None, timeout: int | None = None
    ) -> Operation:
        return self._async(
            "DELETE", self._snapshot_path(name, snapshot), sync=sync, timeout=timeout
        )

    def _path(self, name: str) -> str:
        return f"{CONTAINERS_PATH}/{name}"

    def _snapshot_path(self, name: str, snapshot: str) -> str:
        return f"{CONTAINERS_PATH}/{name}/snapshots/{snapshot}"
