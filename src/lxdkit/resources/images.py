"""Image and image alias operations."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import quote

from ..exceptions import AliasAttributesRequired, ImageIdentifierRequired
from ..operations import Operation
from ..sources import stringify_mapping, validate_protocol
from .base import ResourceBase

logger = logging.getLogger(__name__)

IMAGES_PATH = "/1.0/images"
ALIASES_PATH = f"{IMAGES_PATH}/aliases"


class ImagesResource(ResourceBase):
    """Interact with images stored on the server."""

    def list(self) -> list[str]:
        """Return image fingerprints."""
        return self._list_names(IMAGES_PATH)

    def get(self, fingerprint: str, *, secret: str | None = None) -> dict[str, Any]:
        params = {"secret": secret} if secret else None
        return self._get(f"{IMAGES_PATH}/{fingerprint}", params=params)

    def get_by_alias(self, alias: str) -> dict[str, Any]:
        target = self.alias(alias).get("target")
        return self.get(target)

    def create_from_remote(
        self,
        server: str,
        *,
        alias: str | None = None,
        fingerprint: str | None = None,
        protocol: str | None = None,
        certificate: str | None = None,
        secret: str | None = None,
        filename: str | None = None,
        public: bool | None = None,
        auto_update: bool | None = None,
        properties: Mapping[str, Any] | None = None,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        """Import an image from a remote LXD or simplestreams server.

        Either ``alias`` or ``fingerprint`` is required; ``alias`` wins when
        both are given.
        """
        validate_protocol(protocol)
        if alias is None and fingerprint is None:
            raise ImageIdentifierRequired("Specify either alias or fingerprint")

        source: dict[str, Any] = {"type": "image", "mode": "pull", "server": server}
        for key, value in (("protocol", protocol), ("certificate", certificate), ("secret", secret)):
            if value is not None:
                source[key] = value
        if alias is not None:
            source["alias"] = alias
        else:
            source["fingerprint"] = fingerprint

        payload = self._image_fields(filename, public, properties, auto_update=auto_update)
        payload["source"] = source
        return self._async("POST", IMAGES_PATH, payload, sync=sync, timeout=timeout)

    def create_from_url(
        self,
        url: str,
        *,
        filename: str | None = None,
        public: bool | None = None,
        properties: Mapping[str, Any] | None = None,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        payload = self._image_fields(filename, public, properties)
        payload["source"] = {"type": "url", "url": url}
        return self._async("POST", IMAGES_PATH, payload, sync=sync, timeout=timeout)

    def create_from_file(
        self,
        path: str | Path,
        *,
        fingerprint: str | None = None,
        filename: str | None = None,
        public: bool = False,
        properties: Mapping[str, Any] | None = None,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        """Upload an image tarball from the local filesystem.

        Args:
            path: Image tarball to upload.
            fingerprint: Only store the image if the upload has this
                fingerprint.
            filename: Name stored with the image; defaults to the file's name.
            public: Make the image available to untrusted clients.
            properties: Properties stored with the image.
        """
        source = Path(path).expanduser()
        headers = {
            "Content-Type": "application/octet-stream",
            "X-LXD-filename": filename or source.name,
        }
        if fingerprint:
            headers["X-LXD-fingerprint"] = fingerprint
        if public:
            headers["X-LXD-public"] = "1"
        if properties:
            headers["X-LXD-properties"] = "&".join(
                f"{quote(key)}={quote(value)}" for key, value in stringify_mapping(properties).items()
            )
        return self._async(
            "POST",
            IMAGES_PATH,
            sync=sync,
            timeout=timeout,
            data_payload=source.read_bytes(),
            headers=headers,
        )

    def export(
        self,
        fingerprint: str,
        output_dir: str | Path,
        *,
        filename: str | None = None,
        secret: str | None = None,
    ) -> Path:
        """Download an image tarball into ``output_dir`` and return its path.

        The file is named after the image's stored filename unless
        ``filename`` is given.
        """
        if filename is None:
            filename = self.get(fingerprint, secret=secret).get("filename") or fingerprint
        params = {"secret": secret} if secret else None
        content = self._client.request(
            "GET", f"{IMAGES_PATH}/{fingerprint}/export", params=params, expect_json=False
        )
        output_file = Path(output_dir).expanduser() / filename
        output_file.write_bytes(content)
        logger.info("Exported image %s to %s", fingerprint, output_file)
        return output_file

    def create_from_container(
        self,
        name: str,
        *,
        filename: str | None = None,
        public: bool | None = None,
        description: str | None = None,
        properties: Mapping[str, Any] | None = None,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        payload = self._image_fields(filename, public, properties, description=description)
        payload["source"] = {"type": "container", "name": name}
        return self._async("POST", IMAGES_PATH, payload, sync=sync, timeout=timeout)

    def create_from_snapshot(
        self,
        container: str,
        snapshot: str,
        *,
        filename: str | None = None,
        public: bool | None = None,
        description: str | None = None,
        properties: Mapping[str, Any] | None = None,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        payload = self._image_fields(filename, public, properties, description=description)
        payload["source"] = {"type": "snapshot", "name": f"{container}/{snapshot}"}
        return self._async("POST", IMAGES_PATH, payload, sync=sync, timeout=timeout)

    def update(
        self,
        fingerprint: str,
        *,
        public: bool | None = None,
        auto_update: bool | None = None,
        properties: Mapping[str, Any] | None = None,
    ) -> Any:
        payload = self._image_fields(None, public, properties, auto_update=auto_update)
        return self._put(f"{IMAGES_PATH}/{fingerprint}", payload)

    def delete(
        self, fingerprint: str, *, sync: bool | None = None, timeout: int | None = None
    ) -> Operation:
        return self._async("DELETE", f"{IMAGES_PATH}/{fingerprint}", sync=sync, timeout=timeout)

    def create_secret(self, fingerprint: str) -> Operation:
        """Issue a one-time secret for an untrusted client.

        The returned operation stays running until the secret is used; cancel
        it to revoke the secret.
        """
        body = self._client.request("POST", f"{IMAGES_PATH}/{fingerprint}/secret")
        return Operation.from_payload(self._metadata(body))

    # Aliases ----------------------------------------------------------------
    def aliases(self) -> list[str]:
        urls = self._get(ALIASES_PATH) or []
        prefix = f"{ALIASES_PATH}/"
        return [url[len(prefix):] if url.startswith(prefix) else url for url in urls]

    def alias(self, name: str) -> dict[str, Any]:
        return self._get(f"{ALIASES_PATH}/{name}")

    def create_alias(
        self, fingerprint: str, name: str, *, description: str | None = None
    ) -> Any:
        payload: dict[str, Any] = {"target": fingerprint, "name": name}
        if description is not None:
            payload["description"] = description
        return self._post(ALIASES_PATH, payload)

    def rename_alias(self, name: str, new_name: str) -> Any:
        return self._post(f"{ALIASES_PATH}/{name}", {"name": new_name})

    def update_alias(
        self, name: str, *, target: str | None = None, description: str | None = None
    ) -> Any:
        """Replace an alias's target and/or description, keeping the other field."""
        if target is None and description is None:
            raise AliasAttributesRequired("At least one of target or description is required")
        existing = self.alias(name) or {}
        payload = {
            "target": target if target is not None else existing.get("target"),
            "description": description if description is not None else existing.get("description", ""),
        }
        return self._put(f"{ALIASES_PATH}/{name}", payload)

    def delete_alias(self, name: str) -> Any:
        return self._delete(f"{ALIASES_PATH}/{name}")

    @staticmethod
    def _image_fields(
        filename: str | None,
        public: bool | None,
        properties: Mapping[str, Any] | None,
        **extra: Any,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if filename is not None:
            payload["filename"] = filename
        if public is not None:
            payload["public"] = public
        if properties is not None:
            payload["properties"] = stringify_mapping(properties)
        payload.update({key: value for key, value in extra.items() if value is not None})
        return payload
