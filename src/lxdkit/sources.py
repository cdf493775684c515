"""Request construction for container creation, copy and migration.

Every builder validates caller options and returns a ``ContainerRequest``
whose ``source`` is one variant of the ``Source`` union. Serialization
happens in exactly one place (``source_payload``), so no provenance field
can leak into a request of another kind.

Invalid option combinations raise a ``RequestBuildError`` subclass before
any request is sent.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from .exceptions import (
    ImageIdentifierRequired,
    InvalidImageAttributes,
    InvalidProtocol,
    MissingProfiles,
)

VALID_PROTOCOLS = ("lxd", "simplestreams")

# Only the first identifier present is sent; the rest are dropped.
IMAGE_IDENTIFIER_PRECEDENCE = ("fingerprint", "alias", "properties")

VOLATILE_PREFIX = "volatile"
BASE_IMAGE_KEY = "volatile.base_image"

_REMOTE_ONLY_ATTRIBUTES = ("protocol", "certificate", "secret")
_EMPTY_EXCLUSIVE_ATTRIBUTES = (
    "alias",
    "certificate",
    "fingerprint",
    "properties",
    "protocol",
    "secret",
    "server",
)


def stringify_mapping(values: Mapping[Any, Any]) -> dict[str, str]:
    """Return a copy with keys and values converted to strings.

    LXD rejects non-string values in config and property maps.
    """

    return {str(key): _stringify_value(value) for key, value in values.items()}


def _stringify_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# Option records -------------------------------------------------------------
@dataclass(slots=True)
class ContainerCreateOptions:
    """Caller intent for creating a container from an image or empty."""

    alias: str | None = None
    fingerprint: str | None = None
    properties: Mapping[str, Any] | None = None
    empty: bool = False
    server: str | None = None
    protocol: str | None = None
    certificate: str | None = None
    secret: str | None = None
    architecture: str | None = None
    profiles: Sequence[str] | None = None
    ephemeral: bool | None = None
    config: Mapping[str, Any] | None = None

    def supplied(self, names: Sequence[str]) -> list[str]:
        return [name for name in names if getattr(self, name) is not None]


@dataclass(slots=True)
class ContainerCopyOptions:
    architecture: str | None = None
    profiles: Sequence[str] | None = None
    ephemeral: bool | None = None
    config: Mapping[str, Any] | None = None


@dataclass(slots=True)
class MigrationOptions:
    """Overrides applied on the target when migrating a container."""

    architecture: str | None = None
    certificate: str | None = None
    config: Mapping[str, Any] | None = None
    profiles: Sequence[str] | None = None
    ephemeral: bool | None = None
    move: bool = False


@dataclass(slots=True)
class MigrationDescriptor:
    """Everything the target needs to pull a container from its source."""

    architecture: str | None
    config: Mapping[str, str]
    profiles: list[str]
    websocket_url: str
    secrets: Mapping[str, str]
    certificate: str | None
    snapshot: bool = False
    ephemeral: bool | None = None


# Source variants ------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ImageSource:
    fingerprint: str | None = None
    alias: str | None = None
    properties: Mapping[str, str] | None = None
    server: str | None = None
    protocol: str | None = None
    certificate: str | None = None
    secret: str | None = None


@dataclass(frozen=True, slots=True)
class NoneSource:
    pass


@dataclass(frozen=True, slots=True)
class CopySource:
    source: str


@dataclass(frozen=True, slots=True)
class MigrationSource:
    operation: str
    secrets: Mapping[str, str]
    certificate: str | None = None
    base_image: str | None = None


Source = Union[ImageSource, NoneSource, CopySource, MigrationSource]


def source_payload(source: Source) -> dict[str, Any]:
    """Serialize a source variant into the ``source`` object LXD expects."""

    if isinstance(source, NoneSource):
        return {"type": "none"}
    if isinstance(source, CopySource):
        return {"type": "copy", "source": source.source}
    if isinstance(source, MigrationSource):
        payload: dict[str, Any] = {
            "type": "migration",
            "mode": "pull",
            "operation": source.operation,
            "secrets": dict(source.secrets),
        }
        if source.certificate is not None:
            payload["certificate"] = source.certificate
        if source.base_image is not None:
            payload["base-image"] = source.base_image
        return payload
    if isinstance(source, ImageSource):
        payload = {"type": "image"}
        if source.server is not None:
            payload["mode"] = "pull"
            payload["server"] = source.server
            for key in _REMOTE_ONLY_ATTRIBUTES:
                value = getattr(source, key)
                if value is not None:
                    payload[key] = value
        if source.fingerprint is not None:
            payload["fingerprint"] = source.fingerprint
        elif source.alias is not None:
            payload["alias"] = source.alias
        elif source.properties is not None:
            payload["properties"] = dict(source.properties)
        return payload
    raise TypeError(f"Unsupported container source: {source!r}")


@dataclass(slots=True)
class ContainerRequest:
    """Fully validated body for ``POST /1.0/containers``."""

    name: str
    source: Source
    architecture: str | None = None
    profiles: list[str] | None = None
    ephemeral: bool | None = None
    config: dict[str, str] | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "source": source_payload(self.source)}
        if self.architecture is not None:
            payload["architecture"] = self.architecture
        if self.profiles is not None:
            payload["profiles"] = list(self.profiles)
        if self.ephemeral is not None:
            payload["ephemeral"] = self.ephemeral
        if self.config is not None:
            payload["config"] = dict(self.config)
        return payload


# Builders -------------------------------------------------------------------
def validate_protocol(protocol: str | None) -> None:
    if protocol is not None and protocol not in VALID_PROTOCOLS:
        raise InvalidProtocol(
            f"Invalid protocol {protocol!r}. Valid choices: {', '.join(VALID_PROTOCOLS)}"
        )


def select_image_identifier(options: ContainerCreateOptions) -> ImageSource:
    """Pick the highest-precedence identifier: fingerprint, then alias, then properties."""

    for name in IMAGE_IDENTIFIER_PRECEDENCE:
        value = getattr(options, name)
        if value is None:
            continue
        if name == "properties":
            return ImageSource(properties=stringify_mapping(value))
        return ImageSource(**{name: value})
    raise ImageIdentifierRequired(
        "Specify one of alias, fingerprint or properties, or pass empty=True"
    )


def build_container_source(options: ContainerCreateOptions) -> Source:
    if options.empty:
        conflicting = options.supplied(_EMPTY_EXCLUSIVE_ATTRIBUTES)
        if conflicting:
            raise InvalidImageAttributes(
                "empty=True cannot be combined with " + ", ".join(conflicting)
            )
        return NoneSource()

    image = select_image_identifier(options)

    if options.server is None:
        remote_only = options.supplied(_REMOTE_ONLY_ATTRIBUTES)
        if remote_only:
            raise InvalidImageAttributes(
                ", ".join(remote_only) + " can only be used with a remote server"
            )
        return image

    validate_protocol(options.protocol)
    return ImageSource(
        fingerprint=image.fingerprint,
        alias=image.alias,
        properties=image.properties,
        server=options.server,
        protocol=options.protocol,
        certificate=options.certificate,
        secret=options.secret,
    )


def build_create_request(name: str, options: ContainerCreateOptions) -> ContainerRequest:
    return ContainerRequest(
        name=name,
        source=build_container_source(options),
        architecture=options.architecture,
        profiles=list(options.profiles) if options.profiles is not None else None,
        ephemeral=options.ephemeral,
        config=stringify_mapping(options.config) if options.config is not None else None,
    )


def build_copy_request(
    source_name: str, dest_name: str, options: ContainerCopyOptions
) -> ContainerRequest:
    return ContainerRequest(
        name=dest_name,
        source=CopySource(source=source_name),
        architecture=options.architecture,
        profiles=list(options.profiles) if options.profiles is not None else None,
        ephemeral=options.ephemeral,
        config=stringify_mapping(options.config) if options.config is not None else None,
    )


def strip_volatile(config: Mapping[str, str]) -> dict[str, str]:
    return {key: value for key, value in config.items() if not key.startswith(VOLATILE_PREFIX)}


def resolve_migration_profiles(
    descriptor: MigrationDescriptor,
    options: MigrationOptions,
    available_profiles: Callable[[], Sequence[str]],
) -> list[str]:
    if options.profiles is not None:
        return list(options.profiles)
    available = set(available_profiles())
    missing = [name for name in descriptor.profiles if name not in available]
    if missing:
        raise MissingProfiles(missing)
    return list(descriptor.profiles)


def build_migration_request(
    descriptor: MigrationDescriptor,
    dest_name: str,
    options: MigrationOptions,
    available_profiles: Callable[[], Sequence[str]],
) -> ContainerRequest:
    """Build the pull-mode migration request for the target server.

    ``available_profiles`` is only called when no explicit profile list
    is supplied.
    """

    explicit_config = stringify_mapping(options.config) if options.config is not None else None

    if descriptor.snapshot:
        base_image = None
        config = explicit_config if explicit_config is not None else {}
    else:
        source_config = dict(descriptor.config)
        base_image = source_config.get(BASE_IMAGE_KEY)
        if explicit_config is not None:
            config = explicit_config
        elif options.move:
            config = source_config
        else:
            config = strip_volatile(source_config)

    profiles = resolve_migration_profiles(descriptor, options, available_profiles)

    if options.ephemeral is not None:
        ephemeral = bool(options.ephemeral)
    else:
        ephemeral = bool(descriptor.ephemeral)

    return ContainerRequest(
        name=dest_name,
        source=MigrationSource(
            operation=descriptor.websocket_url,
            secrets=dict(descriptor.secrets),
            certificate=options.certificate or descriptor.certificate,
            base_image=base_image,
        ),
        architecture=options.architecture or descriptor.architecture,
        profiles=profiles,
        ephemeral=ephemeral,
        config=config,
    )


__all__ = [
    "BASE_IMAGE_KEY",
    "IMAGE_IDENTIFIER_PRECEDENCE",
    "VALID_PROTOCOLS",
    "VOLATILE_PREFIX",
    "ContainerCopyOptions",
    "ContainerCreateOptions",
    "ContainerRequest",
    "CopySource",
    "ImageSource",
    "MigrationDescriptor",
    "MigrationOptions",
    "MigrationSource",
    "NoneSource",
    "Source",
    "build_container_source",
    "build_copy_request",
    "build_create_request",
    "build_migration_request",
    "select_image_identifier",
    "source_payload",
    "stringify_mapping",
    "strip_volatile",
]
