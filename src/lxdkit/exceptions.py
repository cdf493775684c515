"""Custom exception hierarchy for the LXD client."""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - import-time guard
    from .http import HttpResponse

_REDACTED_TOKENS = ("secret",)


class LXDError(RuntimeError):
    """Base error for LXD client failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class RequestError(LXDError):
    """Raised when an HTTP request cannot be delivered to the server."""


class UnexpectedResponseError(LXDError):
    """Raised when the API returns an unexpected payload structure."""


class OperationTimeoutError(LXDError):
    """Raised when a synchronous wait returns before the operation finished."""

    def __init__(self, operation_id: str, status: str, timeout: int | None) -> None:
        super().__init__(
            f"Operation {operation_id} still {status} after waiting {timeout}s",
            details={"operation_id": operation_id, "status": status},
        )
        self.operation_id = operation_id
        self.timeout = timeout


class APIError(LXDError):
    """Error classified from an LXD API response."""

    def __init__(self, response: HttpResponse) -> None:
        self.response = response
        self._data = response.body()
        super().__init__(self._build_message(), status_code=self._effective_status())
        self.documentation_url: str | None = self._documentation_url()
        self.errors: list[Mapping[str, Any]] = self._field_errors()

    # Body accessors ---------------------------------------------------------
    def _metadata(self) -> Mapping[str, Any] | None:
        if isinstance(self._data, Mapping):
            metadata = self._data.get("metadata")
            if isinstance(metadata, Mapping):
                return metadata
        return None

    def _effective_status(self) -> int:
        metadata = self._metadata()
        if metadata is not None:
            nested = coerce_status(metadata.get("status_code"))
            if nested:
                return nested
        return self.response.status_code

    def _documentation_url(self) -> str | None:
        if isinstance(self._data, Mapping):
            return self._data.get("documentation_url") or None
        return None

    def _field_errors(self) -> list[Mapping[str, Any]]:
        if isinstance(self._data, Mapping):
            errors = self._data.get("errors")
            if isinstance(errors, list):
                return [entry for entry in errors if isinstance(entry, Mapping)]
        return []

    def _response_message(self) -> str | None:
        if isinstance(self._data, Mapping):
            message = self._data.get("message")
            return str(message) if message else None
        if isinstance(self._data, str) and self._data:
            return self._data
        return None

    def _response_error(self) -> str | None:
        err = None
        if isinstance(self._data, Mapping) and self._data.get("error"):
            err = self._data["error"]
        else:
            metadata = self._metadata()
            if metadata is not None and metadata.get("err"):
                err = metadata["err"]
        return f"Error: {err}" if err else None

    def _error_summary(self) -> str | None:
        errors = self._field_errors()
        if not errors:
            return None
        lines = [f"  {key}: {value}" for entry in errors for key, value in entry.items()]
        return "\nError summary:\n" + "\n".join(lines)

    def _build_message(self) -> str:
        parts = [
            f"{self.response.method.upper()} {redact_url(self.response.url)}: ",
            f"{self._effective_status()} - ",
        ]
        for segment in (self._response_message(), self._response_error(), self._error_summary()):
            if segment:
                parts.append(segment)
        documentation_url = self._documentation_url()
        if documentation_url:
            parts.append(f" // See: {documentation_url}")
        return "".join(parts)


class ClientError(APIError):
    """Raised on errors in the 400-499 range."""


class BadRequest(ClientError):
    """Raised when LXD returns a 400 status."""


class Unauthorized(ClientError):
    """Raised when LXD returns a 401 status."""


class Forbidden(ClientError):
    """Raised when LXD returns a 403 status."""


class NotFound(ClientError):
    """Raised when LXD returns a 404 status."""


class MethodNotAllowed(ClientError):
    """Raised when LXD returns a 405 status."""


class NotAcceptable(ClientError):
    """Raised when LXD returns a 406 status."""


class Conflict(ClientError):
    """Raised when LXD returns a 409 status."""


class UnsupportedMediaType(ClientError):
    """Raised when LXD returns a 415 status."""


class UnprocessableEntity(ClientError):
    """Raised when LXD returns a 422 status."""


class ServerError(APIError):
    """Raised on errors in the 500-599 range."""


class InternalServerError(ServerError):
    """Raised when LXD returns a 500 status."""


class NotImplementedByServer(ServerError):
    """Raised when LXD returns a 501 status."""


class BadGateway(ServerError):
    """Raised when LXD returns a 502 status."""


class ServiceUnavailable(ServerError):
    """Raised when LXD returns a 503 status."""


class RequestBuildError(LXDError, ValueError):
    """Raised before any request is sent when caller options are invalid."""


class ImageIdentifierRequired(RequestBuildError):
    """An alias, fingerprint or properties selector is required."""


class AliasAttributesRequired(RequestBuildError):
    """At least one alias attribute (target or description) is required."""


class InvalidProtocol(RequestBuildError):
    """The image protocol is not one LXD understands."""


class InvalidImageAttributes(RequestBuildError):
    """Image attributes were combined in a way LXD would reject."""


class MissingProfiles(RequestBuildError):
    """Profiles used by a migration source do not exist on the target."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            "Profiles missing on target server: " + ", ".join(missing),
            details={"missing": missing},
        )
        self.missing = missing


def redact_url(url: str) -> str:
    for token in _REDACTED_TOKENS:
        if token in url:
            url = re.sub(rf"{token}=[^&\s]+", f"{token}=(redacted)", url)
    return url


def coerce_status(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "LXDError",
    "RequestError",
    "UnexpectedResponseError",
    "OperationTimeoutError",
    "APIError",
    "ClientError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "MethodNotAllowed",
    "NotAcceptable",
    "Conflict",
    "UnsupportedMediaType",
    "UnprocessableEntity",
    "ServerError",
    "InternalServerError",
    "NotImplementedByServer",
    "BadGateway",
    "ServiceUnavailable",
    "RequestBuildError",
    "ImageIdentifierRequired",
    "AliasAttributesRequired",
    "InvalidProtocol",
    "InvalidImageAttributes",
    "MissingProfiles",
    "redact_url",
]
