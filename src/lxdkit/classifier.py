"""Map LXD responses onto the exception hierarchy."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from . import exceptions as exc

if TYPE_CHECKING:  # pragma: no cover - import-time guard
    from .http import HttpResponse
    from .operations import Operation

STATUS_ERRORS: Mapping[int, type[exc.APIError]] = {
    400: exc.BadRequest,
    401: exc.Unauthorized,
    403: exc.Forbidden,
    404: exc.NotFound,
    405: exc.MethodNotAllowed,
    406: exc.NotAcceptable,
    409: exc.Conflict,
    415: exc.UnsupportedMediaType,
    422: exc.UnprocessableEntity,
    501: exc.NotImplementedByServer,
    502: exc.BadGateway,
    503: exc.ServiceUnavailable,
}

# LXD reports several unrelated failures as a bare 500.
_INTERNAL_ERROR_HINTS: tuple[tuple[str, type[exc.APIError]], ...] = (
    ("no such file or directory", exc.NotFound),
    ("is a directory", exc.BadRequest),
)


def classify(response: HttpResponse) -> exc.APIError | None:
    """Return the error a response represents, or ``None`` for success."""

    error = from_status(response, response.status_code)
    if error is None:
        error = from_async_operation(response)
    return error


def from_status(response: HttpResponse, status: int | None) -> exc.APIError | None:
    error_class = error_class_for_status(response, status)
    if error_class is None:
        return None
    return error_class(response)


def error_class_for_status(
    response: HttpResponse | None, status: int | None
) -> type[exc.APIError] | None:
    if not status:
        return None
    if status in STATUS_ERRORS:
        return STATUS_ERRORS[status]
    if status == 500:
        return _error_for_500(response)
    if 400 <= status < 500:
        return exc.ClientError
    if 500 <= status < 600:
        return exc.ServerError
    return None


def from_async_operation(response: HttpResponse) -> exc.APIError | None:
    """Detect a failed operation reported inside a successful HTTP response."""

    body = response.body()
    if not isinstance(body, Mapping):
        return None
    metadata = body.get("metadata")
    if not isinstance(metadata, Mapping):
        return None
    return from_status(response, exc.coerce_status(metadata.get("status_code")))


def error_for_operation(operation: Operation, response: HttpResponse) -> exc.APIError:
    """Build the error for an operation already known to have failed."""

    from .operations import OperationStatus

    error_class = error_class_for_status(response, operation.status_code)
    if error_class is None:
        fallback = 401 if operation.status is OperationStatus.CANCELLED else 400
        error_class = STATUS_ERRORS[fallback]
    return error_class(response)


def _error_for_500(response: HttpResponse | None) -> type[exc.APIError]:
    text = (response.text if response is not None else "").lower()
    for needle, error_class in _INTERNAL_ERROR_HINTS:
        if needle in text:
            return error_class
    return exc.InternalServerError


__all__ = [
    "STATUS_ERRORS",
    "classify",
    "error_class_for_status",
    "error_for_operation",
    "from_async_operation",
    "from_status",
]
