"""Operation model and sync-policy helpers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import UnexpectedResponseError, coerce_status


class OperationStatus(str, Enum):
    """Lifecycle states reported for an LXD background operation."""

    PENDING = "Pending"
    RUNNING = "Running"
    CANCELLING = "Cancelling"
    SUCCESS = "Success"
    FAILURE = "Failure"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @property
    def is_failure(self) -> bool:
        return self in (OperationStatus.FAILURE, OperationStatus.CANCELLED)


_TERMINAL = frozenset(
    {OperationStatus.SUCCESS, OperationStatus.FAILURE, OperationStatus.CANCELLED}
)

STATUS_CODES: Mapping[int, OperationStatus] = {
    103: OperationStatus.RUNNING,
    104: OperationStatus.CANCELLING,
    105: OperationStatus.PENDING,
    200: OperationStatus.SUCCESS,
    400: OperationStatus.FAILURE,
    401: OperationStatus.CANCELLED,
}


@dataclass(frozen=True, slots=True)
class Operation:
    """Server-tracked handle for asynchronous work.

    Instances are only ever built from server payloads; the client observes
    operations but never creates them.
    """

    id: str
    status: OperationStatus
    status_code: int
    resources: Mapping[str, list[str]] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)
    may_cancel: bool = False
    err: str = ""
    operation_class: str | None = None
    description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def succeeded(self) -> bool:
        return self.status is OperationStatus.SUCCESS

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Operation:
        """Build an operation from the ``metadata`` object LXD returns."""

        if not isinstance(payload, Mapping) or not payload.get("id"):
            raise UnexpectedResponseError(
                "Operation payload is missing an identifier", details=payload
            )
        status_code = coerce_status(payload.get("status_code")) or 0
        return cls(
            id=str(payload["id"]),
            status=_parse_status(payload.get("status"), status_code),
            status_code=status_code,
            resources=dict(payload.get("resources") or {}),
            metadata=dict(payload.get("metadata") or {}),
            may_cancel=bool(payload.get("may_cancel", False)),
            err=payload.get("err") or "",
            operation_class=payload.get("class"),
            description=payload.get("description"),
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "class": self.operation_class,
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "status": self.status.value,
            "status_code": self.status_code,
            "resources": dict(self.resources),
            "metadata": dict(self.metadata),
            "may_cancel": self.may_cancel,
            "err": self.err,
        }


def effective_sync(sync: bool | None, auto_sync: bool) -> bool:
    """Resolve a per-call sync flag against the client-wide default."""

    return auto_sync if sync is None else bool(sync)


def operation_id_from_path(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1]


def _parse_status(value: Any, status_code: int) -> OperationStatus:
    if isinstance(value, str):
        try:
            return OperationStatus(value)
        except ValueError:
            pass
    if status_code in STATUS_CODES:
        return STATUS_CODES[status_code]
    raise UnexpectedResponseError(
        f"Unknown operation status {value!r} (code {status_code})",
        status_code=status_code or None,
    )


__all__ = [
    "Operation",
    "OperationStatus",
    "STATUS_CODES",
    "effective_sync",
    "operation_id_from_path",
]
