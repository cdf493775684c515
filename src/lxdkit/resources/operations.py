"""Background operation helpers."""

from __future__ import annotations

import logging

from ..classifier import error_for_operation
from ..exceptions import OperationTimeoutError
from ..operations import Operation, effective_sync, operation_id_from_path
from .base import ResourceBase

logger = logging.getLogger(__name__)

OPERATIONS_PATH = "/1.0/operations"


class OperationsResource(ResourceBase):
    """Observe, wait on and cancel operations running on the server."""

    def list(self) -> list[str]:
        """Return identifiers of running, pending and recently finished operations.

        LXD groups operation URLs by status; the groups are flattened here.
        """
        grouped = self._get(OPERATIONS_PATH) or {}
        identifiers: list[str] = []
        for urls in grouped.values():
            identifiers.extend(operation_id_from_path(url) for url in urls or [])
        return identifiers

    def details(self) -> list[Operation]:
        """Return every listed operation, failed ones included, in one request."""
        grouped = self._get(OPERATIONS_PATH, params={"recursion": "1"}) or {}
        return [
            Operation.from_payload(entry)
            for entries in grouped.values()
            for entry in entries or []
        ]

    def get(self, operation_id: str) -> Operation:
        return Operation.from_payload(self._get(f"{OPERATIONS_PATH}/{operation_id}"))

    def cancel(self, operation_id: str) -> None:
        """Ask the server to cancel an operation; only honored when ``may_cancel`` is set."""
        self._delete(f"{OPERATIONS_PATH}/{operation_id}")

    def wait(self, operation_id: str, timeout: int | None = None) -> Operation:
        """Block until the operation finishes or the server-side timeout elapses.

        Failed operations raise the classified error for their status code.
        """
        bound = int(timeout) if timeout and int(timeout) > 0 else None
        params = {"timeout": str(bound)} if bound else None
        logger.info("Waiting on LXD operation %s (timeout=%s)", operation_id, bound or "none")
        body = self._client.request(
            "GET",
            f"{OPERATIONS_PATH}/{operation_id}/wait",
            params=params,
            timeout=self._wait_transport_timeout(bound),
        )
        operation = Operation.from_payload(self._metadata(body))
        if operation.status.is_failure:
            raise error_for_operation(operation, self._client.last_response)
        return operation

    def resolve(
        self,
        operation: Operation,
        *,
        sync: bool | None = None,
        timeout: int | None = None,
    ) -> Operation:
        """Apply the sync policy to an operation returned by a mutating call.

        With sync disabled the handle is returned untouched. Otherwise this
        waits and returns the terminal, successful operation; a sync call
        never hands back an unfinished operation.
        """
        if not effective_sync(sync, self._client.config.auto_sync):
            logger.debug("Returning unresolved LXD operation %s", operation.id)
            return operation
        result = self.wait(operation.id, timeout=timeout)
        if not result.is_terminal:
            raise OperationTimeoutError(result.id, result.status.value, timeout)
        return result

    def _wait_transport_timeout(self, bound: int | None) -> tuple[float, float | None]:
        # The server holds the connection open for the wait; reads must outlast it.
        connect = self._client.config.timeout
        if bound is None:
            return (connect, None)
        return (connect, bound + connect)
