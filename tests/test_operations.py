import pytest

from lxdkit import LXDClient
from lxdkit.config import ClientConfig
from lxdkit.exceptions import BadRequest, OperationTimeoutError, Unauthorized
from lxdkit.operations import Operation, OperationStatus, effective_sync

ENDPOINT = "https://lxd:8443"
OP_ID = "b8d84888-1dc2-44fd-b386-7f679e171ba5"
OP_URL = f"{ENDPOINT}/1.0/operations/{OP_ID}"


def build_client(*, auto_sync: bool = True):
    return LXDClient(ClientConfig(api_endpoint=ENDPOINT, auto_sync=auto_sync))


def operation_metadata(status="Running", status_code=103, err=""):
    return {
        "id": OP_ID,
        "class": "task",
        "created_at": "2016-04-14T21:30:59Z",
        "updated_at": "2016-04-14T21:30:59Z",
        "status": status,
        "status_code": status_code,
        "resources": {"containers": ["/1.0/containers/web"]},
        "metadata": None,
        "may_cancel": False,
        "err": err,
    }


def sync_body(metadata):
    return {"type": "sync", "status": "Success", "status_code": 200, "metadata": metadata}


def running_operation():
    return Operation.from_payload(operation_metadata())


def test_effective_sync_prefers_explicit_value():
    assert effective_sync(None, True) is True
    assert effective_sync(None, False) is False
    assert effective_sync(False, True) is False
    assert effective_sync(True, False) is True


def test_operation_from_payload():
    operation = Operation.from_payload(operation_metadata())

    assert operation.id == OP_ID
    assert operation.status is OperationStatus.RUNNING
    assert operation.status_code == 103
    assert operation.operation_class == "task"
    assert operation.resources == {"containers": ["/1.0/containers/web"]}
    assert operation.metadata == {}
    assert not operation.is_terminal


def test_operation_status_falls_back_to_code():
    payload = operation_metadata(status="Unknown", status_code=200)

    assert Operation.from_payload(payload).status is OperationStatus.SUCCESS


@pytest.mark.parametrize(
    ("status", "terminal"),
    [
        (OperationStatus.PENDING, False),
        (OperationStatus.RUNNING, False),
        (OperationStatus.CANCELLING, False),
        (OperationStatus.SUCCESS, True),
        (OperationStatus.FAILURE, True),
        (OperationStatus.CANCELLED, True),
    ],
)
def test_terminal_states(status, terminal):
    assert status.is_terminal is terminal


def test_list_flattens_status_groups(requests_mock):
    client = build_client()
    requests_mock.get(
        f"{ENDPOINT}/1.0/operations",
        json=sync_body(
            {
                "running": [f"/1.0/operations/{OP_ID}"],
                "success": ["/1.0/operations/other"],
            }
        ),
    )

    assert sorted(client.operations.list()) == sorted([OP_ID, "other"])


def test_get_operation(requests_mock):
    client = build_client()
    requests_mock.get(OP_URL, json=sync_body(operation_metadata()))

    operation = client.operations.get(OP_ID)

    assert operation.status is OperationStatus.RUNNING


def test_cancel_operation(requests_mock):
    client = build_client()
    matcher = requests_mock.delete(OP_URL, json=sync_body({}))

    client.operations.cancel(OP_ID)

    assert matcher.call_count == 1


def test_wait_passes_positive_timeout(requests_mock):
    client = build_client()
    matcher = requests_mock.get(
        f"{OP_URL}/wait", json=sync_body(operation_metadata("Success", 200))
    )

    client.operations.wait(OP_ID, timeout=30)

    assert matcher.last_request.qs == {"timeout": ["30"]}


@pytest.mark.parametrize("timeout", [None, 0, -5])
def test_wait_without_timeout_waits_indefinitely(requests_mock, timeout):
    client = build_client()
    matcher = requests_mock.get(
        f"{OP_URL}/wait", json=sync_body(operation_metadata("Success", 200))
    )

    client.operations.wait(OP_ID, timeout=timeout)

    assert matcher.last_request.qs == {}


def test_resolve_without_sync_returns_handle(requests_mock):
    client = build_client()

    operation = client.operations.resolve(running_operation(), sync=False)

    assert operation.status is OperationStatus.RUNNING
    assert not requests_mock.called


def test_resolve_inherits_auto_sync_false(requests_mock):
    client = build_client(auto_sync=False)

    operation = client.operations.resolve(running_operation())

    assert not operation.is_terminal
    assert not requests_mock.called


def test_resolve_sync_true_overrides_auto_sync(requests_mock):
    client = build_client(auto_sync=False)
    requests_mock.get(f"{OP_URL}/wait", json=sync_body(operation_metadata("Success", 200)))

    operation = client.operations.resolve(running_operation(), sync=True)

    assert operation.status is OperationStatus.SUCCESS
    assert operation.status_code == 200


def test_resolve_failure_raises_classified_error(requests_mock):
    client = build_client()
    requests_mock.get(
        f"{OP_URL}/wait",
        json=sync_body(operation_metadata("Failure", 400, err="Container 'web' already exists")),
    )

    with pytest.raises(BadRequest) as excinfo:
        client.operations.resolve(running_operation())

    assert "Container 'web' already exists" in str(excinfo.value)
    assert client.last_response.status_code == 200


def test_resolve_cancelled_raises(requests_mock):
    client = build_client()
    requests_mock.get(
        f"{OP_URL}/wait", json=sync_body(operation_metadata("Cancelled", 401, err="cancelled"))
    )

    with pytest.raises(Unauthorized):
        client.operations.resolve(running_operation())


def test_resolve_raises_when_server_returns_before_completion(requests_mock):
    client = build_client()
    requests_mock.get(f"{OP_URL}/wait", json=sync_body(operation_metadata()))

    with pytest.raises(OperationTimeoutError) as excinfo:
        client.operations.resolve(running_operation(), timeout=5)

    assert excinfo.value.operation_id == OP_ID
    assert excinfo.value.timeout == 5


def test_wait_without_bound_never_times_out_reads(requests_mock):
    client = LXDClient(ClientConfig(api_endpoint=ENDPOINT, timeout=5.0))
    matcher = requests_mock.get(
        f"{OP_URL}/wait", json=sync_body(operation_metadata("Success", 200))
    )

    client.operations.wait(OP_ID)

    assert matcher.last_request.timeout == (5.0, None)


def test_wait_read_timeout_outlasts_server_bound(requests_mock):
    client = LXDClient(ClientConfig(api_endpoint=ENDPOINT, timeout=5.0))
    matcher = requests_mock.get(
        f"{OP_URL}/wait", json=sync_body(operation_metadata("Success", 200))
    )

    client.operations.wait(OP_ID, timeout=60)

    assert matcher.last_request.timeout == (5.0, 65.0)


def test_other_requests_use_configured_timeout(requests_mock):
    client = LXDClient(ClientConfig(api_endpoint=ENDPOINT, timeout=5.0))
    matcher = requests_mock.get(OP_URL, json=sync_body(operation_metadata()))

    client.operations.get(OP_ID)

    assert matcher.last_request.timeout == 5.0


def test_resolve_waits_beyond_transport_timeout(requests_mock):
    client = LXDClient(ClientConfig(api_endpoint=ENDPOINT, timeout=1.0))
    matcher = requests_mock.get(
        f"{OP_URL}/wait", json=sync_body(operation_metadata("Success", 200))
    )

    operation = client.operations.resolve(running_operation(), timeout=10)

    assert operation.succeeded
    assert matcher.last_request.timeout == (1.0, 11.0)


def test_details_include_failed_operations(requests_mock):
    client = build_client()
    matcher = requests_mock.get(
        f"{ENDPOINT}/1.0/operations",
        json=sync_body(
            {
                "running": [operation_metadata()],
                "failure": [
                    dict(operation_metadata("Failure", 400, err="disk full"), id="failed-op")
                ],
            }
        ),
    )

    operations = client.operations.details()

    assert matcher.last_request.qs == {"recursion": ["1"]}
    assert {operation.id: operation.status for operation in operations} == {
        OP_ID: OperationStatus.RUNNING,
        "failed-op": OperationStatus.FAILURE,
    }
