import pytest

from lxdkit import LXDClient
from lxdkit.config import ClientConfig
from lxdkit.exceptions import (
    AliasAttributesRequired,
    ImageIdentifierRequired,
    InvalidProtocol,
    NotFound,
)
from lxdkit.operations import OperationStatus

ENDPOINT = "https://lxd:8443"
OP_ID = "0a6c1f2e-5b7d-4e38-9d61-2f7e4c3b8a90"
FINGERPRINT = "097e75d6f7419d3a5e204d8125582f2d7bdd4ee4c35bd324513321c645f0c415"


def build_client():
    return LXDClient(ClientConfig(api_endpoint=ENDPOINT))


def sync_body(metadata):
    return {"type": "sync", "status": "Success", "status_code": 200, "metadata": metadata}


def async_body(status="Running", status_code=103, metadata=None):
    return {
        "type": "async",
        "operation": f"/1.0/operations/{OP_ID}",
        "metadata": {
            "id": OP_ID,
            "class": "task",
            "status": status,
            "status_code": status_code,
            "metadata": metadata,
            "may_cancel": True,
            "err": "",
        },
    }


def test_list_images_returns_fingerprints(requests_mock):
    client = build_client()
    requests_mock.get(f"{ENDPOINT}/1.0/images", json=sync_body([f"/1.0/images/{FINGERPRINT}"]))

    assert client.images.list() == [FINGERPRINT]


def test_get_image_with_secret(requests_mock):
    client = build_client()
    matcher = requests_mock.get(
        f"{ENDPOINT}/1.0/images/{FINGERPRINT}", json=sync_body({"fingerprint": FINGERPRINT})
    )

    image = client.images.get(FINGERPRINT, secret="abc")

    assert image["fingerprint"] == FINGERPRINT
    assert matcher.last_request.qs == {"secret": ["abc"]}


def test_get_by_alias_follows_target(requests_mock):
    client = build_client()
    requests_mock.get(
        f"{ENDPOINT}/1.0/images/aliases/ubuntu",
        json=sync_body({"name": "ubuntu", "target": FINGERPRINT}),
    )
    requests_mock.get(
        f"{ENDPOINT}/1.0/images/{FINGERPRINT}", json=sync_body({"fingerprint": FINGERPRINT})
    )

    assert client.images.get_by_alias("ubuntu")["fingerprint"] == FINGERPRINT


def test_missing_image_raises_not_found(requests_mock):
    client = build_client()
    requests_mock.get(
        f"{ENDPOINT}/1.0/images/missing",
        status_code=404,
        json={"type": "error", "error": "not found", "error_code": 404},
    )

    with pytest.raises(NotFound):
        client.images.get("missing")


def test_create_from_remote_prefers_alias(requests_mock):
    client = build_client()
    create = requests_mock.post(f"{ENDPOINT}/1.0/images", status_code=202, json=async_body())

    operation = client.images.create_from_remote(
        "https://images.linuxcontainers.org:8443",
        alias="ubuntu/xenial/amd64",
        fingerprint="ignored",
        protocol="simplestreams",
        auto_update=True,
        sync=False,
    )

    assert operation.status is OperationStatus.RUNNING
    assert create.last_request.json() == {
        "auto_update": True,
        "source": {
            "type": "image",
            "mode": "pull",
            "server": "https://images.linuxcontainers.org:8443",
            "protocol": "simplestreams",
            "alias": "ubuntu/xenial/amd64",
        },
    }


def test_create_from_remote_requires_identifier(requests_mock):
    client = build_client()

    with pytest.raises(ImageIdentifierRequired):
        client.images.create_from_remote("https://images:8443")

    assert not requests_mock.called


def test_create_from_remote_rejects_unknown_protocol(requests_mock):
    client = build_client()

    with pytest.raises(InvalidProtocol):
        client.images.create_from_remote("https://images:8443", alias="ubuntu", protocol="ftp")

    assert not requests_mock.called


def test_create_from_container_waits(requests_mock):
    client = build_client()
    create = requests_mock.post(f"{ENDPOINT}/1.0/images", status_code=202, json=async_body())
    requests_mock.get(
        f"{ENDPOINT}/1.0/operations/{OP_ID}/wait",
        json=sync_body(async_body("Success", 200, {"fingerprint": FINGERPRINT})["metadata"]),
    )

    operation = client.images.create_from_container("web", public=True, properties={"os": "ubuntu"})

    assert create.last_request.json() == {
        "public": True,
        "properties": {"os": "ubuntu"},
        "source": {"type": "container", "name": "web"},
    }
    assert operation.metadata == {"fingerprint": FINGERPRINT}


def test_create_from_snapshot_names_both_parts(requests_mock):
    client = build_client()
    create = requests_mock.post(f"{ENDPOINT}/1.0/images", status_code=202, json=async_body())

    client.images.create_from_snapshot("web", "snap0", sync=False)

    assert create.last_request.json()["source"] == {"type": "snapshot", "name": "web/snap0"}


def test_create_secret_is_not_waited_on(requests_mock):
    client = build_client()
    requests_mock.post(
        f"{ENDPOINT}/1.0/images/{FINGERPRINT}/secret",
        status_code=202,
        json=async_body(metadata={"secret": "one-time"}),
    )

    operation = client.images.create_secret(FINGERPRINT)

    assert operation.metadata == {"secret": "one-time"}
    assert requests_mock.call_count == 1


def test_aliases_strip_collection_prefix(requests_mock):
    client = build_client()
    requests_mock.get(
        f"{ENDPOINT}/1.0/images/aliases",
        json=sync_body(["/1.0/images/aliases/ubuntu/xenial", "/1.0/images/aliases/alpine"]),
    )

    assert client.images.aliases() == ["ubuntu/xenial", "alpine"]


def test_update_alias_requires_an_attribute(requests_mock):
    client = build_client()

    with pytest.raises(AliasAttributesRequired):
        client.images.update_alias("ubuntu")

    assert not requests_mock.called


def test_update_alias_keeps_existing_fields(requests_mock):
    client = build_client()
    requests_mock.get(
        f"{ENDPOINT}/1.0/images/aliases/ubuntu",
        json=sync_body({"name": "ubuntu", "target": FINGERPRINT, "description": "LTS"}),
    )
    update = requests_mock.put(f"{ENDPOINT}/1.0/images/aliases/ubuntu", json=sync_body({}))

    client.images.update_alias("ubuntu", description="Latest LTS")

    assert update.last_request.json() == {"target": FINGERPRINT, "description": "Latest LTS"}


def test_create_alias(requests_mock):
    client = build_client()
    create = requests_mock.post(f"{ENDPOINT}/1.0/images/aliases", json=sync_body({}))

    client.images.create_alias(FINGERPRINT, "ubuntu", description="LTS")

    assert create.last_request.json() == {
        "target": FINGERPRINT,
        "name": "ubuntu",
        "description": "LTS",
    }


def test_create_from_file_uploads_raw_tarball(requests_mock, tmp_path):
    client = build_client()
    tarball = tmp_path / "ubuntu-trusty.tar.gz"
    tarball.write_bytes(b"\x1f\x8b-image-bytes")
    upload = requests_mock.post(f"{ENDPOINT}/1.0/images", status_code=202, json=async_body())

    operation = client.images.create_from_file(
        tarball,
        fingerprint=FINGERPRINT,
        public=True,
        properties={"os": "ubuntu", "description": "Ubuntu 14.04 & friends"},
        sync=False,
    )

    request = upload.last_request
    assert request.body == b"\x1f\x8b-image-bytes"
    assert request.headers["Content-Type"] == "application/octet-stream"
    assert request.headers["X-LXD-filename"] == "ubuntu-trusty.tar.gz"
    assert request.headers["X-LXD-fingerprint"] == FINGERPRINT
    assert request.headers["X-LXD-public"] == "1"
    assert request.headers["X-LXD-properties"] == (
        "os=ubuntu&description=Ubuntu%2014.04%20%26%20friends"
    )
    assert operation.status is OperationStatus.RUNNING


def test_create_from_file_minimal_headers_and_wait(requests_mock, tmp_path):
    client = build_client()
    tarball = tmp_path / "busybox.tar.xz"
    tarball.write_bytes(b"busybox")
    upload = requests_mock.post(f"{ENDPOINT}/1.0/images", status_code=202, json=async_body())
    wait = requests_mock.get(
        f"{ENDPOINT}/1.0/operations/{OP_ID}/wait",
        json=sync_body(async_body("Success", 200)["metadata"]),
    )

    operation = client.images.create_from_file(str(tarball), filename="custom.tar.xz")

    headers = upload.last_request.headers
    assert headers["X-LXD-filename"] == "custom.tar.xz"
    assert "X-LXD-public" not in headers
    assert "X-LXD-fingerprint" not in headers
    assert "X-LXD-properties" not in headers
    assert wait.called
    assert operation.succeeded


def test_export_writes_image_to_stored_filename(requests_mock, tmp_path):
    client = build_client()
    requests_mock.get(
        f"{ENDPOINT}/1.0/images/{FINGERPRINT}",
        json=sync_body({"fingerprint": FINGERPRINT, "filename": "busybox-v1.21.1-lxc.tar.xz"}),
    )
    requests_mock.get(
        f"{ENDPOINT}/1.0/images/{FINGERPRINT}/export",
        content=b"\xfd7zXZ-image",
        headers={"Content-Type": "application/octet-stream"},
    )

    output = client.images.export(FINGERPRINT, tmp_path)

    assert output == tmp_path / "busybox-v1.21.1-lxc.tar.xz"
    assert output.read_bytes() == b"\xfd7zXZ-image"


def test_export_with_filename_and_secret(requests_mock, tmp_path):
    client = build_client()
    export = requests_mock.get(
        f"{ENDPOINT}/1.0/images/{FINGERPRINT}/export",
        content=b"private-image",
        headers={"Content-Type": "application/octet-stream"},
    )

    output = client.images.export(FINGERPRINT, str(tmp_path), filename="test.tar.xz", secret="s3cret")

    assert output.read_bytes() == b"private-image"
    assert export.last_request.qs == {"secret": ["s3cret"]}
    assert requests_mock.call_count == 1


def test_export_of_missing_image_writes_nothing(requests_mock, tmp_path):
    client = build_client()
    requests_mock.get(
        f"{ENDPOINT}/1.0/images/{FINGERPRINT}/export",
        status_code=404,
        json={"type": "error", "error": "not found", "error_code": 404},
    )

    with pytest.raises(NotFound):
        client.images.export(FINGERPRINT, tmp_path, filename="missing.tar.xz")

    assert not (tmp_path / "missing.tar.xz").exists()
