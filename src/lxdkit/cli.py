"""Command-line interface for interacting with LXD servers."""
from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import typer

try:  # pragma: no cover - exercised in runtime environments
    from rich import box
    from rich.console import Console
    from rich.table import Table
except ImportError as exc:  # pragma: no cover - optional dependency guard
    raise RuntimeError(
        "The CLI requires Rich for table rendering. Install the CLI extras via "
        "'pip install lxdkit[cli]' to enable this command."
    ) from exc

from . import LXDClient
from .auth.tls import CertificateAuth
from .auth.token import TokenAuth
from .cli_schema import CLI_TABLE_VIEWS, TableView
from .config import API_ENDPOINT, default_config
from .exceptions import LXDError
from .operations import Operation

app = typer.Typer(help="LXD container management CLI.", no_args_is_help=True)

containers_app = typer.Typer(help="Container operations.")
operations_app = typer.Typer(help="Background operation tracking.")
app.add_typer(containers_app, name="containers")
app.add_typer(operations_app, name="operations")


def _build_client(
    endpoint: str,
    cert_path: Path | None,
    key_path: Path | None,
    token: str | None,
    verify_ssl: bool,
    ca_path: Path | None,
    timeout: float,
) -> LXDClient:
    if cert_path and token:
        raise typer.BadParameter("Use either --cert or --token, not both.")

    strategy: CertificateAuth | TokenAuth | None = None
    if token:
        strategy = TokenAuth(token=token)
    elif cert_path:
        expanded_cert = cert_path.expanduser()
        if not expanded_cert.exists():
            raise typer.BadParameter("Client certificate not found for --cert option.")
        strategy = CertificateAuth(
            cert_path=str(expanded_cert),
            key_path=str(key_path.expanduser()) if key_path else None,
        )

    verify_target: bool | str
    if ca_path:
        expanded_ca = ca_path.expanduser()
        if not expanded_ca.exists():
            raise typer.BadParameter("CA bundle not found for --ca option.")
        if not verify_ssl:
            raise typer.BadParameter("Cannot combine --ca with --no-verify.")
        verify_target = str(expanded_ca)
    else:
        verify_target = verify_ssl

    return LXDClient(
        default_config(),
        auth_strategy=strategy,
        api_endpoint=endpoint,
        verify_ssl=verify_target,
        timeout=timeout,
    )


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


console = Console(force_terminal=False, color_system=None)


def _render_rich_table(view: TableView, rows: Sequence[Mapping[str, Any]]) -> None:
    table = Table(
        title=view.title,
        box=box.SIMPLE,
        show_lines=False,
        header_style="bold cyan",
    )
    for column in view.columns:
        table.add_column(column.header, justify=column.justify)
    ordered_rows = list(rows)
    if view.sort_key:
        ordered_rows.sort(key=view.sort_key)
    for row in ordered_rows:
        table.add_row(*(column.render(row) for column in view.columns))
    console.print(table)


def _present_output(payload: Any, *, view_id: str, json_output: bool) -> None:
    if json_output:
        _echo_json(payload)
        return
    rows = [payload] if isinstance(payload, Mapping) else list(payload)
    _render_rich_table(CLI_TABLE_VIEWS[view_id], rows)


def _handle_error(exc: LXDError) -> None:
    message = str(exc)
    if exc.status_code:
        message = f"Request failed (status {exc.status_code}): {message}"
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _shared_options() -> dict[str, Any]:  # pragma: no cover - helper indirection
    return {
        "endpoint": typer.Option(
            API_ENDPOINT,
            "--endpoint",
            "-e",
            envvar="LXDKIT_API_ENDPOINT",
            help="LXD API endpoint URL.",
        ),
        "cert_path": typer.Option(
            None,
            "--cert",
            envvar="LXDKIT_CLIENT_CERT",
            help="Client certificate trusted by the server.",
        ),
        "key_path": typer.Option(
            None,
            "--key",
            envvar="LXDKIT_CLIENT_KEY",
            help="Private key for --cert.",
        ),
        "token": typer.Option(
            None,
            "--token",
            envvar="LXDKIT_TOKEN",
            help="Bearer token, instead of a client certificate.",
        ),
        "verify_ssl": typer.Option(
            True,
            "--verify/--no-verify",
            help="Enable or disable TLS certificate verification.",
            show_default=True,
        ),
        "ca_path": typer.Option(
            None,
            "--ca",
            envvar="LXDKIT_CA_CERT",
            help="Path to a CA bundle (or server certificate) for TLS verification.",
        ),
        "timeout": typer.Option(30.0, help="Request timeout (seconds).", show_default=True),
        "output_json": typer.Option(
            False,
            "--json",
            "-j",
            help="Return raw JSON instead of rendering a table.",
        ),
    }


_SHARED_OPTIONS = _shared_options()


def _present_operation(operation: Operation, *, json_output: bool) -> None:
    _present_output(operation.to_dict(), view_id="operations.show", json_output=json_output)


@containers_app.command("list")
def containers_list(
    endpoint: str = _SHARED_OPTIONS["endpoint"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    key_path: Path | None = _SHARED_OPTIONS["key_path"],
    token: str | None = _SHARED_OPTIONS["token"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    ca_path: Path | None = _SHARED_OPTIONS["ca_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """List containers on the server."""

    with _build_client(endpoint, cert_path, key_path, token, verify_ssl, ca_path, timeout) as client:
        try:
            names = client.containers.list()
        except LXDError as exc:
            _handle_error(exc)
            return
    if output_json:
        _echo_json(names)
        return
    _present_output([{"name": name} for name in names], view_id="containers.list", json_output=False)


@containers_app.command("show")
def containers_show(
    name: str = typer.Argument(..., help="Container name."),
    endpoint: str = _SHARED_OPTIONS["endpoint"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    key_path: Path | None = _SHARED_OPTIONS["key_path"],
    token: str | None = _SHARED_OPTIONS["token"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    ca_path: Path | None = _SHARED_OPTIONS["ca_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """Show a container's configuration summary."""

    with _build_client(endpoint, cert_path, key_path, token, verify_ssl, ca_path, timeout) as client:
        try:
            container = client.containers.get(name)
        except LXDError as exc:
            _handle_error(exc)
            return
    _present_output(container, view_id="containers.show", json_output=output_json)


@containers_app.command("create")
def containers_create(
    name: str = typer.Argument(..., help="Name of the new container."),
    alias: str | None = typer.Option(None, "--alias", help="Image alias."),
    fingerprint: str | None = typer.Option(None, "--fingerprint", help="Image fingerprint."),
    empty: bool = typer.Option(False, "--empty", help="Create a container with no image."),
    server: str | None = typer.Option(None, "--server", help="Remote image server URL."),
    protocol: str | None = typer.Option(
        None, "--protocol", help="Remote protocol (lxd or simplestreams)."
    ),
    profile: list[str] = typer.Option([], "--profile", help="Profile to apply (repeatable)."),
    ephemeral: bool = typer.Option(False, "--ephemeral", help="Delete the container on stop."),
    wait: bool = typer.Option(
        True, "--wait/--no-wait", help="Wait for the create operation to finish."
    ),
    endpoint: str = _SHARED_OPTIONS["endpoint"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    key_path: Path | None = _SHARED_OPTIONS["key_path"],
    token: str | None = _SHARED_OPTIONS["token"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    ca_path: Path | None = _SHARED_OPTIONS["ca_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """Create a container from an image, or an empty one."""

    with _build_client(endpoint, cert_path, key_path, token, verify_ssl, ca_path, timeout) as client:
        try:
            operation = client.containers.create(
                name,
                alias=alias,
                fingerprint=fingerprint,
                empty=empty,
                server=server,
                protocol=protocol,
                profiles=profile or None,
                ephemeral=ephemeral or None,
                sync=wait,
            )
        except LXDError as exc:
            _handle_error(exc)
            return
    _present_operation(operation, json_output=output_json)


@containers_app.command("delete")
def containers_delete(
    name: str = typer.Argument(..., help="Container name."),
    wait: bool = typer.Option(
        True, "--wait/--no-wait", help="Wait for the delete operation to finish."
    ),
    endpoint: str = _SHARED_OPTIONS["endpoint"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    key_path: Path | None = _SHARED_OPTIONS["key_path"],
    token: str | None = _SHARED_OPTIONS["token"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    ca_path: Path | None = _SHARED_OPTIONS["ca_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """Delete a stopped container."""

    with _build_client(endpoint, cert_path, key_path, token, verify_ssl, ca_path, timeout) as client:
        try:
            operation = client.containers.delete(name, sync=wait)
        except LXDError as exc:
            _handle_error(exc)
            return
    _present_operation(operation, json_output=output_json)


@operations_app.command("list")
def operations_list(
    endpoint: str = _SHARED_OPTIONS["endpoint"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    key_path: Path | None = _SHARED_OPTIONS["key_path"],
    token: str | None = _SHARED_OPTIONS["token"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    ca_path: Path | None = _SHARED_OPTIONS["ca_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """List running and recently finished operations."""

    with _build_client(endpoint, cert_path, key_path, token, verify_ssl, ca_path, timeout) as client:
        try:
            operations = [operation.to_dict() for operation in client.operations.details()]
        except LXDError as exc:
            _handle_error(exc)
            return
    _present_output(operations, view_id="operations.list", json_output=output_json)


@operations_app.command("show")
def operations_show(
    operation_id: str = typer.Argument(..., help="Operation UUID."),
    endpoint: str = _SHARED_OPTIONS["endpoint"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    key_path: Path | None = _SHARED_OPTIONS["key_path"],
    token: str | None = _SHARED_OPTIONS["token"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    ca_path: Path | None = _SHARED_OPTIONS["ca_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """Show the current state of an operation."""

    with _build_client(endpoint, cert_path, key_path, token, verify_ssl, ca_path, timeout) as client:
        try:
            operation = client.operations.get(operation_id)
        except LXDError as exc:
            _handle_error(exc)
            return
    _present_operation(operation, json_output=output_json)


@operations_app.command("wait")
def operations_wait(
    operation_id: str = typer.Argument(..., help="Operation UUID."),
    wait_timeout: int = typer.Option(
        0, "--wait-timeout", help="Seconds the server waits before returning (0 waits forever)."
    ),
    endpoint: str = _SHARED_OPTIONS["endpoint"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    key_path: Path | None = _SHARED_OPTIONS["key_path"],
    token: str | None = _SHARED_OPTIONS["token"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    ca_path: Path | None = _SHARED_OPTIONS["ca_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
    output_json: bool = _SHARED_OPTIONS["output_json"],
) -> None:
    """Block until an operation finishes."""

    with _build_client(endpoint, cert_path, key_path, token, verify_ssl, ca_path, timeout) as client:
        try:
            operation = client.operations.wait(operation_id, timeout=wait_timeout)
        except LXDError as exc:
            _handle_error(exc)
            return
    _present_operation(operation, json_output=output_json)


@operations_app.command("cancel")
def operations_cancel(
    operation_id: str = typer.Argument(..., help="Operation UUID."),
    endpoint: str = _SHARED_OPTIONS["endpoint"],
    cert_path: Path | None = _SHARED_OPTIONS["cert_path"],
    key_path: Path | None = _SHARED_OPTIONS["key_path"],
    token: str | None = _SHARED_OPTIONS["token"],
    verify_ssl: bool = _SHARED_OPTIONS["verify_ssl"],
    ca_path: Path | None = _SHARED_OPTIONS["ca_path"],
    timeout: float = _SHARED_OPTIONS["timeout"],
) -> None:
    """Request cancellation of an operation."""

    with _build_client(endpoint, cert_path, key_path, token, verify_ssl, ca_path, timeout) as client:
        try:
            client.operations.cancel(operation_id)
        except LXDError as exc:
            _handle_error(exc)
            return
    typer.echo(f"Cancellation requested for {operation_id}")


if __name__ == "__main__":  # pragma: no cover
    app()
