"""rich-click command line interface.

Purpose
-------
Let operators check a Graylog setup from a shell: show package metadata,
send a test message, or preview the exact GELF datagrams a message turns
into without touching the network.

Contents
--------
* :func:`cli` - command group with ``--traceback`` and ``--use-dotenv``.
* ``info`` / ``send`` / ``preview`` subcommands.
* :func:`main` - entry point running through :mod:`lib_cli_exit_tools`.

System Role
-----------
Presentation layer; it composes the same runtime pieces as
:func:`lib_gelf_forwarder.init` but keeps them local to one invocation.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Sequence

import lib_cli_exit_tools
import rich_click as click
from click.core import ParameterSource
from rich.console import Console
from rich.json import JSON
from rich.table import Table

from . import __init__conf__
from . import config as forwarder_config
from .adapters.gelf import COMPRESSIONS, describe_chunks
from .application.use_cases.forward_event import interpolate
from .config import ForwarderSettings, build_settings
from .domain import GelfEncodingError, LogMessage, Severity
from .runtime._composition import build_runtime, create_encoder

CLICK_CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


def summary_info() -> str:
    """Return the metadata banner printed by ``info``.

    >>> "lib_gelf_forwarder" in summary_info()
    True
    """

    lines: list[str] = []
    __init__conf__.print_info(writer=lines.append)
    return "".join(lines)


@click.group(
    help=__init__conf__.title,
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=True,
)
@click.version_option(
    version=__init__conf__.version,
    prog_name=__init__conf__.shell_command,
    message=f"{__init__conf__.shell_command} version {__init__conf__.version}",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option(
    "--use-dotenv/--no-use-dotenv",
    default=False,
    help=f"Load GRAYLOG_* settings from the nearest .env (also enabled by {forwarder_config.DOTENV_ENV_VAR}=1).",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool, use_dotenv: bool) -> None:
    """Root command storing global flags."""

    explicit: bool | None = None
    if ctx.get_parameter_source("use_dotenv") is not ParameterSource.DEFAULT:
        explicit = use_dotenv
    if forwarder_config.should_use_dotenv(explicit=explicit, env_value=os.getenv(forwarder_config.DOTENV_ENV_VAR)):
        forwarder_config.enable_dotenv()

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback

    if ctx.invoked_subcommand is None:
        click.echo(summary_info(), nl=False)


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print resolved metadata so users can inspect installation details."""

    click.echo(summary_info(), nl=False)


_message_argument = click.argument("message")
_level_option = click.option(
    "--level",
    default="info",
    show_default=True,
    help="Syslog severity name (debug … emergency) or number 0-7.",
)
_field_option = click.option(
    "--field",
    "fields",
    multiple=True,
    metavar="KEY=VALUE",
    help="Additional GELF field; repeat for several.",
)
_full_message_option = click.option("--full-message", default=None, help="Long text sent as full_message.")
_chunksize_option = click.option(
    "--chunksize",
    type=click.Choice(["wan", "lan"], case_sensitive=False),
    default=None,
    help="Datagram size preset (default: settings, then wan).",
)


@cli.command("send", context_settings=CLICK_CONTEXT_SETTINGS)
@_message_argument
@_level_option
@_field_option
@_full_message_option
@click.option("--host", default=None, help="Graylog host (default: GRAYLOG_HOST).")
@click.option("--port", type=int, default=None, help="GELF UDP port (default: GRAYLOG_PORT or 12201).")
@_chunksize_option
def cli_send(
    message: str,
    level: str,
    fields: tuple[str, ...],
    full_message: str | None,
    host: str | None,
    port: int | None,
    chunksize: str | None,
) -> None:
    """Send MESSAGE to Graylog and report how many datagrams went out."""

    severity = _parse_level(level)
    metadata = _parse_fields(fields)
    settings = _cli_settings(host=host, port=port, chunksize=chunksize)
    if not settings.enabled:
        raise click.ClickException("No Graylog host configured; pass --host or set GRAYLOG_HOST")

    events: list[tuple[str, dict[str, Any]]] = []
    runtime = build_runtime(settings, diagnostic_hook=lambda name, payload: events.append((name, payload)))
    runtime.forwarder.report_message(message, metadata, severity, full_message=full_message)

    for name, payload in events:
        if name == "graylog_sent":
            click.echo(f"sent {payload['chunks']} datagram(s) to {payload['host']}:{payload['port']}")
            return
        if name in {"graylog_send_failed", "graylog_report_failed"}:
            raise click.ClickException(f"sending failed: {payload.get('error', 'unknown error')}")
    raise click.ClickException("message was not sent")


@cli.command("preview", context_settings=CLICK_CONTEXT_SETTINGS)
@_message_argument
@_level_option
@_field_option
@_full_message_option
@_chunksize_option
@click.option(
    "--compression",
    type=click.Choice(list(COMPRESSIONS), case_sensitive=False),
    default=None,
    help="Payload compression (default: settings, then zlib).",
)
def cli_preview(
    message: str,
    level: str,
    fields: tuple[str, ...],
    full_message: str | None,
    chunksize: str | None,
    compression: str | None,
) -> None:
    """Show the GELF payload and datagrams for MESSAGE without sending it."""

    settings = _cli_settings(chunksize=chunksize, compression=compression)
    encoder = create_encoder(settings)
    severity = _parse_level(level)
    metadata = _parse_fields(fields)
    try:
        log_message = LogMessage(
            short_message=interpolate(message, metadata),
            level=severity,
            metadata=metadata,
            full_message=full_message,
            timestamp=datetime.now(timezone.utc),
        )
        payload = encoder.build_payload(log_message)
        chunks = encoder.encode(log_message)
    except (ValueError, GelfEncodingError) as exc:
        raise click.ClickException(str(exc)) from exc

    console = Console()
    console.print(JSON.from_data(payload))
    table = Table(
        title=f"{len(chunks)} datagram(s), {settings.chunk_size.name} {settings.chunk_size.size} bytes, {encoder.compression}",
    )
    for column in ("#", "bytes", "message id", "sequence", "count"):
        table.add_column(column)
    for row in describe_chunks(chunks):
        table.add_row(str(row["index"]), str(row["bytes"]), row["message_id"] or "-", str(row["sequence"]), str(row["count"]))
    console.print(table)


def _cli_settings(**flags: Any) -> ForwarderSettings:
    """Resolve settings from the environment, then let CLI flags win."""

    try:
        return build_settings(build_settings(), environ={}, **flags)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


def _parse_level(value: str) -> Severity:
    try:
        return Severity.coerce(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--level") from exc


def _parse_fields(pairs: Sequence[str]) -> dict[str, str]:
    """Split ``KEY=VALUE`` options into a mapping.

    >>> _parse_fields(["user=ann", "path=/a=b"])
    {'user': 'ann', 'path': '/a=b'}
    """

    fields: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--field")
        fields[key.strip()] = value
    return fields


def main(argv: Sequence[str] | None = None, *, restore_traceback: bool = True) -> int:
    """Run the command group through :func:`lib_cli_exit_tools.run_cli`.

    Traceback preferences changed by ``--traceback`` are restored afterwards
    so embedding hosts keep their own settings.
    """

    previous = (lib_cli_exit_tools.config.traceback, lib_cli_exit_tools.config.traceback_force_color)
    try:
        return lib_cli_exit_tools.run_cli(
            cli,
            argv=list(argv) if argv is not None else None,
            prog_name=__init__conf__.shell_command,
        )
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback, lib_cli_exit_tools.config.traceback_force_color = previous


__all__ = ["cli", "main", "summary_info"]
