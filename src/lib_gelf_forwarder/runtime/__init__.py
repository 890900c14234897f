"""Runtime façade for process-wide Graylog reporting.

Purpose
-------
Expose a stable entry point (``init``, ``report_exception``,
``report_message``, ``shutdown``) that host applications call instead of
wiring the inner layers themselves.

Contents
--------
* ``init`` - composition root installing the process-wide forwarder.
* ``report_exception`` / ``report_message`` - fire-and-forget reporting.
* ``logging_handler`` - stdlib handler bound to the active forwarder.
* ``inspect_runtime`` / ``current_forwarder`` / ``shutdown``.

System Role
-----------
Outer shell: configuration is resolved once here and stays immutable;
reporting helpers are no-ops while no runtime is installed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from lib_gelf_forwarder.adapters.logging_handler import GelfForwarderHandler
from lib_gelf_forwarder.application.ports import (
    DiagnosticHook,
    IdentityPort,
    MessageEncoderPort,
    PersonResolverPort,
    RequestPort,
    TransportPort,
)
from lib_gelf_forwarder.application.use_cases.forward_event import EventForwarder
from lib_gelf_forwarder.config import ForwarderSettings, build_settings
from lib_gelf_forwarder.domain import ErrorEvent, Severity

from ._composition import build_runtime
from ._state import ForwarderRuntime, clear_runtime, current_runtime, is_initialised, peek_runtime, set_runtime_if_absent

logger = logging.getLogger(__name__)

_INIT_TWICE = "lib_gelf_forwarder.init() cannot be called twice without shutdown(); call lib_gelf_forwarder.shutdown() first"


@dataclass(frozen=True)
class RuntimeSnapshot:
    """Immutable view over the active forwarding runtime."""

    enabled: bool
    host: str | None
    port: int
    chunk_size: int
    compression: str
    skip_status_codes: frozenset[str]


def init(
    settings: Mapping[str, Any] | ForwarderSettings | None = None,
    *,
    identity: IdentityPort | None = None,
    person_resolver: PersonResolverPort | None = None,
    request: RequestPort | None = None,
    transport: TransportPort | None = None,
    encoder: MessageEncoderPort | None = None,
    diagnostic_hook: DiagnosticHook = None,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> EventForwarder:
    """Compose the forwarder and install it process-wide.

    Why
    ---
    Hosts call ``init`` once during startup. Settings come from ``settings``,
    keyword ``overrides`` and ``GRAYLOG_*`` environment variables (see
    :func:`lib_gelf_forwarder.config.build_settings`).

    Outputs
    -------
    The installed :class:`EventForwarder`, for hosts that prefer passing it
    around explicitly.

    Side Effects
    ------------
    Raises :class:`RuntimeError` when called twice without :func:`shutdown`
    and :class:`ValueError` for invalid configuration.
    """

    if is_initialised():
        raise RuntimeError(_INIT_TWICE)
    resolved = build_settings(settings, environ=environ, **overrides)
    runtime = build_runtime(
        resolved,
        identity=identity,
        person_resolver=person_resolver,
        request=request,
        transport=transport,
        encoder=encoder,
        diagnostic_hook=diagnostic_hook,
    )
    if not set_runtime_if_absent(runtime):
        raise RuntimeError(_INIT_TWICE)
    if not resolved.enabled:
        logger.debug("No Graylog host configured; reporting is disabled")
    return runtime.forwarder


def report_exception(
    exception: BaseException | ErrorEvent,
    identity: IdentityPort | None = None,
    request: RequestPort | None = None,
) -> None:
    """Report ``exception`` through the active forwarder (no-op without one)."""

    runtime = peek_runtime()
    if runtime is None:
        logger.debug("report_exception called before init(); dropping %r", exception)
        return
    runtime.forwarder.report_exception(exception, identity=identity, request=request)


def report_message(
    raw_message: str,
    metadata: Mapping[str, Any] | None = None,
    severity: Severity | int | str = Severity.INFO,
    *,
    full_message: str | None = None,
) -> None:
    """Send ``raw_message`` through the active forwarder (no-op without one)."""

    runtime = peek_runtime()
    if runtime is None:
        logger.debug("report_message called before init(); dropping %r", raw_message)
        return
    runtime.forwarder.report_message(raw_message, metadata, severity, full_message=full_message)


def logging_handler(level: int | str = logging.WARNING) -> GelfForwarderHandler:
    """Return a :class:`logging.Handler` bound to the active forwarder."""

    handler = GelfForwarderHandler(current_runtime().forwarder)
    handler.setLevel(level)
    return handler


def current_forwarder() -> EventForwarder:
    """Return the installed forwarder or raise :class:`RuntimeError`."""

    return current_runtime().forwarder


def inspect_runtime() -> RuntimeSnapshot:
    """Return a read-only snapshot of the current runtime settings."""

    settings = current_runtime().settings
    return RuntimeSnapshot(
        enabled=settings.enabled,
        host=settings.host,
        port=settings.port,
        chunk_size=settings.chunk_size.size,
        compression=settings.compression,
        skip_status_codes=settings.skip_status_codes,
    )


def shutdown() -> None:
    """Remove the active runtime. Sockets are per-send, so nothing to flush."""

    clear_runtime()


__all__ = [
    "ForwarderRuntime",
    "RuntimeSnapshot",
    "current_forwarder",
    "init",
    "inspect_runtime",
    "is_initialised",
    "logging_handler",
    "report_exception",
    "report_message",
    "shutdown",
]
