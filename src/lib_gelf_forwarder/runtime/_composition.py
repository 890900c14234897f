"""Runtime composition helpers wiring domain, application, and adapters.

Purpose
-------
Translate :class:`ForwarderSettings` plus the host's collaborator ports into
a ready :class:`EventForwarder`. The helpers keep wiring small, declarative,
and testable.

Contents
--------
* :func:`build_runtime` - composition root.
* :func:`create_encoder` / :func:`create_transport` - adapter factories.
"""

from __future__ import annotations

from lib_gelf_forwarder.adapters import GelfEncoder, UdpTransport
from lib_gelf_forwarder.application.ports import (
    DiagnosticHook,
    IdentityPort,
    MessageEncoderPort,
    PersonResolverPort,
    RequestPort,
    TransportPort,
)
from lib_gelf_forwarder.application.use_cases.forward_event import EventForwarder
from lib_gelf_forwarder.config import ForwarderSettings

from ._state import ForwarderRuntime


def build_runtime(
    settings: ForwarderSettings,
    *,
    identity: IdentityPort | None = None,
    person_resolver: PersonResolverPort | None = None,
    request: RequestPort | None = None,
    transport: TransportPort | None = None,
    encoder: MessageEncoderPort | None = None,
    diagnostic_hook: DiagnosticHook = None,
) -> ForwarderRuntime:
    """Assemble the forwarder from resolved settings and collaborator ports."""

    forwarder = EventForwarder(
        transport_config=settings.transport_config(),
        encoder=encoder or create_encoder(settings),
        transport=transport or create_transport(settings, diagnostic_hook),
        skip_status_codes=settings.skip_status_codes,
        identity=identity,
        person_resolver=person_resolver,
        request=request,
        diagnostic=diagnostic_hook,
    )
    return ForwarderRuntime(settings=settings, forwarder=forwarder)


def create_encoder(settings: ForwarderSettings) -> GelfEncoder:
    """Build the GELF encoder matching the configured chunk preset."""

    return GelfEncoder(
        chunk_size=settings.chunk_size,
        compression=settings.compression,
        source_host=settings.source_host,
        max_field_chars=settings.max_field_chars,
    )


def create_transport(settings: ForwarderSettings, diagnostic_hook: DiagnosticHook = None) -> UdpTransport:
    """Build the UDP transport with the configured socket timeout."""

    return UdpTransport(timeout=settings.timeout, diagnostic=diagnostic_hook)


__all__ = ["build_runtime", "create_encoder", "create_transport"]
