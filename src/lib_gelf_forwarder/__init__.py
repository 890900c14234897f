"""Public package surface for forwarding errors and log events to Graylog.

Typical use::

    import lib_gelf_forwarder as gelf

    gelf.init({"host": "graylog.internal", "skipStatusCodes": [404]})
    try:
        handle_request()
    except Exception as exc:
        gelf.report_exception(exc)
        raise

Nothing in the reporting path raises; an unset host turns every call into a
no-op.
"""

from __future__ import annotations

from .adapters import GelfChunkAssembler, GelfEncoder, GelfForwarderHandler, UdpTransport, reassemble
from .application.use_cases.forward_event import EventForwarder
from .config import ForwarderSettings, build_settings
from .domain import (
    AccountInfo,
    ChunkSize,
    ErrorEvent,
    GelfEncodingError,
    LogMessage,
    MetadataEnvelope,
    PersonInfo,
    ReportableError,
    RequestInfo,
    Severity,
    TransportConfig,
)
from .runtime import (
    RuntimeSnapshot,
    current_forwarder,
    init,
    inspect_runtime,
    is_initialised,
    logging_handler,
    report_exception,
    report_message,
    shutdown,
)

__all__ = [
    "AccountInfo",
    "ChunkSize",
    "ErrorEvent",
    "EventForwarder",
    "ForwarderSettings",
    "GelfChunkAssembler",
    "GelfEncoder",
    "GelfEncodingError",
    "GelfForwarderHandler",
    "LogMessage",
    "MetadataEnvelope",
    "PersonInfo",
    "ReportableError",
    "RequestInfo",
    "RuntimeSnapshot",
    "Severity",
    "TransportConfig",
    "UdpTransport",
    "build_settings",
    "current_forwarder",
    "init",
    "inspect_runtime",
    "is_initialised",
    "logging_handler",
    "reassemble",
    "report_exception",
    "report_message",
    "shutdown",
]
