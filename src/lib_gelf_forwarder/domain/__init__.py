"""Domain entities and value objects used by the forwarding pipeline."""

from __future__ import annotations

from .errors import GelfEncodingError, ReportableError
from .events import ErrorEvent, LogMessage
from .identity import AccountInfo, PersonInfo, RequestInfo
from .levels import ChunkSize, Severity
from .metadata import MetadataEnvelope
from .transport import DEFAULT_GELF_PORT, TransportConfig

__all__ = [
    "DEFAULT_GELF_PORT",
    "AccountInfo",
    "ChunkSize",
    "ErrorEvent",
    "GelfEncodingError",
    "LogMessage",
    "MetadataEnvelope",
    "PersonInfo",
    "ReportableError",
    "RequestInfo",
    "Severity",
    "TransportConfig",
]
