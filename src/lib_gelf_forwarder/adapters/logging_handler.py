"""Bridge from the stdlib :mod:`logging` module to the GELF forwarder.

Attach :class:`GelfForwarderHandler` to any logger to ship its records to
Graylog through an :class:`EventForwarder`. Extra attributes passed via
``logger.info(..., extra={...})`` become additional GELF fields.
"""

from __future__ import annotations

import logging
from typing import Any

from lib_gelf_forwarder.application.use_cases.forward_event import EventForwarder
from lib_gelf_forwarder.domain.levels import Severity

_PACKAGE_LOGGER = "lib_gelf_forwarder"

_RESERVED_ATTRIBUTES = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {"message", "asctime"}
# Attributes every LogRecord carries; anything else on a record came from ``extra``.


class GelfForwarderHandler(logging.Handler):
    """Forward log records as GELF messages.

    Records emitted by this package's own loggers are ignored so transport
    diagnostics cannot feed back into Graylog.

    Examples
    --------
    >>> class _Recorder:
    ...     def __init__(self):
    ...         self.calls = []
    ...     def report_message(self, message, metadata, severity, *, full_message=None):
    ...         self.calls.append((message, severity))
    >>> recorder = _Recorder()
    >>> log = logging.getLogger("doctest.gelf")
    >>> handler = GelfForwarderHandler(recorder)
    >>> log.addHandler(handler)
    >>> log.warning("disk %s", "full")
    >>> log.removeHandler(handler)
    >>> recorder.calls
    [('disk full', <Severity.WARNING: 4>)]
    """

    def __init__(self, forwarder: EventForwarder, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._forwarder = forwarder

    def emit(self, record: logging.LogRecord) -> None:
        if record.name == _PACKAGE_LOGGER or record.name.startswith(_PACKAGE_LOGGER + "."):
            return
        try:
            metadata = self._build_metadata(record)
            self._forwarder.report_message(
                record.getMessage(),
                metadata,
                Severity.from_python_level(record.levelno),
                full_message=record.stack_info or None,
            )
        except Exception:  # noqa: BLE001 - logging.Handler contract
            self.handleError(record)

    def _build_metadata(self, record: logging.LogRecord) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "logger": record.name,
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
            "thread_name": record.threadName,
            "process_id": record.process,
        }
        if record.exc_info and record.exc_info[1] is not None:
            metadata["exception"] = record.exc_info[1]
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRIBUTES or key.startswith("_") or key in metadata:
                continue
            metadata[key] = value
        return metadata


__all__ = ["GelfForwarderHandler"]
