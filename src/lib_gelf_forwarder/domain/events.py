"""Domain events describing what gets forwarded to Graylog.

Purpose
-------
Provide immutable representations of a caught error (:class:`ErrorEvent`)
and of the message handed to the encoder (:class:`LogMessage`).

Contents
--------
* :class:`ErrorEvent` - error fields extracted at the error site.
* :class:`LogMessage` - short/full text, severity, timestamp and metadata.
* Utility function ``_ensure_aware`` for timestamp validation.

System Role
-----------
Sits in the domain layer so the forwarder and the encoder exchange plain data
objects instead of framework exceptions.
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from .levels import Severity


def _ensure_aware(ts: datetime) -> datetime:
    """Validate that ``ts`` is timezone-aware and normalise to UTC."""
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        raise ValueError("timestamp must be timezone-aware")
    return ts.astimezone(timezone.utc)


@dataclass(slots=True, frozen=True)
class ErrorEvent:
    """Error details captured where an exception was caught.

    Attributes
    ----------
    message:
        Human-readable summary, used as the GELF ``short_message``.
    code:
        Application error code, if the exception carries one.
    file, line:
        Location of the frame that raised the exception.
    reference_code:
        Support reference shown to end users alongside error pages.
    status_code:
        HTTP status associated with the error. Kept exactly as the exception
        carries it; no coercion between ``int`` and ``str`` happens here.
    exception:
        Originating exception object, when there is one.
    """

    message: str
    code: int | str | None = None
    file: str | None = None
    line: int | None = None
    reference_code: str | None = None
    status_code: int | str | None = None
    exception: BaseException | None = field(default=None, compare=False)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorEvent":
        """Extract the reportable fields from ``exc``.

        Examples
        --------
        >>> from lib_gelf_forwarder.domain.errors import ReportableError
        >>> event = ErrorEvent.from_exception(ReportableError("gone", status_code=410))
        >>> event.message, event.status_code, event.file
        ('gone', 410, None)
        """

        file, line = _raise_location(exc)
        return cls(
            message=str(exc) or type(exc).__name__,
            code=getattr(exc, "code", None),
            file=file,
            line=line,
            reference_code=getattr(exc, "reference_code", None),
            status_code=getattr(exc, "status_code", None),
            exception=exc,
        )


def _raise_location(exc: BaseException) -> tuple[str | None, int | None]:
    """Return ``(filename, lineno)`` of the innermost traceback frame."""

    tb = exc.__traceback__
    if tb is None:
        return getattr(exc, "file", None), getattr(exc, "line", None)
    frames = traceback.extract_tb(tb)
    if not frames:
        return None, None
    last = frames[-1]
    return last.filename, last.lineno


@dataclass(slots=True, frozen=True)
class LogMessage:
    """Message ready for GELF encoding.

    Attributes
    ----------
    short_message:
        Summary line; must not be blank.
    level:
        :class:`Severity` written to the GELF ``level`` field.
    metadata:
        Additional fields, rendered as ``_<key>`` on the wire.
    full_message:
        Optional long text (stack traces, request dumps).
    timestamp:
        Timezone-aware time of the event. ``None`` means "stamp at send".
    """

    short_message: str
    level: Severity = Severity.INFO
    metadata: Mapping[str, Any] = field(default_factory=dict)
    full_message: str | None = None
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        if not self.short_message or not self.short_message.strip():
            raise ValueError("short_message must not be empty")
        object.__setattr__(self, "level", Severity.coerce(self.level))
        object.__setattr__(self, "metadata", dict(self.metadata))
        if self.timestamp is not None:
            object.__setattr__(self, "timestamp", _ensure_aware(self.timestamp))

    def replace(self, **changes: Any) -> "LogMessage":
        """Return a copied message with ``changes`` applied."""

        return replace(self, **changes)


__all__ = ["ErrorEvent", "LogMessage"]
