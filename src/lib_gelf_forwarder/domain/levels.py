"""Syslog severities and GELF chunk-size presets.

Purpose
-------
Offer a domain-specific representation of the syslog severity scale used by
the GELF ``level`` field, plus the two chunk-size presets understood by the
UDP transport.

Contents
--------
* :class:`Severity` - syslog scale (0 emergency … 7 debug) with conversions.
* :class:`ChunkSize` - WAN/LAN datagram payload presets.
* ``_NAME_ALIASES`` / ``_PYTHON_LEVEL_TABLE`` lookup tables.

System Role
-----------
Used by the forwarder to derive severities and by the encoder/transport to
size datagrams. Adapters never hard-code numeric levels.
"""

from __future__ import annotations

import logging
from enum import Enum, IntEnum


class Severity(IntEnum):
    """Syslog severity levels carried in the GELF ``level`` field."""

    EMERGENCY = 0
    ALERT = 1
    CRITICAL = 2
    ERROR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7

    @property
    def label(self) -> str:
        """Return the lowercase name used in CLI output and diagnostics."""

        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> "Severity":
        """Resolve PSR-3/syslog level names case-insensitively.

        Examples
        --------
        >>> Severity.from_name("Warning")
        <Severity.WARNING: 4>
        >>> Severity.from_name("err")
        <Severity.ERROR: 3>
        """

        normalized = name.strip().upper()
        normalized = _NAME_ALIASES.get(normalized, normalized)
        try:
            return cls[normalized]
        except KeyError as exc:
            raise ValueError(f"Unknown severity: {name!r}") from exc

    @classmethod
    def from_numeric(cls, level: int) -> "Severity":
        """Return the member for a syslog integer in ``0..7``."""
        try:
            return cls(level)
        except ValueError as exc:
            raise ValueError(f"Unsupported syslog severity: {level}") from exc

    @classmethod
    def from_python_level(cls, level: int) -> "Severity":
        """Translate a :mod:`logging` level into the nearest syslog severity.

        Custom levels between the stdlib constants round towards the more
        severe neighbour.

        Examples
        --------
        >>> Severity.from_python_level(logging.ERROR)
        <Severity.ERROR: 3>
        >>> Severity.from_python_level(25)
        <Severity.WARNING: 4>
        """

        for threshold, severity in _PYTHON_LEVEL_TABLE:
            if level <= threshold:
                return severity
        return cls.CRITICAL

    @classmethod
    def coerce(cls, value: "Severity | int | str") -> "Severity":
        """Normalise enum members, syslog integers and level names."""

        if isinstance(value, Severity):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.isdigit():
                return cls.from_numeric(int(stripped))
            return cls.from_name(stripped)
        return cls.from_numeric(int(value))


_NAME_ALIASES = {
    "EMERG": "EMERGENCY",
    "CRIT": "CRITICAL",
    "ERR": "ERROR",
    "WARN": "WARNING",
}
# Short syslog spellings accepted by ``Severity.from_name``.

_PYTHON_LEVEL_TABLE = (
    (logging.DEBUG, Severity.DEBUG),
    (logging.INFO, Severity.INFO),
    (logging.WARNING, Severity.WARNING),
    (logging.ERROR, Severity.ERROR),
)


class ChunkSize(Enum):
    """Maximum datagram payload per GELF chunk."""

    WAN = 1420
    LAN = 8154

    @property
    def size(self) -> int:
        return self.value

    @classmethod
    def from_name(cls, name: str | None) -> "ChunkSize":
        """Return ``LAN`` for a case-insensitive ``"lan"``, ``WAN`` otherwise.

        Examples
        --------
        >>> ChunkSize.from_name("LAN")
        <ChunkSize.LAN: 8154>
        >>> ChunkSize.from_name("anything")
        <ChunkSize.WAN: 1420>
        >>> ChunkSize.from_name(None)
        <ChunkSize.WAN: 1420>
        """

        if name is not None and name.strip().lower() == "lan":
            return cls.LAN
        return cls.WAN


__all__ = ["ChunkSize", "Severity"]
