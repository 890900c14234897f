"""Configuration loading: ``.env`` support and forwarder settings.

Purpose
-------
Resolve :class:`ForwarderSettings` once at startup from (in increasing
precedence) defaults, a host-supplied settings mapping, explicit keyword
overrides, and ``GRAYLOG_*`` environment variables. Optionally populate the
environment from the nearest ``.env`` file first.

Contents
--------
* :class:`ForwarderSettings` - immutable resolved configuration.
* :func:`build_settings` / :func:`settings_from_mapping` /
  :func:`settings_from_env` - resolution helpers.
* :func:`enable_dotenv` / :func:`should_use_dotenv` - python-dotenv glue.

System Role
-----------
Outer layer. Invalid values raise :class:`ValueError` here, at configuration
time, so the reporting path itself never has to.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from lib_gelf_forwarder.adapters.gelf import COMPRESSIONS, DEFAULT_MAX_FIELD_CHARS
from lib_gelf_forwarder.domain.levels import ChunkSize
from lib_gelf_forwarder.domain.transport import DEFAULT_GELF_PORT, TransportConfig

DOTENV_ENV_VAR = "LIB_GELF_FORWARDER_USE_DOTENV"
"""Environment toggle enabling ``.env`` loading when the CLI flag is absent."""

ENV_VARS = {
    "host": "GRAYLOG_HOST",
    "port": "GRAYLOG_PORT",
    "chunksize": "GRAYLOG_CHUNKSIZE",
    "skip_status_codes": "GRAYLOG_SKIP_STATUS_CODES",
    "compression": "GRAYLOG_COMPRESSION",
    "timeout": "GRAYLOG_TIMEOUT",
    "source_host": "GRAYLOG_SOURCE_HOST",
}
"""Setting name → environment variable."""

_MAPPING_ALIASES = {
    "skipStatusCodes": "skip_status_codes",
    "chunk_size": "chunksize",
    "chunkSize": "chunksize",
    "sourceHost": "source_host",
    "maxFieldChars": "max_field_chars",
}

_SETTING_KEYS = frozenset((*ENV_VARS, "max_field_chars"))

_TRUTHY = {"1", "true", "yes", "on"}

_DOTENV_LOADED: Path | None = None


@dataclass(slots=True, frozen=True)
class ForwarderSettings:
    """Resolved forwarder configuration.

    Attributes
    ----------
    host:
        Graylog host; ``None`` or blank disables forwarding.
    port:
        GELF UDP input port (default 12201).
    chunk_size:
        :class:`ChunkSize` preset for datagram payloads.
    skip_status_codes:
        Status codes (as text) whose exceptions are not reported.
    compression:
        ``zlib`` / ``gzip`` / ``none``.
    timeout:
        Socket timeout per send in seconds.
    source_host:
        GELF ``host`` field; ``None`` uses the machine hostname.
    max_field_chars:
        Upper bound for string field lengths.
    """

    host: str | None = None
    port: int = DEFAULT_GELF_PORT
    chunk_size: ChunkSize = ChunkSize.WAN
    skip_status_codes: frozenset[str] = field(default_factory=frozenset)
    compression: str = "zlib"
    timeout: float = 1.0
    source_host: str | None = None
    max_field_chars: int = DEFAULT_MAX_FIELD_CHARS

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.host.strip())

    def transport_config(self) -> TransportConfig:
        """Return the destination/chunking view used by the forwarder."""

        return TransportConfig(host=self.host, port=self.port, chunk_size=self.chunk_size)


def build_settings(
    base: Mapping[str, Any] | ForwarderSettings | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ForwarderSettings:
    """Resolve settings from ``base``, ``overrides`` and the environment.

    Environment variables win over keyword overrides, which win over
    ``base``. ``environ`` defaults to :data:`os.environ`.

    Examples
    --------
    >>> settings = build_settings({"host": "gray", "chunksize": "LAN"}, environ={}, port=5555)
    >>> settings.host, settings.port, settings.chunk_size.name
    ('gray', 5555, 'LAN')
    >>> build_settings(environ={"GRAYLOG_SKIP_STATUS_CODES": "404, 403"}).skip_status_codes == {"404", "403"}
    True
    """

    settings = base if isinstance(base, ForwarderSettings) else settings_from_mapping(base or {})
    explicit = {key: value for key, value in overrides.items() if value is not None}
    if explicit:
        settings = _apply(settings, explicit)
    env_values = settings_from_env(os.environ if environ is None else environ)
    if env_values:
        settings = _apply(settings, env_values)
    return settings


def settings_from_mapping(values: Mapping[str, Any]) -> ForwarderSettings:
    """Build settings from a framework-style mapping.

    Accepts the keys ``host``, ``port``, ``chunksize``, ``skipStatusCodes``
    (or ``skip_status_codes``), ``compression``, ``timeout``,
    ``source_host`` and ``max_field_chars``. Unknown keys raise.
    """

    return _apply(ForwarderSettings(), values)


def settings_from_env(environ: Mapping[str, str]) -> dict[str, str]:
    """Return the non-empty ``GRAYLOG_*`` values keyed by setting name."""

    values: dict[str, str] = {}
    for name, variable in ENV_VARS.items():
        raw = environ.get(variable)
        if raw is not None and raw.strip():
            values[name] = raw.strip()
    return values


def _apply(settings: ForwarderSettings, values: Mapping[str, Any]) -> ForwarderSettings:
    changes: dict[str, Any] = {}
    for raw_key, value in values.items():
        key = _MAPPING_ALIASES.get(raw_key, raw_key)
        if key not in _SETTING_KEYS:
            raise ValueError(f"Unknown Graylog setting: {raw_key!r}")
        if value is None:
            # null leaves the setting unchanged, like an absent key
            continue
        if key == "host":
            changes["host"] = _parse_host(value)
        elif key == "port":
            changes["port"] = _parse_port(value)
        elif key == "chunksize":
            changes["chunk_size"] = value if isinstance(value, ChunkSize) else ChunkSize.from_name(str(value))
        elif key == "skip_status_codes":
            changes["skip_status_codes"] = parse_status_codes(value)
        elif key == "compression":
            changes["compression"] = _parse_compression(value)
        elif key == "timeout":
            changes["timeout"] = _parse_positive_float("timeout", value)
        elif key == "source_host":
            changes["source_host"] = _parse_host(value)
        else:
            changes["max_field_chars"] = _parse_positive_int("max_field_chars", value)
    return replace(settings, **changes)


def _parse_host(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_port(value: Any) -> int:
    """Validate a UDP port number.

    >>> _parse_port("12201")
    12201
    """

    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Graylog port must be an integer, got {value!r}") from exc
    if port <= 0:
        raise ValueError("Graylog port must be positive")
    if port > 65535:
        raise ValueError("Graylog port must be at most 65535")
    return port


def _parse_compression(value: Any) -> str:
    text = str(value).strip().lower()
    if text not in COMPRESSIONS:
        raise ValueError(f"Graylog compression must be one of {', '.join(COMPRESSIONS)}, got {value!r}")
    return text


def _parse_positive_float(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Graylog {name} must be a number, got {value!r}") from exc
    if number <= 0:
        raise ValueError(f"Graylog {name} must be positive")
    return number


def _parse_positive_int(name: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Graylog {name} must be an integer, got {value!r}") from exc
    if number <= 0:
        raise ValueError(f"Graylog {name} must be positive")
    return number


def parse_status_codes(value: str | Iterable[int | str] | None) -> frozenset[str]:
    """Normalise a skip list given as ``"404,403"`` or an iterable.

    >>> sorted(parse_status_codes("404, 403,,"))
    ['403', '404']
    >>> sorted(parse_status_codes([404, "410"]))
    ['404', '410']
    """

    if value is None:
        return frozenset()
    items: Iterable[Any] = value.split(",") if isinstance(value, str) else value
    return frozenset(str(item).strip() for item in items if str(item).strip())


def should_use_dotenv(*, explicit: bool | None = None, env_value: str | None = None) -> bool:
    """Decide whether ``.env`` loading is requested.

    An explicit CLI choice wins; otherwise the :data:`DOTENV_ENV_VAR` value
    is interpreted as a boolean flag.

    >>> should_use_dotenv(explicit=None, env_value="yes")
    True
    >>> should_use_dotenv(explicit=False, env_value="1")
    False
    """

    if explicit is not None:
        return explicit
    if env_value is None:
        return False
    return env_value.strip().lower() in _TRUTHY


def enable_dotenv(*, search_from: Path | None = None) -> Path | None:
    """Load the nearest ``.env`` into :data:`os.environ`.

    Existing environment variables keep precedence. Returns the loaded file
    or ``None`` when no ``.env`` is found. Subsequent calls are no-ops.
    """

    global _DOTENV_LOADED
    if _DOTENV_LOADED is not None:
        return _DOTENV_LOADED
    if search_from is None:
        found = find_dotenv(usecwd=True)
    else:
        found = _find_upwards(search_from.resolve())
    if not found:
        return None
    path = Path(found).resolve()
    load_dotenv(path, override=False)
    _DOTENV_LOADED = path
    return path


def _find_upwards(start: Path) -> str:
    for directory in (start, *start.parents):
        candidate = directory / ".env"
        if candidate.is_file():
            return str(candidate)
    return ""


def _reset_dotenv_state_for_testing() -> None:
    """Forget which ``.env`` was loaded (test helper)."""

    global _DOTENV_LOADED
    _DOTENV_LOADED = None


__all__ = [
    "DOTENV_ENV_VAR",
    "ENV_VARS",
    "ForwarderSettings",
    "build_settings",
    "enable_dotenv",
    "parse_status_codes",
    "settings_from_env",
    "settings_from_mapping",
    "should_use_dotenv",
]
