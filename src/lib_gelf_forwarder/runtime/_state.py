"""Runtime state container and access helpers."""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock

from lib_gelf_forwarder.application.use_cases.forward_event import EventForwarder
from lib_gelf_forwarder.config import ForwarderSettings


@dataclass(slots=True)
class ForwarderRuntime:
    """Aggregate of live collaborators assembled by the composition root."""

    settings: ForwarderSettings
    forwarder: EventForwarder


_STATE: ForwarderRuntime | None = None
_STATE_LOCK = RLock()


def set_runtime_if_absent(runtime: ForwarderRuntime) -> bool:
    """Install ``runtime`` unless one is active; return whether it was installed."""

    with _STATE_LOCK:
        global _STATE
        if _STATE is not None:
            return False
        _STATE = runtime
        return True


def clear_runtime() -> None:
    """Remove the active runtime if present."""

    with _STATE_LOCK:
        global _STATE
        _STATE = None


def current_runtime() -> ForwarderRuntime:
    """Return the active runtime or raise when uninitialised."""

    with _STATE_LOCK:
        if _STATE is None:
            raise RuntimeError("lib_gelf_forwarder.init() must be called before using the forwarding API")
        return _STATE


def peek_runtime() -> ForwarderRuntime | None:
    """Return the active runtime or ``None``."""

    with _STATE_LOCK:
        return _STATE


def is_initialised() -> bool:
    """Return ``True`` when :func:`lib_gelf_forwarder.init` has been called."""

    with _STATE_LOCK:
        return _STATE is not None


__all__ = [
    "ForwarderRuntime",
    "clear_runtime",
    "current_runtime",
    "is_initialised",
    "peek_runtime",
    "set_runtime_if_absent",
]
