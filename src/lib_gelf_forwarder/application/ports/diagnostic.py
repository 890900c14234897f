"""Callback signature for the local diagnostic channel."""

from __future__ import annotations

from typing import Any, Callable, Optional

DiagnosticHook = Optional[Callable[[str, dict[str, Any]], None]]
"""Receives ``(event_name, payload)`` for sends, drops and swallowed failures."""

__all__ = ["DiagnosticHook"]
