"""Ports for time and GELF message identifiers."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class ClockPort(Protocol):
    """Provide the current timestamp."""

    def now(self) -> datetime: ...


@runtime_checkable
class MessageIdProvider(Protocol):
    """Generate the 8-byte identifier shared by all chunks of one message."""

    def __call__(self) -> bytes: ...


__all__ = ["ClockPort", "MessageIdProvider"]
