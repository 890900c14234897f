"""Application use cases."""

from __future__ import annotations

from .forward_event import EventForwarder

__all__ = ["EventForwarder"]
