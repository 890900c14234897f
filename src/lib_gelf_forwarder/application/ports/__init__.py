"""Protocols the application layer depends on."""

from __future__ import annotations

from .diagnostic import DiagnosticHook
from .encoder import MessageEncoderPort
from .identity import IdentityPort, PersonResolverPort, RequestPort
from .time import ClockPort, MessageIdProvider
from .transport import TransportPort

__all__ = [
    "ClockPort",
    "DiagnosticHook",
    "IdentityPort",
    "MessageEncoderPort",
    "MessageIdProvider",
    "PersonResolverPort",
    "RequestPort",
    "TransportPort",
]
