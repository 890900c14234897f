"""Concrete adapters: GELF encoding, UDP transport, logging integration."""

from __future__ import annotations

from .gelf import GelfChunkAssembler, GelfEncoder, decode_payload, reassemble, split_chunks
from .logging_handler import GelfForwarderHandler
from .udp import UdpTransport

__all__ = [
    "GelfChunkAssembler",
    "GelfEncoder",
    "GelfForwarderHandler",
    "UdpTransport",
    "decode_payload",
    "reassemble",
    "split_chunks",
]
