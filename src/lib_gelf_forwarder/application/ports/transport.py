"""Port describing the datagram transport used for GELF delivery."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class TransportPort(Protocol):
    """Deliver encoded GELF datagrams to a Graylog input."""

    def send(self, chunks: Sequence[bytes], destination: tuple[str, int]) -> None:
        """Send every chunk as one datagram to ``destination``; never raise."""


__all__ = ["TransportPort"]
