"""Port for turning a :class:`LogMessage` into datagrams."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lib_gelf_forwarder.domain.events import LogMessage


@runtime_checkable
class MessageEncoderPort(Protocol):
    """Serialize and, when needed, chunk a message for the transport."""

    def encode(self, message: LogMessage) -> list[bytes]: ...


__all__ = ["MessageEncoderPort"]
