"""Destination and datagram sizing for GELF delivery."""

from __future__ import annotations

from dataclasses import dataclass

from .levels import ChunkSize

DEFAULT_GELF_PORT = 12201


@dataclass(slots=True, frozen=True)
class TransportConfig:
    """Where and how large the GELF datagrams are sent.

    An empty or missing ``host`` switches forwarding off.

    Examples
    --------
    >>> TransportConfig(host="graylog.local").destination
    ('graylog.local', 12201)
    >>> TransportConfig(host="  ").enabled
    False
    """

    host: str | None = None
    port: int = DEFAULT_GELF_PORT
    chunk_size: ChunkSize = ChunkSize.WAN

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.host.strip())

    @property
    def destination(self) -> tuple[str, int]:
        if not self.enabled:
            raise RuntimeError("no Graylog host configured")
        return (self.host or "").strip(), self.port


__all__ = ["DEFAULT_GELF_PORT", "TransportConfig"]
