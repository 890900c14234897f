"""Best-effort UDP transport for GELF datagrams.

Purpose
-------
Deliver the datagrams produced by :class:`GelfEncoder` to a Graylog GELF UDP
input without ever failing the caller.

Contents
--------
* :class:`UdpTransport` - concrete :class:`TransportPort` implementation.

System Role
-----------
Outermost adapter of the forwarding pipeline. Each ``send`` owns its socket
for the duration of the call: open, send every chunk, close.
"""

from __future__ import annotations

import logging
import socket
from collections.abc import Sequence
from typing import Any

from lib_gelf_forwarder.application.ports.diagnostic import DiagnosticHook
from lib_gelf_forwarder.application.ports.transport import TransportPort

LOGGER = logging.getLogger(__name__)


class UdpTransport(TransportPort):
    """Send GELF datagrams over UDP, swallowing socket errors.

    Examples
    --------
    >>> transport = UdpTransport(timeout=0.5)
    >>> transport.timeout
    0.5
    """

    def __init__(self, *, timeout: float | None = 1.0, diagnostic: DiagnosticHook = None) -> None:
        """Configure the per-send socket timeout and optional diagnostic hook."""
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        self._timeout = timeout
        self._diagnostic = diagnostic

    @property
    def timeout(self) -> float | None:
        return self._timeout

    def send(self, chunks: Sequence[bytes], destination: tuple[str, int]) -> None:
        """Send each chunk as one datagram to ``destination``.

        Errors (DNS resolution, unreachable network, timeouts) are logged at
        DEBUG level and reported through the diagnostic hook; nothing is
        raised. Chunks after a failed one are not sent.
        """

        if not chunks:
            return
        sent = 0
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                if self._timeout is not None:
                    sock.settimeout(self._timeout)
                for chunk in chunks:
                    sock.sendto(chunk, destination)
                    sent += 1
        except OSError as exc:
            LOGGER.debug("GELF UDP send to %s:%s failed after %d/%d chunks: %s", destination[0], destination[1], sent, len(chunks), exc)
            self._emit(
                "graylog_send_failed",
                {"host": destination[0], "port": destination[1], "sent": sent, "chunks": len(chunks), "error": str(exc)},
            )
            return
        self._emit("graylog_sent", {"host": destination[0], "port": destination[1], "chunks": sent})

    def _emit(self, name: str, payload: dict[str, Any]) -> None:
        if self._diagnostic is None:
            return
        try:
            self._diagnostic(name, payload)
        except Exception:  # noqa: BLE001 - diagnostics must not break delivery
            LOGGER.debug("Diagnostic hook failed for %s", name, exc_info=True)


__all__ = ["UdpTransport"]
