"""GELF 1.1 encoder, chunker and chunk assembler.

Purpose
-------
Turn a :class:`LogMessage` into the datagrams a Graylog GELF UDP input
accepts, and read such datagrams back for previews and tests.

Contents
--------
* :class:`GelfEncoder` - payload construction, compression, chunking.
* :func:`split_chunks` - the chunked-GELF framing on raw bytes.
* :func:`decode_payload` / :class:`GelfChunkAssembler` / :func:`reassemble`
  - the receiving side of the same wire format.

System Role
-----------
Adapter between the domain message and :class:`TransportPort`. The encoder
never talks to the network; the transport never looks inside a payload.

Wire format
-----------
A payload no longer than ``chunk_size`` bytes travels as one datagram. Larger
payloads are cut into ``chunk_size`` pieces, each prefixed by
``0x1e 0x0f | message id (8 bytes) | sequence (1 byte) | count (1 byte)``.
At most 128 chunks are allowed per message.
"""

from __future__ import annotations

import gzip
import json
import logging
import math
import os
import re
import socket
import traceback
import zlib
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from lib_gelf_forwarder.application.ports.encoder import MessageEncoderPort
from lib_gelf_forwarder.application.ports.time import ClockPort, MessageIdProvider
from lib_gelf_forwarder.domain.errors import GelfEncodingError
from lib_gelf_forwarder.domain.events import LogMessage
from lib_gelf_forwarder.domain.levels import ChunkSize
from lib_gelf_forwarder.domain.transport import DEFAULT_GELF_PORT

LOGGER = logging.getLogger(__name__)

GELF_VERSION = "1.1"
DEFAULT_PORT = DEFAULT_GELF_PORT
CHUNK_MAGIC = b"\x1e\x0f"
CHUNK_HEADER_SIZE = 12
MAX_CHUNK_COUNT = 128
MESSAGE_ID_SIZE = 8
DEFAULT_MAX_FIELD_CHARS = 32766
COMPRESSIONS = ("zlib", "gzip", "none")

_GZIP_MAGIC = b"\x1f\x8b"
_ZLIB_MAGIC = 0x78
_INVALID_KEY_CHARS = re.compile(r"[^\w.\-]")
_TRUNCATION_MARKER = "...[truncated]"


class _SystemClock(ClockPort):
    """Return timezone-aware UTC timestamps."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def _random_message_id() -> bytes:
    return os.urandom(MESSAGE_ID_SIZE)


def split_chunks(data: bytes, chunk_size: int, message_id: bytes) -> list[bytes]:
    """Frame ``data`` into chunked-GELF datagrams.

    Examples
    --------
    >>> split_chunks(b"abc", 3, b"12345678")
    [b'abc']
    >>> [len(chunk) for chunk in split_chunks(b"abcd", 3, b"12345678")]
    [15, 13]
    """

    if chunk_size <= 0:
        raise GelfEncodingError("chunk_size must be positive")
    if len(data) <= chunk_size:
        return [data]
    if len(message_id) != MESSAGE_ID_SIZE:
        raise GelfEncodingError(f"message id must be {MESSAGE_ID_SIZE} bytes, got {len(message_id)}")
    count = math.ceil(len(data) / chunk_size)
    if count > MAX_CHUNK_COUNT:
        raise GelfEncodingError(f"message needs {count} chunks; GELF allows at most {MAX_CHUNK_COUNT}")
    return [
        CHUNK_MAGIC + message_id + bytes((sequence, count)) + data[offset : offset + chunk_size]
        for sequence, offset in enumerate(range(0, len(data), chunk_size))
    ]


class GelfEncoder(MessageEncoderPort):
    """Serialize :class:`LogMessage` objects into GELF datagrams.

    Parameters
    ----------
    chunk_size:
        :class:`ChunkSize` preset or an explicit byte count.
    compression:
        ``"zlib"`` (default), ``"gzip"`` or ``"none"``.
    source_host:
        Value of the GELF ``host`` field; defaults to the machine hostname.
    max_field_chars:
        String values longer than this are truncated.
    clock:
        Stamps messages that carry no timestamp.
    message_id_provider:
        Supplies the 8-byte id shared by the chunks of one message.

    Examples
    --------
    >>> from lib_gelf_forwarder.domain.levels import Severity
    >>> encoder = GelfEncoder(compression="none", source_host="web01")
    >>> message = LogMessage("disk full", Severity.ERROR, {"volume": "/var"},
    ...                      timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc))
    >>> payload = encoder.build_payload(message)
    >>> payload["level"], payload["_volume"], payload["host"]
    (3, '/var', 'web01')
    """

    def __init__(
        self,
        *,
        chunk_size: ChunkSize | int = ChunkSize.WAN,
        compression: str = "zlib",
        source_host: str | None = None,
        max_field_chars: int = DEFAULT_MAX_FIELD_CHARS,
        clock: ClockPort | None = None,
        message_id_provider: MessageIdProvider | None = None,
    ) -> None:
        size = chunk_size.size if isinstance(chunk_size, ChunkSize) else int(chunk_size)
        if size <= 0:
            raise ValueError("chunk_size must be positive")
        normalized = compression.strip().lower()
        if normalized not in COMPRESSIONS:
            raise ValueError(f"compression must be one of {', '.join(COMPRESSIONS)}")
        if max_field_chars <= 0:
            raise ValueError("max_field_chars must be positive")
        self._chunk_size = size
        self._compression = normalized
        self._source_host = source_host or socket.gethostname()
        self._max_field_chars = max_field_chars
        self._clock = clock or _SystemClock()
        self._message_id_provider = message_id_provider or _random_message_id

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def compression(self) -> str:
        return self._compression

    def encode(self, message: LogMessage) -> list[bytes]:
        """Return the datagrams carrying ``message``."""

        data = self.serialize(self.build_payload(message))
        if len(data) <= self._chunk_size:
            return [data]
        return split_chunks(data, self._chunk_size, self._message_id_provider())

    def serialize(self, payload: Mapping[str, Any]) -> bytes:
        """JSON-encode and compress ``payload``."""

        raw = json.dumps(payload, ensure_ascii=False, allow_nan=False, separators=(",", ":"), default=_stringify).encode("utf-8")
        if self._compression == "zlib":
            return zlib.compress(raw)
        if self._compression == "gzip":
            return gzip.compress(raw, mtime=0)
        return raw

    def build_payload(self, message: LogMessage) -> dict[str, Any]:
        """Build the GELF dictionary for ``message``.

        Empty values (``None`` and ``""``) are left out. An ``exception``
        metadata value holding an exception object is rendered as
        ``"Type: text"`` and, unless the message has its own full text,
        its traceback becomes ``full_message``.
        """

        timestamp = message.timestamp or self._clock.now()
        payload: dict[str, Any] = {
            "version": GELF_VERSION,
            "host": self._source_host,
            "short_message": self._truncate(message.short_message),
            "timestamp": round(timestamp.timestamp(), 6),
            "level": int(message.level),
        }

        full_message = message.full_message
        exception = message.metadata.get("exception")
        if isinstance(exception, BaseException) and not full_message:
            full_message = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
        if full_message:
            payload["full_message"] = full_message

        for key, value in message.metadata.items():
            field_name = _field_name(key)
            if field_name is None:
                LOGGER.debug("Dropping metadata field with unusable key %r", key)
                continue
            coerced = self._coerce_value(value)
            if coerced is None or coerced == "":
                continue
            if field_name in payload:
                LOGGER.debug("Metadata key %r maps to existing field %s; keeping the first value", key, field_name)
                continue
            payload[field_name] = coerced
        return payload

    def _coerce_value(self, value: Any) -> Any:
        if value is None or isinstance(value, (bool, int)):
            return value
        if isinstance(value, float):
            return value if math.isfinite(value) else str(value)
        if isinstance(value, BaseException):
            return self._truncate(f"{type(value).__qualname__}: {_stringify(value)}")
        if isinstance(value, str):
            return self._truncate(value)
        if isinstance(value, (Mapping, list, tuple)):
            try:
                return self._truncate(json.dumps(value, ensure_ascii=False, allow_nan=False, default=_stringify))
            except (TypeError, ValueError):
                LOGGER.debug("Metadata value is not JSON serializable; sending its text form")
        return self._truncate(_stringify(value))

    def _truncate(self, text: str) -> str:
        if len(text) <= self._max_field_chars:
            return text
        keep = max(self._max_field_chars - len(_TRUNCATION_MARKER), 0)
        return text[:keep] + _TRUNCATION_MARKER


def _field_name(key: Any) -> str | None:
    """Return the ``_``-prefixed GELF field name for ``key``.

    >>> _field_name("request uri"), _field_name("id"), _field_name("")
    ('_request_uri', '_id_', None)
    """

    name = _INVALID_KEY_CHARS.sub("_", str(key).lstrip("_"))
    if not name:
        return None
    if name == "id":
        name = "id_"
    return f"_{name}"


def _stringify(value: Any) -> str:
    """Text form for values JSON cannot represent."""
    try:
        return str(value)
    except Exception:  # noqa: BLE001 - a broken __str__ must not drop the message
        return object.__repr__(value)


def decode_payload(data: bytes) -> dict[str, Any]:
    """Decompress (gzip, zlib or none) and parse a complete GELF payload."""

    if data[:2] == _GZIP_MAGIC:
        raw = gzip.decompress(data)
    elif data[:1] and data[0] == _ZLIB_MAGIC:
        raw = zlib.decompress(data)
    else:
        raw = data
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise GelfEncodingError(f"payload is not valid GELF JSON: {exc}") from exc


class GelfChunkAssembler:
    """Reassemble chunked GELF datagrams, in any arrival order.

    Examples
    --------
    >>> chunks = split_chunks(b'{"short_message":"hi"}', 8, b"abcdefgh")
    >>> assembler = GelfChunkAssembler()
    >>> [assembler.feed(chunk) for chunk in reversed(chunks)][-1]
    {'short_message': 'hi'}
    """

    def __init__(self) -> None:
        self._pending: dict[bytes, tuple[int, dict[int, bytes]]] = {}

    @property
    def pending(self) -> int:
        """Number of messages still waiting for chunks."""

        return len(self._pending)

    def feed(self, datagram: bytes) -> dict[str, Any] | None:
        """Consume one datagram; return the payload once its message is complete."""

        if not datagram.startswith(CHUNK_MAGIC):
            return decode_payload(datagram)
        if len(datagram) < CHUNK_HEADER_SIZE:
            raise GelfEncodingError("chunk shorter than the GELF chunk header")
        message_id = datagram[2:10]
        sequence, count = datagram[10], datagram[11]
        if not 0 < count <= MAX_CHUNK_COUNT or sequence >= count:
            raise GelfEncodingError(f"invalid chunk header: sequence={sequence} count={count}")

        expected, parts = self._pending.get(message_id, (count, {}))
        if expected != count:
            LOGGER.debug("Chunk count changed for message %s; restarting reassembly", message_id.hex())
            parts = {}
        parts[sequence] = datagram[CHUNK_HEADER_SIZE:]
        if len(parts) < count:
            self._pending[message_id] = (count, parts)
            return None
        self._pending.pop(message_id, None)
        return decode_payload(b"".join(parts[index] for index in range(count)))

    def discard(self, message_id: bytes) -> None:
        """Forget partially received chunks of ``message_id``."""

        self._pending.pop(message_id, None)


def reassemble(chunks: Iterable[bytes]) -> dict[str, Any]:
    """Decode the single message carried by ``chunks``."""

    assembler = GelfChunkAssembler()
    result: dict[str, Any] | None = None
    for chunk in chunks:
        decoded = assembler.feed(chunk)
        if decoded is not None:
            result = decoded
    if result is None:
        raise GelfEncodingError("chunks do not form a complete GELF message")
    return result


def describe_chunks(chunks: Sequence[bytes]) -> list[dict[str, Any]]:
    """Summarise datagrams for human inspection (CLI ``preview``)."""

    rows: list[dict[str, Any]] = []
    for index, chunk in enumerate(chunks):
        if chunk.startswith(CHUNK_MAGIC) and len(chunk) >= CHUNK_HEADER_SIZE:
            rows.append(
                {
                    "index": index,
                    "bytes": len(chunk),
                    "message_id": chunk[2:10].hex(),
                    "sequence": chunk[10],
                    "count": chunk[11],
                }
            )
        else:
            rows.append({"index": index, "bytes": len(chunk), "message_id": None, "sequence": 0, "count": 1})
    return rows


__all__ = [
    "CHUNK_HEADER_SIZE",
    "CHUNK_MAGIC",
    "COMPRESSIONS",
    "DEFAULT_PORT",
    "GELF_VERSION",
    "GelfChunkAssembler",
    "GelfEncoder",
    "MAX_CHUNK_COUNT",
    "decode_payload",
    "describe_chunks",
    "reassemble",
    "split_chunks",
]
