from __future__ import annotations

import json
import random
from datetime import datetime, timezone

import pytest

from lib_gelf_forwarder.adapters.gelf import (
    CHUNK_HEADER_SIZE,
    CHUNK_MAGIC,
    GelfChunkAssembler,
    GelfEncoder,
    decode_payload,
    describe_chunks,
    reassemble,
    split_chunks,
)
from lib_gelf_forwarder.domain import ChunkSize, GelfEncodingError, LogMessage, Severity


def _raised(exc: BaseException) -> BaseException:
    try:
        raise exc
    except BaseException as caught:  # noqa: BLE001
        return caught


class _FixedClock:
    def now(self) -> datetime:
        return datetime(2025, 9, 23, 12, 0, tzinfo=timezone.utc)


class _Unprintable:
    def __str__(self) -> str:
        raise RuntimeError("no text for you")


def test_payload_carries_gelf_core_fields(plain_encoder: GelfEncoder, fixed_time: datetime) -> None:
    payload = plain_encoder.build_payload(LogMessage("disk full", Severity.ERROR, {"volume": "/var"}))

    assert payload == {
        "version": "1.1",
        "host": "test-host",
        "short_message": "disk full",
        "timestamp": fixed_time.timestamp(),
        "level": 3,
        "_volume": "/var",
    }


def test_payload_omits_empty_values_but_keeps_falsy_numbers(plain_encoder: GelfEncoder) -> None:
    metadata = {"reference_code": None, "code": "", "line": 0, "retry": False}

    payload = plain_encoder.build_payload(LogMessage("hello", metadata=metadata))

    assert "_reference_code" not in payload
    assert "_code" not in payload
    assert payload["_line"] == 0
    assert payload["_retry"] is False


def test_payload_field_names_are_sanitised(plain_encoder: GelfEncoder) -> None:
    payload = plain_encoder.build_payload(LogMessage("hello", metadata={"request uri": "/a", "id": 7, "_private": "x"}))

    assert payload["_request_uri"] == "/a"
    assert payload["_id_"] == 7
    assert payload["_private"] == "x"
    assert "_id" not in payload


def test_exception_value_renders_type_and_traceback(plain_encoder: GelfEncoder) -> None:
    exc = _raised(ValueError("bad input"))

    payload = plain_encoder.build_payload(LogMessage("bad input", Severity.WARNING, {"exception": exc}))

    assert payload["_exception"] == "ValueError: bad input"
    assert payload["full_message"].startswith("Traceback (most recent call last):")
    assert "ValueError: bad input" in payload["full_message"]


def test_explicit_full_message_wins_over_traceback(plain_encoder: GelfEncoder) -> None:
    exc = _raised(ValueError("bad input"))

    payload = plain_encoder.build_payload(LogMessage("x", metadata={"exception": exc}, full_message="custom"))

    assert payload["full_message"] == "custom"


def test_unserialisable_values_fall_back_to_text(plain_encoder: GelfEncoder) -> None:
    payload = plain_encoder.build_payload(
        LogMessage(
            "hello",
            metadata={"when": datetime(2025, 1, 2, 3, 4, 5), "broken": _Unprintable(), "tags": ["a", "b"], "ctx": {"k": 1}},
        )
    )

    assert payload["_when"] == "2025-01-02 03:04:05"
    assert payload["_broken"].startswith("<")
    assert "_Unprintable object at" in payload["_broken"]
    assert json.loads(payload["_tags"]) == ["a", "b"]
    assert json.loads(payload["_ctx"]) == {"k": 1}


def test_long_strings_are_truncated() -> None:
    encoder = GelfEncoder(compression="none", source_host="h", max_field_chars=20)

    payload = encoder.build_payload(LogMessage("s" * 50, metadata={"blob": "b" * 50}))

    assert len(payload["short_message"]) == 20
    assert payload["short_message"].endswith("...[truncated]")
    assert len(payload["_blob"]) == 20


def test_message_timestamp_wins_over_clock(plain_encoder: GelfEncoder) -> None:
    stamped = LogMessage("hello", timestamp=datetime.fromtimestamp(1_700_000_000.123456).astimezone())

    assert plain_encoder.build_payload(stamped)["timestamp"] == pytest.approx(1_700_000_000.123456)


def _encoder(chunk_size: int, compression: str = "none") -> GelfEncoder:
    return GelfEncoder(
        chunk_size=chunk_size,
        compression=compression,
        source_host="test-host",
        clock=_FixedClock(),
        message_id_provider=lambda: b"msgid-01",
    )


def test_payload_of_exactly_chunk_size_is_one_datagram() -> None:
    message = LogMessage("boundary check", metadata={"pad": "p" * 300})
    sizing = _encoder(ChunkSize.LAN.size)
    size = len(sizing.serialize(sizing.build_payload(message)))

    single = _encoder(size).encode(message)
    split = _encoder(size - 1).encode(message)

    assert len(single) == 1
    assert not single[0].startswith(CHUNK_MAGIC)
    assert len(split) == 2
    assert all(chunk.startswith(CHUNK_MAGIC) for chunk in split)
    assert len(split[0]) == size - 1 + CHUNK_HEADER_SIZE
    assert len(split[1]) == 1 + CHUNK_HEADER_SIZE
    assert [(chunk[10], chunk[11]) for chunk in split] == [(0, 2), (1, 2)]
    assert {chunk[2:10] for chunk in split} == {b"msgid-01"}


def test_more_than_128_chunks_is_an_encoding_error() -> None:
    encoder = _encoder(10)

    with pytest.raises(GelfEncodingError, match="at most 128"):
        encoder.encode(LogMessage("x" * 2000))


def test_split_chunks_rejects_bad_message_id() -> None:
    with pytest.raises(GelfEncodingError, match="8 bytes"):
        split_chunks(b"abcdef", 2, b"short")


@pytest.mark.parametrize("compression, prefix", [("zlib", b"\x78"), ("gzip", b"\x1f\x8b"), ("none", b"{")])
def test_compression_round_trip(compression: str, prefix: bytes) -> None:
    encoder = _encoder(ChunkSize.WAN.size, compression)
    message = LogMessage("compressed", Severity.NOTICE, {"user": "ann"})

    chunks = encoder.encode(message)

    assert chunks[0].startswith(prefix)
    assert reassemble(chunks) == encoder.build_payload(message)


def test_gzip_output_is_deterministic() -> None:
    encoder = _encoder(ChunkSize.WAN.size, "gzip")
    message = LogMessage("same bytes")

    assert encoder.encode(message) == encoder.encode(message)


def test_shuffled_chunks_reassemble() -> None:
    encoder = _encoder(64)
    message = LogMessage("scattered", metadata={"body": "".join(chr(65 + i % 26) for i in range(900))})
    chunks = encoder.encode(message)
    shuffled = list(chunks)
    random.Random(7).shuffle(shuffled)

    assert len(chunks) > 10
    assert reassemble(shuffled) == encoder.build_payload(message)


def test_default_message_id_is_shared_by_all_chunks() -> None:
    encoder = GelfEncoder(chunk_size=32, compression="none", source_host="h")

    chunks = encoder.encode(LogMessage("x" * 300))

    ids = {chunk[2:10] for chunk in chunks}
    assert len(ids) == 1
    assert len(ids.pop()) == 8


def test_assembler_tracks_pending_messages() -> None:
    chunks = split_chunks(b'{"short_message":"hi"}', 8, b"abcdefgh")
    assembler = GelfChunkAssembler()

    assert assembler.feed(chunks[0]) is None
    assert assembler.pending == 1
    assembler.discard(b"abcdefgh")
    assert assembler.pending == 0


def test_assembler_rejects_invalid_header() -> None:
    bogus = CHUNK_MAGIC + b"abcdefgh" + bytes((3, 2)) + b"data"

    with pytest.raises(GelfEncodingError, match="invalid chunk header"):
        GelfChunkAssembler().feed(bogus)


def test_reassemble_requires_complete_message() -> None:
    chunks = split_chunks(b'{"short_message":"hi"}', 8, b"abcdefgh")

    with pytest.raises(GelfEncodingError, match="complete"):
        reassemble(chunks[:-1])


def test_decode_payload_rejects_garbage() -> None:
    with pytest.raises(GelfEncodingError, match="not valid GELF JSON"):
        decode_payload(b"not json")


def test_describe_chunks_reports_headers() -> None:
    rows = describe_chunks(split_chunks(b"abcdefghij", 4, b"abcdefgh"))

    assert [(row["sequence"], row["count"], row["bytes"]) for row in rows] == [(0, 3, 16), (1, 3, 16), (2, 3, 14)]
    assert rows[0]["message_id"] == b"abcdefgh".hex()
    assert describe_chunks([b"{}"]) == [{"index": 0, "bytes": 2, "message_id": None, "sequence": 0, "count": 1}]


@pytest.mark.parametrize("kwargs", [{"compression": "brotli"}, {"chunk_size": 0}, {"max_field_chars": 0}])
def test_encoder_rejects_invalid_configuration(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        GelfEncoder(**kwargs)  # type: ignore[arg-type]


def test_unencodable_containers_fall_back_to_text(plain_encoder: GelfEncoder) -> None:
    loop: dict[str, object] = {}
    loop["self"] = loop
    message = LogMessage("hello", metadata={"user": "ann", "matrix": {(1, 2): 3}, "loop": loop})

    payload = plain_encoder.build_payload(message)
    chunks = plain_encoder.encode(message)

    assert payload["_user"] == "ann"
    assert payload["_matrix"] == "{(1, 2): 3}"
    assert payload["_loop"] == "{'self': {...}}"
    assert reassemble(chunks)["_matrix"] == "{(1, 2): 3}"


def _reject_constant(name: str) -> None:
    raise ValueError(name)


def test_non_finite_floats_are_sent_as_text(plain_encoder: GelfEncoder) -> None:
    message = LogMessage("hello", metadata={"ratio": float("nan"), "limit": float("inf"), "series": [1.5, float("-inf")], "mean": 2.5})

    (datagram,) = plain_encoder.encode(message)
    payload = json.loads(datagram.decode("utf-8"), parse_constant=_reject_constant)

    assert payload["_ratio"] == "nan"
    assert payload["_limit"] == "inf"
    assert payload["_series"] == "[1.5, -inf]"
    assert payload["_mean"] == 2.5


def test_sanitised_key_collision_keeps_first_value(plain_encoder: GelfEncoder, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level("DEBUG", logger="lib_gelf_forwarder.adapters.gelf")

    payload = plain_encoder.build_payload(
        LogMessage("hello", metadata={"request uri": "/a", "request_uri": "/b", "id": 1, "id_": 2, "x": "first", "_x": "second"})
    )

    assert payload["_request_uri"] == "/a"
    assert payload["_id_"] == 1
    assert payload["_x"] == "first"
    assert "keeping the first value" in caplog.text
