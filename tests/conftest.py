from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

import pytest

from lib_gelf_forwarder import runtime
from lib_gelf_forwarder.adapters.gelf import GelfEncoder
from lib_gelf_forwarder.domain import AccountInfo, RequestInfo

FIXED_TIME = datetime(2025, 9, 23, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    def now(self) -> datetime:
        return FIXED_TIME


class RecordingTransport:
    """Transport double keeping every ``send`` call."""

    def __init__(self) -> None:
        self.sent: list[tuple[list[bytes], tuple[str, int]]] = []

    def send(self, chunks: Sequence[bytes], destination: tuple[str, int]) -> None:
        self.sent.append((list(chunks), destination))


class DiagnosticRecorder:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, name: str, payload: dict[str, Any]) -> None:
        self.events.append((name, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def fixed_time() -> datetime:
    return FIXED_TIME


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def diagnostics() -> DiagnosticRecorder:
    return DiagnosticRecorder()


@pytest.fixture
def plain_encoder() -> GelfEncoder:
    """Uncompressed encoder with a fixed clock and message id."""

    return GelfEncoder(
        compression="none",
        source_host="test-host",
        clock=FixedClock(),
        message_id_provider=lambda: b"msgid-01",
    )


@pytest.fixture
def sample_account() -> AccountInfo:
    return AccountInfo(identifier="ann", persisted_id="acc-1", roles=("Admin", "Editor"))


@pytest.fixture
def sample_request() -> RequestInfo:
    return RequestInfo(
        host="shop.example",
        client_ip="203.0.113.9",
        relative_path="checkout/pay",
        uri_path="/checkout/pay",
        user_agent="pytest-agent",
        method="POST",
        port=443,
    )


@pytest.fixture(autouse=True)
def _reset_runtime():
    try:
        yield
    finally:
        runtime.shutdown()


@pytest.fixture(autouse=True)
def _clean_graylog_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer GRAYLOG_* variables out of the tests."""

    from lib_gelf_forwarder.config import DOTENV_ENV_VAR, ENV_VARS

    for variable in (*ENV_VARS.values(), DOTENV_ENV_VAR):
        monkeypatch.delenv(variable, raising=False)
