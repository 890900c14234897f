from __future__ import annotations

from typing import Any

import pytest

from lib_gelf_forwarder.adapters.gelf import GelfEncoder, reassemble
from lib_gelf_forwarder.application.use_cases.forward_event import (
    EventForwarder,
    identity_fields,
    request_fields,
    status_message,
)
from lib_gelf_forwarder.domain import (
    AccountInfo,
    ChunkSize,
    ErrorEvent,
    LogMessage,
    PersonInfo,
    ReportableError,
    RequestInfo,
    Severity,
    TransportConfig,
)

GRAYLOG = TransportConfig(host="gray.example", port=12201, chunk_size=ChunkSize.WAN)


class _RecordingEncoder:
    def __init__(self) -> None:
        self.messages: list[LogMessage] = []

    def encode(self, message: LogMessage) -> list[bytes]:
        self.messages.append(message)
        return [b"datagram"]


class _StaticIdentity:
    def __init__(self, account: AccountInfo | None, *, active: bool = True) -> None:
        self.account = account
        self.active = active

    def is_session_active(self) -> bool:
        return self.active

    def current_account(self) -> AccountInfo | None:
        return self.account


class _StaticPersonResolver:
    def __init__(self, person: PersonInfo | None) -> None:
        self.person = person

    def resolve_person(self, account: AccountInfo) -> PersonInfo | None:
        return self.person


class _StaticRequest:
    def __init__(self, request: RequestInfo | None) -> None:
        self.request = request

    def current_request(self) -> RequestInfo | None:
        return self.request


class _BrokenIdentity:
    def is_session_active(self) -> bool:
        raise LookupError("security context unavailable")

    def current_account(self) -> AccountInfo | None:  # pragma: no cover - never reached
        return None


@pytest.fixture
def encoder() -> _RecordingEncoder:
    return _RecordingEncoder()


def _forwarder(encoder: Any, transport: Any, **kwargs: Any) -> EventForwarder:
    kwargs.setdefault("transport_config", GRAYLOG)
    return EventForwarder(encoder=encoder, transport=transport, **kwargs)


def test_skipped_status_code_sends_nothing(encoder: _RecordingEncoder, transport, diagnostics) -> None:
    forwarder = _forwarder(encoder, transport, skip_status_codes=[404, "403"], diagnostic=diagnostics)

    forwarder.report_exception(ReportableError("missing", status_code=404))
    forwarder.report_exception(ReportableError("forbidden", status_code="403"))

    assert transport.sent == []
    assert encoder.messages == []
    assert diagnostics.names() == ["graylog_filtered", "graylog_filtered"]


def test_skip_list_compares_text_form(encoder: _RecordingEncoder, transport) -> None:
    forwarder = _forwarder(encoder, transport, skip_status_codes=["404"])

    assert forwarder.is_skipped(404) is True
    assert forwarder.is_skipped("404") is True
    assert forwarder.is_skipped(500) is False
    assert forwarder.is_skipped(None) is False


@pytest.mark.parametrize(
    "status_code, expected",
    [(500, Severity.ERROR), (404, Severity.WARNING), (None, Severity.WARNING), ("500", Severity.WARNING), (503, Severity.WARNING)],
)
def test_severity_derived_from_status_code(encoder: _RecordingEncoder, transport, status_code: Any, expected: Severity) -> None:
    _forwarder(encoder, transport).report_exception(ReportableError("boom", status_code=status_code))

    assert encoder.messages[0].level is expected


def test_status_500_without_session_or_request_has_exact_exception_fields(encoder: _RecordingEncoder, transport) -> None:
    try:
        raise ReportableError("database down", status_code=500, reference_code="ref-42", code=1601)
    except ReportableError as exc:
        _forwarder(encoder, transport).report_exception(exc)

    (message,) = encoder.messages
    assert message.short_message == "database down"
    assert list(message.metadata) == [
        "exception",
        "reference_code",
        "response_status_code",
        "response_status_message",
        "code",
        "file",
        "line",
    ]
    assert message.metadata["response_status_code"] == 500
    assert message.metadata["response_status_message"] == "500 Internal Server Error"
    assert message.metadata["reference_code"] == "ref-42"
    assert message.metadata["code"] == 1601
    assert message.metadata["file"].endswith("test_forward_event.py")
    assert transport.sent == [([b"datagram"], ("gray.example", 12201))]


def test_identity_and_request_fields_follow_exception_fields(
    encoder: _RecordingEncoder,
    transport,
    sample_account: AccountInfo,
    sample_request: RequestInfo,
) -> None:
    forwarder = _forwarder(
        encoder,
        transport,
        identity=_StaticIdentity(sample_account),
        person_resolver=_StaticPersonResolver(PersonInfo("Ann Example", "person-7")),
        request=_StaticRequest(sample_request),
    )

    forwarder.report_exception(ReportableError("declined", status_code=402))

    metadata = encoder.messages[0].metadata
    assert list(metadata)[7:] == [
        "authenticated_account",
        "authenticated_roles",
        "authenticated_person",
        "request_domain",
        "request_remote_addr",
        "request_path",
        "request_uri",
        "request_user_agent",
        "request_method",
        "request_port",
    ]
    assert metadata["authenticated_account"] == "ann (acc-1)"
    assert metadata["authenticated_roles"] == "Admin, Editor"
    assert metadata["authenticated_person"] == "Ann Example (person-7)"
    assert metadata["request_domain"] == "shop.example"
    assert metadata["request_uri"] == "/checkout/pay"
    assert metadata["request_port"] == 443


def test_per_call_collaborators_override_defaults(encoder: _RecordingEncoder, transport, sample_request: RequestInfo) -> None:
    forwarder = _forwarder(encoder, transport, request=_StaticRequest(None))

    forwarder.report_exception(ReportableError("x"), request=_StaticRequest(sample_request))

    assert encoder.messages[0].metadata["request_method"] == "POST"


def test_inactive_session_adds_no_identity(encoder: _RecordingEncoder, transport, sample_account: AccountInfo) -> None:
    forwarder = _forwarder(encoder, transport, identity=_StaticIdentity(sample_account, active=False))

    forwarder.report_exception(ReportableError("x"))

    assert "authenticated_account" not in encoder.messages[0].metadata


def test_missing_host_never_reaches_transport(encoder: _RecordingEncoder, transport, diagnostics) -> None:
    forwarder = _forwarder(encoder, transport, transport_config=TransportConfig(host=None), diagnostic=diagnostics)

    forwarder.report_exception(ReportableError("boom", status_code=500))
    forwarder.report_message("hello")

    assert transport.sent == []
    assert encoder.messages == []
    assert diagnostics.names() == ["graylog_disabled", "graylog_disabled"]


def test_lookup_failure_is_swallowed(encoder: _RecordingEncoder, transport, diagnostics) -> None:
    forwarder = _forwarder(encoder, transport, identity=_BrokenIdentity(), diagnostic=diagnostics)

    forwarder.report_exception(ReportableError("boom", status_code=500))

    assert transport.sent == []
    name, payload = diagnostics.events[0]
    assert name == "graylog_report_failed"
    assert payload["operation"] == "report_exception"
    assert "security context unavailable" in payload["error"]


def test_failing_diagnostic_hook_is_swallowed(encoder: _RecordingEncoder, transport) -> None:
    def broken_hook(_name: str, _payload: dict[str, Any]) -> None:
        raise RuntimeError("hook exploded")

    forwarder = _forwarder(encoder, transport, identity=_BrokenIdentity(), diagnostic=broken_hook)

    forwarder.report_exception(ReportableError("boom"))


def test_report_message_passes_metadata_and_severity_through(encoder: _RecordingEncoder, transport) -> None:
    forwarder = _forwarder(encoder, transport, skip_status_codes=[404])

    forwarder.report_message(
        "User {user} logged in from {ip}",
        {"user": "ann", "ip": "203.0.113.9", "response_status_code": 404},
        "notice",
        full_message="details",
    )

    (message,) = encoder.messages
    assert message.short_message == "User ann logged in from 203.0.113.9"
    assert message.level is Severity.NOTICE
    assert message.metadata == {"user": "ann", "ip": "203.0.113.9", "response_status_code": 404}
    assert message.full_message == "details"


def test_report_message_defaults_to_info(encoder: _RecordingEncoder, transport) -> None:
    _forwarder(encoder, transport).report_message("plain")

    assert encoder.messages[0].level is Severity.INFO
    assert encoder.messages[0].metadata == {}


def test_report_message_invalid_severity_is_swallowed(encoder: _RecordingEncoder, transport, diagnostics) -> None:
    _forwarder(encoder, transport, diagnostic=diagnostics).report_message("x", severity="chatty")

    assert encoder.messages == []
    assert diagnostics.names() == ["graylog_report_failed"]


def test_oversized_message_is_dropped_not_raised(transport, diagnostics) -> None:
    encoder = GelfEncoder(chunk_size=16, compression="none", source_host="h")
    forwarder = _forwarder(encoder, transport, diagnostic=diagnostics)

    forwarder.report_message("x" * 5000)

    assert transport.sent == []
    assert diagnostics.names() == ["graylog_report_failed"]


def test_error_event_can_be_reported_directly(encoder: _RecordingEncoder, transport) -> None:
    event = ErrorEvent(message="prebuilt", status_code=500, file="app.py", line=12)

    _forwarder(encoder, transport).report_exception(event)

    metadata = encoder.messages[0].metadata
    assert metadata["exception"] == "prebuilt"
    assert metadata["file"] == "app.py"
    assert encoder.messages[0].level is Severity.ERROR


def test_end_to_end_payload_on_the_wire(transport, plain_encoder: GelfEncoder, sample_account: AccountInfo) -> None:
    forwarder = _forwarder(plain_encoder, transport, identity=_StaticIdentity(sample_account))

    forwarder.report_exception(ReportableError("database down", status_code=500))

    chunks, destination = transport.sent[0]
    payload = reassemble(chunks)
    assert destination == ("gray.example", 12201)
    assert payload["short_message"] == "database down"
    assert payload["level"] == 3
    assert payload["_exception"] == "ReportableError: database down"
    assert payload["_response_status_message"] == "500 Internal Server Error"
    assert payload["_authenticated_account"] == "ann (acc-1)"
    assert "_reference_code" not in payload
    assert "_code" not in payload


@pytest.mark.parametrize(
    "status_code, expected",
    [(404, "404 Not Found"), ("410", "410 Gone"), (None, "0 Unknown Status"), (599, "599 Unknown Status"), ("abc", "0 Unknown Status")],
)
def test_status_message_rendering(status_code: Any, expected: str) -> None:
    assert status_message(status_code) == expected


def test_field_builders_without_collaborators() -> None:
    assert identity_fields(None) == {}
    assert identity_fields(_StaticIdentity(None)) == {}
    assert request_fields(None) == {}
    assert request_fields(_StaticRequest(None)) == {}


def test_identity_without_person_resolver_has_no_person(sample_account: AccountInfo) -> None:
    fields = identity_fields(_StaticIdentity(sample_account))

    assert fields == {"authenticated_account": "ann (acc-1)", "authenticated_roles": "Admin, Editor"}


def test_unencodable_metadata_value_does_not_drop_message(transport, plain_encoder: GelfEncoder) -> None:
    _forwarder(plain_encoder, transport).report_message("hello", {"user": "ann", "matrix": {(1, 2): 3}})

    ((chunks, _destination),) = transport.sent
    payload = reassemble(chunks)
    assert payload["_user"] == "ann"
    assert payload["_matrix"] == "{(1, 2): 3}"
