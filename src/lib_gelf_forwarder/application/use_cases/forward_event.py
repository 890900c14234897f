"""Use case forwarding exceptions and messages to Graylog.

Purpose
-------
Decide whether and how loudly an error is reported, enrich it with identity
and request metadata supplied by the host application, and hand the final
message to the encoder and transport.

Contents
--------
* :class:`EventForwarder` - ``report_exception`` / ``report_message``.
* Field builders: :func:`exception_fields`, :func:`identity_fields`,
  :func:`request_fields`.
* Policy helpers: :func:`derive_severity`, :func:`status_message`,
  :func:`interpolate`.

System Role
-----------
Application-layer orchestrator. It depends on ports only; the runtime
façade wires concrete adapters in. Reporting is fire-and-forget: no public
method of :class:`EventForwarder` raises.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Set as AbstractSet
from http import HTTPStatus
from typing import Any

from lib_gelf_forwarder.application.ports.diagnostic import DiagnosticHook
from lib_gelf_forwarder.application.ports.encoder import MessageEncoderPort
from lib_gelf_forwarder.application.ports.identity import IdentityPort, PersonResolverPort, RequestPort
from lib_gelf_forwarder.application.ports.transport import TransportPort
from lib_gelf_forwarder.domain.events import ErrorEvent, LogMessage
from lib_gelf_forwarder.domain.levels import Severity
from lib_gelf_forwarder.domain.metadata import MetadataEnvelope
from lib_gelf_forwarder.domain.transport import TransportConfig

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([\w.\-]+)\}")


class EventForwarder:
    """Report exceptions and messages to a Graylog server.

    Parameters
    ----------
    transport_config:
        Destination and chunk preset; a config without host disables sending.
    encoder:
        :class:`MessageEncoderPort` producing GELF datagrams.
    transport:
        :class:`TransportPort` delivering the datagrams.
    skip_status_codes:
        Status codes whose exceptions are never reported. Compared by their
        text form, so ``404`` and ``"404"`` are equivalent.
    identity:
        Default :class:`IdentityPort`, overridable per call.
    person_resolver:
        Optional :class:`PersonResolverPort`; without it no
        ``authenticated_person`` field is produced.
    request:
        Default :class:`RequestPort`, overridable per call.
    diagnostic:
        Optional hook receiving drop/failure notifications.
    """

    def __init__(
        self,
        *,
        transport_config: TransportConfig,
        encoder: MessageEncoderPort,
        transport: TransportPort,
        skip_status_codes: Iterable[int | str] = (),
        identity: IdentityPort | None = None,
        person_resolver: PersonResolverPort | None = None,
        request: RequestPort | None = None,
        diagnostic: DiagnosticHook = None,
    ) -> None:
        self._transport_config = transport_config
        self._encoder = encoder
        self._transport = transport
        self._skip_status_codes = frozenset(str(code).strip() for code in skip_status_codes)
        self._identity = identity
        self._person_resolver = person_resolver
        self._request = request
        self._diagnostic = diagnostic

    @property
    def transport_config(self) -> TransportConfig:
        return self._transport_config

    @property
    def skip_status_codes(self) -> frozenset[str]:
        return self._skip_status_codes

    def report_exception(
        self,
        exception: BaseException | ErrorEvent,
        identity: IdentityPort | None = None,
        request: RequestPort | None = None,
    ) -> None:
        """Forward ``exception`` with severity and context metadata.

        Exceptions whose status code is on the skip list are dropped. A
        status code of exactly ``500`` is reported as ERROR, everything else
        as WARNING. Metadata is merged in the order exception fields,
        identity fields, request fields; earlier keys are never overwritten.
        """

        try:
            self._report_exception(
                exception,
                identity if identity is not None else self._identity,
                request if request is not None else self._request,
            )
        except Exception as exc:  # noqa: BLE001 - reporting must never fail the caller
            logger.debug("Reporting exception to Graylog failed", exc_info=True)
            self._emit("graylog_report_failed", {"operation": "report_exception", "error": repr(exc)})

    def report_message(
        self,
        raw_message: str,
        metadata: Mapping[str, Any] | None = None,
        severity: Severity | int | str = Severity.INFO,
        *,
        full_message: str | None = None,
    ) -> None:
        """Forward ``raw_message`` as-is; the caller supplies all metadata."""

        try:
            self._send(raw_message, MetadataEnvelope(metadata), Severity.coerce(severity), full_message=full_message)
        except Exception as exc:  # noqa: BLE001 - reporting must never fail the caller
            logger.debug("Reporting message to Graylog failed", exc_info=True)
            self._emit("graylog_report_failed", {"operation": "report_message", "error": repr(exc)})

    def is_skipped(self, status_code: int | str | None) -> bool:
        """Return ``True`` when ``status_code`` is on the skip list."""

        if status_code is None or status_code == "":
            return False
        return str(status_code).strip() in self._skip_status_codes

    def _report_exception(
        self,
        exception: BaseException | ErrorEvent,
        identity: IdentityPort | None,
        request: RequestPort | None,
    ) -> None:
        event = exception if isinstance(exception, ErrorEvent) else ErrorEvent.from_exception(exception)
        if self.is_skipped(event.status_code):
            logger.debug("Skipping exception with status code %s", event.status_code)
            self._emit("graylog_filtered", {"status_code": event.status_code})
            return

        severity = derive_severity(event.status_code)
        metadata = MetadataEnvelope(exception_fields(event))
        metadata.merge(identity_fields(identity, self._person_resolver), on_collision=self._on_collision)
        metadata.merge(request_fields(request), on_collision=self._on_collision)
        self._send(event.message, metadata, severity)

    def _send(
        self,
        raw_message: str,
        metadata: MetadataEnvelope,
        severity: Severity,
        *,
        full_message: str | None = None,
    ) -> None:
        if not self._transport_config.enabled:
            self._emit("graylog_disabled", {"message": raw_message})
            return
        message = LogMessage(
            short_message=interpolate(raw_message, metadata),
            level=severity,
            metadata=metadata,
            full_message=full_message,
        )
        chunks = self._encoder.encode(message)
        self._transport.send(chunks, self._transport_config.destination)

    def _on_collision(self, key: str, kept: Any, rejected: Any) -> None:
        logger.debug("Metadata key %r already set; keeping %r over %r", key, kept, rejected)
        self._emit("metadata_collision", {"key": key})

    def _emit(self, name: str, payload: dict[str, Any]) -> None:
        if self._diagnostic is None:
            return
        try:
            self._diagnostic(name, payload)
        except Exception:  # noqa: BLE001 - diagnostics must not escape either
            logger.debug("Diagnostic hook failed for %s", name, exc_info=True)


def derive_severity(status_code: int | str | None) -> Severity:
    """Return ERROR for status ``500`` and WARNING otherwise.

    The comparison is strict: a string ``"500"`` is not ``500``.

    Examples
    --------
    >>> derive_severity(500), derive_severity("500"), derive_severity(None)
    (<Severity.ERROR: 3>, <Severity.WARNING: 4>, <Severity.WARNING: 4>)
    """

    if status_code == 500 and not isinstance(status_code, bool):
        return Severity.ERROR
    return Severity.WARNING


def status_message(status_code: int | str | None) -> str:
    """Render ``"<code> <reason phrase>"`` for the status code.

    Missing or non-numeric codes render as ``0``; unknown codes get the
    phrase ``Unknown Status``.

    Examples
    --------
    >>> status_message(404)
    '404 Not Found'
    >>> status_message(None)
    '0 Unknown Status'
    >>> status_message(599)
    '599 Unknown Status'
    """

    try:
        numeric = int(status_code) if status_code not in (None, "") else 0
    except (TypeError, ValueError):
        numeric = 0
    try:
        reason = HTTPStatus(numeric).phrase
    except ValueError:
        reason = "Unknown Status"
    return f"{numeric} {reason}"


def exception_fields(event: ErrorEvent) -> dict[str, Any]:
    """Base metadata describing the error itself."""

    return {
        "exception": event.exception if event.exception is not None else event.message,
        "reference_code": event.reference_code,
        "response_status_code": event.status_code,
        "response_status_message": status_message(event.status_code),
        "code": event.code,
        "file": event.file,
        "line": event.line,
    }


def identity_fields(identity: IdentityPort | None, person_resolver: PersonResolverPort | None = None) -> dict[str, Any]:
    """Metadata about the authenticated account, if a session has one."""

    if identity is None or not identity.is_session_active():
        return {}
    account = identity.current_account()
    if account is None:
        return {}
    fields: dict[str, Any] = {
        "authenticated_account": f"{account.identifier} ({account.persisted_id})",
        "authenticated_roles": ", ".join(account.roles),
    }
    if person_resolver is not None:
        person = person_resolver.resolve_person(account)
        if person is not None:
            fields["authenticated_person"] = f"{person.display_name} ({person.persisted_id})"
    return fields


def request_fields(request: RequestPort | None) -> dict[str, Any]:
    """Metadata about the HTTP request being handled, if any."""

    current = request.current_request() if request is not None else None
    if current is None:
        return {}
    return {
        "request_domain": current.host,
        "request_remote_addr": current.client_ip,
        "request_path": current.relative_path,
        "request_uri": current.uri_path,
        "request_user_agent": current.user_agent,
        "request_method": current.method,
        "request_port": current.port,
    }


def interpolate(message: str, metadata: Mapping[str, Any]) -> str:
    """Replace ``{key}`` placeholders with scalar metadata values.

    Containers are not substituted and unknown placeholders stay untouched.

    Examples
    --------
    >>> interpolate("user {user} failed {n} times {x}", {"user": "ann", "n": 3})
    'user ann failed 3 times {x}'
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in metadata:
            return match.group(0)
        value = metadata[key]
        if isinstance(value, (Mapping, list, tuple, AbstractSet)):
            return match.group(0)
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_replace, message)


__all__ = [
    "EventForwarder",
    "derive_severity",
    "exception_fields",
    "identity_fields",
    "interpolate",
    "request_fields",
    "status_message",
]
