"""Ports for the host application's identity and request lookups.

The forwarder only reads through these protocols. Frameworks adapt their
security context, party service and request handler to them.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lib_gelf_forwarder.domain.identity import AccountInfo, PersonInfo, RequestInfo


@runtime_checkable
class IdentityPort(Protocol):
    """Expose the authenticated account of the current session."""

    def is_session_active(self) -> bool:
        """Return ``True`` when a security session has been initialised."""

    def current_account(self) -> AccountInfo | None:
        """Return the authenticated account, or ``None`` for anonymous access."""


@runtime_checkable
class PersonResolverPort(Protocol):
    """Resolve the person record linked to an account (optional capability)."""

    def resolve_person(self, account: AccountInfo) -> PersonInfo | None: ...


@runtime_checkable
class RequestPort(Protocol):
    """Expose the HTTP request currently being handled, if any."""

    def current_request(self) -> RequestInfo | None:
        """Return ``None`` outside request handling (CLI, background jobs)."""


__all__ = ["IdentityPort", "PersonResolverPort", "RequestPort"]
