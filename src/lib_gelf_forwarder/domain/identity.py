"""Read-only records supplied by the host application's collaborators.

The security context, persistence layer and HTTP stack of the host are not
part of this package. They hand us these small value objects through the
ports in :mod:`lib_gelf_forwarder.application.ports`.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class AccountInfo:
    """Authenticated account resolved from the active session.

    Attributes
    ----------
    identifier:
        Login name / account identifier shown to operators.
    persisted_id:
        Identifier of the persisted account record.
    roles:
        Role identifiers granted to the account.
    """

    identifier: str
    persisted_id: str
    roles: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", tuple(self.roles))


@dataclass(slots=True, frozen=True)
class PersonInfo:
    """Person (party) record linked to an account."""

    display_name: str
    persisted_id: str


@dataclass(slots=True, frozen=True)
class RequestInfo:
    """Attributes of the HTTP request being handled when an error occurred."""

    host: str | None = None
    client_ip: str | None = None
    relative_path: str | None = None
    uri_path: str | None = None
    user_agent: str | None = None
    method: str | None = None
    port: int | None = None


__all__ = ["AccountInfo", "PersonInfo", "RequestInfo"]
