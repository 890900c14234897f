"""Exceptions raised or recognised by the forwarding pipeline."""

from __future__ import annotations


class ReportableError(Exception):
    """Application error carrying an HTTP status and support reference.

    Host frameworks can subclass this (or expose the same attributes on their
    own exceptions) so :meth:`EventForwarder.report_exception` can apply the
    skip list and severity rules.

    Examples
    --------
    >>> err = ReportableError("missing", status_code=404, reference_code="ref-1")
    >>> err.status_code, err.reference_code, err.code
    (404, 'ref-1', None)
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        reference_code: str | None = None,
        code: int | str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reference_code = reference_code
        self.code = code


class GelfEncodingError(ValueError):
    """Raised when a message cannot be turned into GELF datagrams."""


__all__ = ["GelfEncodingError", "ReportableError"]
