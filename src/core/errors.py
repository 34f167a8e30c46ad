"""Error taxonomy.

Every failure that leaves the core is one of the classes below, so callers
(CLI, web) can branch on the type instead of on message strings.
"""

from __future__ import annotations

from enum import Enum


class ErrorType(str, Enum):
    """Closed set of error kinds surfaced to callers."""

    INVALID_CREDENTIAL = "invalid_credential"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    PERSISTENCE_FAILED = "persistence_failed"
    GENERAL_ERROR = "general_error"


class VerceiptsError(Exception):
    """Base error. Carries a user-facing message and an HTTP-style status code."""

    default_type = ErrorType.GENERAL_ERROR
    default_status = 500

    def __init__(
        self,
        message: str,
        error_type: ErrorType | None = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message
        self.error_type = error_type or self.default_type
        self.status_code = status_code or self.default_status
        super().__init__(self.message)


class InvalidCredential(VerceiptsError):
    """The token is missing or the identity endpoint rejected it."""

    default_type = ErrorType.INVALID_CREDENTIAL
    default_status = 401


class UpstreamUnavailable(VerceiptsError):
    """A listing or enrichment call did not succeed."""

    default_type = ErrorType.UPSTREAM_UNAVAILABLE
    default_status = 502


class FetchFailed(UpstreamUnavailable):
    """A paginated fetch aborted on a non-success response or transport error.

    `upstream_status` is None when no response was received at all.
    """

    def __init__(
        self,
        message: str,
        *,
        endpoint: str,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.upstream_status = upstream_status


class PersistenceFailed(VerceiptsError):
    """The statistics upsert failed (connectivity, constraint, driver)."""

    default_type = ErrorType.PERSISTENCE_FAILED
    default_status = 503
