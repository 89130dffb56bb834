"""Domain exceptions.

Services raise these; the global handler in ``noizlabs.middleware.error_handler``
renders them as ``{"detail": ..., "code": ...}`` with the matching HTTP status.
"""

from __future__ import annotations


class NoizError(Exception):
    """Base class for every expected, terminal request failure."""

    status_code: int = 400
    code: str = "error"

    def __init__(self, detail: str, *, code: str | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if code is not None:
            self.code = code


class ValidationFailed(NoizError):
    """Missing or malformed input, rejected before any side effect."""

    status_code = 400
    code = "validation_failed"


class StaleReference(NoizError):
    """Referenced row is older than the freshness window (possible replay)."""

    status_code = 400
    code = "stale_reference"


class Unauthorized(NoizError):
    """No session, bad signature, or an unusable login token."""

    status_code = 401
    code = "unauthorized"


class Forbidden(NoizError):
    """Authenticated, but the caller does not own the referenced row."""

    status_code = 403
    code = "forbidden"


class NotFound(NoizError):
    status_code = 404
    code = "not_found"


class AlreadyDone(NoizError):
    """Idempotency conflict: the action was already applied."""

    status_code = 409
    code = "already_done"


class RateLimited(NoizError):
    status_code = 429
    code = "rate_limited"
