"""Exception hierarchy for the cash game ledger.

Every error carries the HTTP-ish status code a transport layer should map it
to, so callers outside the core never need to inspect exception types.
"""

from typing import Any


class CashGameError(Exception):
    """Base exception for cash game errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class NotFoundError(CashGameError):
    """Record is absent or the actor may not see it.

    Both cases share one message so existence is never leaked.
    """

    status_code = 404


class UnauthorizedError(CashGameError):
    """No authenticated actor."""

    status_code = 401


class ForbiddenError(CashGameError):
    """Actor can see the session but the operation is owner-only."""

    status_code = 403


class ValidationError(CashGameError):
    """Input rejected before it reached the ledger."""

    status_code = 422


class UpstreamUnconfiguredError(CashGameError):
    """Reasoning collaborator has no credentials."""

    status_code = 500


class UpstreamInvalidResponseError(CashGameError):
    """Reasoning collaborator failed or returned unparseable output."""

    status_code = 502
