"""Engine error taxonomy.

Every rejected engine operation raises one of these before (or instead of)
committing, so the caller sees the specific reason and no partial write
survives. ``status_code`` is the HTTP status the API layer reports.
"""

from typing import Optional


class EngineError(Exception):
    """Base class for all order/ticket engine failures."""

    status_code = 500

    def __init__(self, detail: str, *, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class ValidationError(EngineError):
    """Input is missing or malformed; rejected before any write."""

    status_code = 400


class AuthorizationError(EngineError):
    """Actor role or branch does not allow the operation."""

    status_code = 403


class SignatureError(AuthorizationError):
    """Marketplace webhook signature is missing or does not match."""

    status_code = 401


class NotFoundError(EngineError):
    """Unknown order, ticket, table, branch or debt id."""

    status_code = 404


class ConflictError(EngineError):
    """Operation conflicts with current state (empty dispatch, re-settle, races)."""

    status_code = 409


class IntegrityRace(ConflictError):
    """A concurrent writer won a uniqueness race (table occupancy, ticket sequence)."""
