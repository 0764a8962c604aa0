"""Exception taxonomy for the request ledger and generator.

Every exception carries an ErrorCode so callers (and the callback inbox)
can report failures without matching on message text.
"""

from typing import Any

from seedmint.codes import ErrorCode


class SeedmintError(Exception):
    """Base class for all seedmint failures."""
    code: ErrorCode

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class InsufficientResource(SeedmintError):
    """Payment gate refused the request. Retry after funding."""
    code = ErrorCode.INSUFFICIENT_RESOURCE


class DuplicateRequestHandle(SeedmintError):
    """Provider issued a handle the ledger already tracks."""
    code = ErrorCode.DUPLICATE_REQUEST_HANDLE


class UnauthorizedCallback(SeedmintError):
    """Callback did not come from the configured randomness provider."""
    code = ErrorCode.UNAUTHORIZED_CALLBACK


class InvalidSeed(SeedmintError, ValueError):
    """Value is not an unsigned 256-bit integer."""
    code = ErrorCode.INVALID_SEED


class UnknownRequest(SeedmintError):
    """Callback references a handle with no matching request."""
    code = ErrorCode.UNKNOWN_REQUEST


class AlreadySeeded(SeedmintError):
    """A seed was already written for this item."""
    code = ErrorCode.ALREADY_SEEDED


class SeedNotReady(SeedmintError):
    """Finalize attempted before the seed arrived. Retry later."""
    code = ErrorCode.SEED_NOT_READY


class AlreadyFinalized(SeedmintError):
    """Item content was already generated and published."""
    code = ErrorCode.ALREADY_FINALIZED


class UnknownItem(SeedmintError):
    """Item id was never allocated."""
    code = ErrorCode.UNKNOWN_ITEM
