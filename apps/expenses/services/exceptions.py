"""
Domain-specific exceptions for the expenses app.

These exceptions represent ledger rule violations and are caught in views
and converted to appropriate HTTP responses.
"""


class LedgerError(Exception):
    """Base exception for all ledger and expense service errors."""
    pass


class DataIntegrityError(LedgerError):
    """
    Raised when expense data violates ledger invariants.

    Covers expenses or payments that reference someone outside the trip
    roster, empty splits, non-positive amounts and amounts finer than the
    currency's minor unit. The ledger cannot repair such data, so it is
    surfaced instead of skipped.
    """
    pass


class MixedCurrencyError(LedgerError):
    """Raised when a single balance computation is given more than one currency."""
    pass


class TripNotFoundError(LedgerError):
    """Raised when a trip does not exist."""
    pass


class NotTripMemberError(LedgerError):
    """Raised when a user is not a member of the trip."""
    pass
