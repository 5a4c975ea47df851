"""
Expenses app services layer.

The ledger module is pure and safe to import anywhere; expense_management
wraps it with database access and transactions.
"""

from .exceptions import (
    LedgerError,
    DataIntegrityError,
    MixedCurrencyError,
    TripNotFoundError,
    NotTripMemberError,
)

from .ledger import (
    ExpenseEntry,
    PaymentEntry,
    Debt,
    CurrencyLedger,
    split_amount,
    compute_balances,
    compute_settlement,
    compute_trip_ledger,
)

from .expense_management import (
    get_trip_for_member,
    create_expense,
    update_expense,
    delete_expense,
    record_settlement_payment,
    get_trip_ledger,
    share_settlement_summary,
    get_budget_summary,
)


__all__ = [
    # Exceptions
    'LedgerError',
    'DataIntegrityError',
    'MixedCurrencyError',
    'TripNotFoundError',
    'NotTripMemberError',

    # Ledger Engine
    'ExpenseEntry',
    'PaymentEntry',
    'Debt',
    'CurrencyLedger',
    'split_amount',
    'compute_balances',
    'compute_settlement',
    'compute_trip_ledger',

    # Expense Management
    'get_trip_for_member',
    'create_expense',
    'update_expense',
    'delete_expense',
    'record_settlement_payment',
    'get_trip_ledger',
    'share_settlement_summary',
    'get_budget_summary',
]
