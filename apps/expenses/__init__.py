"""
Expenses App - Trip Expense Ledger

This app records shared trip expenses and turns them into balances and
settle-up suggestions.

Key Features:
- Minor-unit precise splitting (cents, or whole units for JPY/KRW/...)
- Net balance per member, summing to exactly zero
- Greedy minimal-transfer settlement, computed per currency
- Recorded settle-up payments that move balances toward zero
- Budget summary against the trip's planned budget

Architecture:
- Models: Expense, SettlementPayment
- Services: ledger (pure), expense_management (database)
- Views: nested under /api/trips/{trip_id}/
"""

__version__ = '1.0.0'
