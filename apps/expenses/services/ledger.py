"""
Ledger Engine
=============

Pure balance and settlement computation for one trip. No database access,
no I/O; every function takes explicit inputs and returns new values, so
it is safe to call from any thread.

Amounts are handled in integer minor units (cents, or whole yen for
zero-decimal currencies). Converting to minor units, dividing with floor
division and handing out the remainder one unit at a time guarantees
that shares sum exactly to the expense amount and balances sum exactly
to zero.

Functions:
    split_amount: Split one amount among participants.
    compute_balances: Net signed balance per member for one currency.
    compute_settlement: Greedy minimal transfer list for a balance mapping.
    compute_trip_ledger: Balances and settlement per currency.

Example:
    Three friends, one dinner::

        from decimal import Decimal
        from apps.expenses.services.ledger import (
            ExpenseEntry, compute_balances, compute_settlement,
        )

        dinner = ExpenseEntry(
            id='e1', amount=Decimal('30.00'), currency='USD',
            paid_by='a', split_among=('a', 'b', 'c'),
        )
        balances = compute_balances([dinner], members={'a', 'b', 'c'})
        # {'a': Decimal('20.00'), 'b': Decimal('-10.00'), 'c': Decimal('-10.00')}

        compute_settlement(balances, 'USD')
        # [Debt(b -> a 10.00 USD), Debt(c -> a 10.00 USD)]
"""

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Hashable, Iterable, List, Tuple

from apps.expenses.currency import (
    AmountPrecisionError,
    format_amount,
    from_minor_units,
    normalize_currency,
    to_minor_units,
)

from .exceptions import DataIntegrityError, MixedCurrencyError


MemberId = Hashable


@dataclass(frozen=True)
class ExpenseEntry:
    """
    The slice of an expense the ledger needs.

    ``shares`` holds explicit per-member amounts for a custom split; when
    empty the amount is split equally among ``split_among``.
    """

    id: Hashable
    amount: Decimal
    currency: str
    paid_by: MemberId
    split_among: Tuple[MemberId, ...]
    shares: Tuple[Tuple[MemberId, Decimal], ...] = ()


@dataclass(frozen=True)
class PaymentEntry:
    """A recorded settle-up payment: ``from_member`` paid ``to_member``."""

    from_member: MemberId
    to_member: MemberId
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class Debt:
    """One suggested transfer: ``from_member`` pays ``to_member``."""

    from_member: MemberId
    to_member: MemberId
    amount: Decimal
    currency: str

    @property
    def formatted_amount(self) -> str:
        return format_amount(self.amount, self.currency)

    def __str__(self):
        return f"{self.from_member} -> {self.to_member} {self.amount} {self.currency}"


@dataclass(frozen=True)
class CurrencyLedger:
    """Balances and settlement for the part of a trip in one currency."""

    currency: str
    total_spent: Decimal
    balances: Dict[MemberId, Decimal] = field(default_factory=dict)
    settlement: List[Debt] = field(default_factory=list)


def _member_key(member: MemberId) -> str:
    return str(member)


def _ordered_participants(participants: Iterable[MemberId]) -> List[MemberId]:
    """Deduplicate and sort participants by id so remainders land deterministically."""
    return sorted(set(participants), key=_member_key)


def _units(amount, currency: str, what: str) -> int:
    try:
        return to_minor_units(amount, currency)
    except AmountPrecisionError as exc:
        raise DataIntegrityError(f"{what}: {exc}") from exc


def _split_units(total_units: int, participants: List[MemberId]) -> List[Tuple[MemberId, int]]:
    base, remainder = divmod(total_units, len(participants))
    return [
        (member, base + 1 if index < remainder else base)
        for index, member in enumerate(participants)
    ]


def split_amount(amount: Decimal, currency: str, participants: Iterable[MemberId]) -> List[Tuple[MemberId, Decimal]]:
    """
    Split an amount among participants with minor-unit precision.

    Participants are deduplicated and sorted by id. The first ``remainder``
    participants receive one extra minor unit each.

    Args:
        amount: Positive amount to split.
        currency: Currency code; decides the minor unit (0 or 2 digits).
        participants: Member ids sharing the cost.

    Returns:
        List of ``(member_id, share)`` tuples in sorted member order. The
        shares sum exactly to ``amount``.

    Raises:
        DataIntegrityError: If there are no participants, the amount is not
            positive, or it has sub-minor-unit precision.

    Example:
        >>> split_amount(Decimal('10.00'), 'USD', ['c', 'a', 'b'])
        [('a', Decimal('3.34')), ('b', Decimal('3.33')), ('c', Decimal('3.33'))]
    """
    ordered = _ordered_participants(participants)
    if not ordered:
        raise DataIntegrityError("At least one participant required")

    total_units = _units(amount, currency, 'Split amount')
    if total_units <= 0:
        raise DataIntegrityError(f"Split amount must be positive, got {amount}")

    return [
        (member, from_minor_units(units, currency))
        for member, units in _split_units(total_units, ordered)
    ]


def _single_currency(expenses: List[ExpenseEntry], payments: List[PaymentEntry]) -> str:
    currencies = {normalize_currency(e.currency) for e in expenses}
    currencies |= {normalize_currency(p.currency) for p in payments}
    if len(currencies) > 1:
        raise MixedCurrencyError(
            f"Balances need a single currency, got {', '.join(sorted(currencies))}"
        )
    return currencies.pop()


def _require_member(member: MemberId, members, context: str) -> None:
    if member not in members:
        raise DataIntegrityError(f"{context} references {member}, who is not a trip member")


def _share_units(expense: ExpenseEntry, total: int, currency: str, context: str) -> List[Tuple[MemberId, int]]:
    if not expense.shares:
        participants = _ordered_participants(expense.split_among)
        if not participants:
            raise DataIntegrityError(f"{context} is not split among anyone")
        return _split_units(total, participants)

    shares = []
    seen = set()
    for member, amount in sorted(expense.shares, key=lambda share: _member_key(share[0])):
        if member in seen:
            raise DataIntegrityError(f"{context} lists {member} twice in its custom split")
        seen.add(member)
        units = _units(amount, currency, f"{context} share of {member}")
        if units <= 0:
            raise DataIntegrityError(f"{context} share of {member} must be positive")
        shares.append((member, units))

    # Custom shares must cover the amount exactly
    allocated = sum(units for _, units in shares)
    if allocated != total:
        raise DataIntegrityError(
            f"{context} custom shares add up to {from_minor_units(allocated, currency)}, "
            f"expected {from_minor_units(total, currency)}"
        )
    return shares


def _balance_units(expenses, members, payments) -> Tuple[str, Dict[MemberId, int]]:
    expenses = list(expenses)
    payments = list(payments)
    if not expenses and not payments:
        return '', {}

    members = set(members)
    currency = _single_currency(expenses, payments)
    units: Dict[MemberId, int] = defaultdict(int)

    for expense in expenses:
        context = f"Expense {expense.id}"
        total = _units(expense.amount, currency, context)
        if total <= 0:
            raise DataIntegrityError(f"{context} has non-positive amount {expense.amount}")

        _require_member(expense.paid_by, members, context)
        shares = _share_units(expense, total, currency, context)
        for member, _ in shares:
            _require_member(member, members, context)

        units[expense.paid_by] += total
        for member, share in shares:
            units[member] -= share

    for payment in payments:
        context = f"Payment {payment.from_member} -> {payment.to_member}"
        amount = _units(payment.amount, currency, context)
        if amount <= 0:
            raise DataIntegrityError(f"{context} has non-positive amount {payment.amount}")
        if payment.from_member == payment.to_member:
            raise DataIntegrityError(f"{context} pays themselves")
        _require_member(payment.from_member, members, context)
        _require_member(payment.to_member, members, context)

        # Paying off a debt raises the payer's balance and lowers the receiver's
        units[payment.from_member] += amount
        units[payment.to_member] -= amount

    # Verification (safety check)
    residue = sum(units.values())
    if residue != 0:
        raise ValueError(f"Balance calculation error: residue of {residue} minor units")

    return currency, units


def compute_balances(expenses, members, payments=()) -> Dict[MemberId, Decimal]:
    """
    Compute each member's net balance for expenses in one currency.

    The payer is credited with the full amount, every participant is
    debited their share (see ``split_amount``) or their explicit amount
    for a custom split. Recorded settle-up payments credit the payer and
    debit the receiver.

    Args:
        expenses: Iterable of ExpenseEntry, all in the same currency.
        members: Collection of valid member ids (the trip roster).
        payments: Optional iterable of PaymentEntry in the same currency.

    Returns:
        Dict of member id -> signed Decimal balance, ordered by member id.
        Positive means the member is owed money. Only members that appear
        in an expense or payment are listed. Values sum to exactly zero.

    Raises:
        DataIntegrityError: If an entry references a non-member, has an
            empty split, has an invalid amount, or has custom shares that
            don't add up to its amount.
        MixedCurrencyError: If entries use more than one currency.
    """
    currency, units = _balance_units(expenses, members, payments)
    return {
        member: from_minor_units(units[member], currency)
        for member in sorted(units, key=_member_key)
    }


def compute_settlement(balances: Dict[MemberId, Decimal], currency: str) -> List[Debt]:
    """
    Compute a minimal list of transfers that zeroes every balance.

    Greedy algorithm: repeatedly match the largest debtor with the largest
    creditor, transfer the smaller of the two amounts and drop whoever
    reaches zero. Ties are broken by member id, so identical input always
    produces identical output.

    Args:
        balances: Member id -> signed balance in ``currency``; must sum to zero.
        currency: Currency code of the balances.

    Returns:
        List of Debt, at most ``len(balances) - 1`` entries, each with a
        strictly positive amount.

    Raises:
        DataIntegrityError: If the balances don't sum to zero or aren't
            representable in the currency's minor unit.
    """
    currency = normalize_currency(currency)
    units = {
        member: _units(amount, currency, f"Balance of {member}")
        for member, amount in balances.items()
    }
    if sum(units.values()) != 0:
        raise DataIntegrityError("Balances must sum to zero before settling")

    creditors = [[amount, member] for member, amount in units.items() if amount > 0]
    debtors = [[-amount, member] for member, amount in units.items() if amount < 0]

    def by_size(entry):
        return (-entry[0], _member_key(entry[1]))

    debts = []
    while creditors and debtors:
        creditors.sort(key=by_size)
        debtors.sort(key=by_size)
        creditor, debtor = creditors[0], debtors[0]

        transfer = min(creditor[0], debtor[0])
        debts.append(Debt(
            from_member=debtor[1],
            to_member=creditor[1],
            amount=from_minor_units(transfer, currency),
            currency=currency,
        ))
        creditor[0] -= transfer
        debtor[0] -= transfer

        creditors = [c for c in creditors if c[0] > 0]
        debtors = [d for d in debtors if d[0] > 0]

    return debts


def compute_trip_ledger(expenses, members, payments=()) -> List[CurrencyLedger]:
    """
    Compute balances and settlement separately for each currency in a trip.

    Currencies are never converted; a trip that mixes USD and EUR gets two
    independent ledgers.

    Returns:
        List of CurrencyLedger sorted by currency code.
    """
    expenses_by_currency = defaultdict(list)
    payments_by_currency = defaultdict(list)
    for expense in expenses:
        expenses_by_currency[normalize_currency(expense.currency)].append(expense)
    for payment in payments:
        payments_by_currency[normalize_currency(payment.currency)].append(payment)

    ledgers = []
    for currency in sorted(set(expenses_by_currency) | set(payments_by_currency)):
        currency_expenses = expenses_by_currency[currency]
        balances = compute_balances(currency_expenses, members, payments_by_currency[currency])
        total_units = sum(to_minor_units(e.amount, currency) for e in currency_expenses)
        ledgers.append(CurrencyLedger(
            currency=currency,
            total_spent=from_minor_units(total_units, currency),
            balances=balances,
            settlement=compute_settlement(balances, currency),
        ))
    return ledgers
