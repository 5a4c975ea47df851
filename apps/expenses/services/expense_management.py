"""
Expense management service.

Database-facing side of the ledger: loads a trip's rows, projects them onto
the pure ledger types and persists expenses and settle-up payments.
"""

import logging
from datetime import date as date_type
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import UUID

from django.db import transaction

from apps.accounts.models import User
from apps.expenses.currency import (
    AmountPrecisionError,
    from_minor_units,
    normalize_currency,
    quantize_amount,
    to_minor_units,
)
from apps.expenses.models import Expense, ExpenseCategory, SettlementPayment, SplitType
from apps.trips.messages import post_expense_message, post_settlement_summary
from apps.trips.models import MemberRole, Trip

from .exceptions import (
    DataIntegrityError,
    NotTripMemberError,
    TripNotFoundError,
)
from .ledger import CurrencyLedger, ExpenseEntry, PaymentEntry, compute_trip_ledger

logger = logging.getLogger(__name__)


def get_trip_for_member(*, trip_id: UUID, user: User) -> Trip:
    """
    Fetch a trip the user belongs to.

    Raises:
        TripNotFoundError: If the trip doesn't exist.
        NotTripMemberError: If the user isn't on the trip roster.
    """
    try:
        trip = Trip.objects.get(id=trip_id)
    except Trip.DoesNotExist:
        raise TripNotFoundError(f"Trip with ID {trip_id} not found")

    if not trip.has_member(user):
        raise NotTripMemberError("You must be a member of this trip")

    return trip


def expense_to_entry(expense: Expense) -> ExpenseEntry:
    """Project an expense row onto the ledger's input type."""
    try:
        split_among = tuple(UUID(str(member_id)) for member_id in expense.split_among)
        shares = ()
        if expense.split_type == SplitType.CUSTOM:
            shares = tuple(
                (UUID(str(member_id)), Decimal(str(amount)))
                for member_id, amount in expense.custom_shares.items()
            )
    except (ValueError, ArithmeticError) as exc:
        raise DataIntegrityError(f"Expense {expense.id} has a malformed split") from exc

    return ExpenseEntry(
        id=expense.id,
        amount=expense.amount,
        currency=expense.currency,
        paid_by=expense.paid_by_id,
        split_among=split_among,
        shares=shares,
    )


def payment_to_entry(payment: SettlementPayment) -> PaymentEntry:
    return PaymentEntry(
        from_member=payment.from_user_id,
        to_member=payment.to_user_id,
        amount=payment.amount,
        currency=payment.currency,
    )


def _validate_amount(amount: Decimal, currency: str) -> None:
    try:
        units = to_minor_units(amount, currency)
    except AmountPrecisionError as exc:
        raise DataIntegrityError(str(exc)) from exc
    if units <= 0:
        raise DataIntegrityError("Amount must be positive")


def _as_uuid(value) -> UUID:
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise DataIntegrityError(f"Invalid member id: {value}") from exc


def _resolve_split(
    *,
    trip: Trip,
    amount: Decimal,
    currency: str,
    paid_by_id: UUID,
    split_type: str,
    split_among: Iterable[UUID],
    custom_shares: Optional[Mapping[UUID, Decimal]],
) -> Tuple[List[UUID], Dict[str, str]]:
    """
    Check a split against the roster and the amount.

    Returns:
        ``(participants, custom_shares)`` ready to store: participants
        sorted by id, custom shares as ``{member id: decimal string}``.
    """
    custom_shares = custom_shares or {}
    if split_type != SplitType.CUSTOM and custom_shares:
        raise DataIntegrityError("Custom shares are only allowed with a custom split")

    stored_shares: Dict[str, str] = {}
    if split_type == SplitType.FULL:
        participants = [paid_by_id]
    elif split_type == SplitType.CUSTOM:
        if not custom_shares:
            raise DataIntegrityError("A custom split needs at least one share")
        shares = {_as_uuid(member_id): share for member_id, share in custom_shares.items()}
        participants = sorted(shares, key=str)
        for member_id in participants:
            _validate_amount(shares[member_id], currency)
        allocated = sum(to_minor_units(share, currency) for share in shares.values())
        if allocated != to_minor_units(amount, currency):
            raise DataIntegrityError(
                f"Custom shares add up to {from_minor_units(allocated, currency)}, "
                f"expected {quantize_amount(amount, currency)}"
            )
        stored_shares = {
            str(member_id): str(quantize_amount(shares[member_id], currency))
            for member_id in participants
        }
    else:
        participants = sorted({_as_uuid(member_id) for member_id in split_among}, key=str)
        if not participants:
            raise DataIntegrityError("Expense must be split among at least one member")

    roster = trip.member_ids()
    outsiders = [m for m in [paid_by_id, *participants] if m not in roster]
    if outsiders:
        raise DataIntegrityError(
            f"Not trip members: {', '.join(sorted({str(m) for m in outsiders}))}"
        )

    return participants, stored_shares


def _require_payer_or_owner(expense: Expense, trip: Trip, user: User, action: str) -> None:
    is_owner = trip.created_by_id == user.id or trip.memberships.filter(
        user=user, role=MemberRole.OWNER
    ).exists()
    if expense.paid_by_id != user.id and not is_owner:
        raise NotTripMemberError(f"Only the payer or the trip owner can {action} this expense")


@transaction.atomic
def create_expense(
    *,
    trip: Trip,
    created_by: User,
    title: str,
    amount: Decimal,
    currency: str,
    paid_by_id: UUID,
    date: date_type,
    split_among: Iterable[UUID] = (),
    split_type: str = SplitType.EQUAL,
    custom_shares: Optional[Mapping[UUID, Decimal]] = None,
    category: str = ExpenseCategory.OTHER,
    has_chat: bool = False,
) -> Expense:
    """
    Record an expense after checking it against the trip roster.

    When ``has_chat`` is set, an expense message referencing the new row is
    posted to the trip chat in the same transaction.

    Args:
        trip: Trip the expense belongs to.
        created_by: User recording the expense (author of the chat message).
        title: Short description.
        amount: Positive amount in ``currency``.
        currency: Currency code label; stored uppercased, never converted.
        paid_by_id: Member who fronted the money.
        date: Day the money was spent.
        split_among: Members sharing the cost equally; duplicates are collapsed.
        split_type: ``equal`` (default), ``custom`` or ``full`` (payer bears it all).
        custom_shares: Member id -> share for a custom split; must sum to ``amount``.
        category: One of ExpenseCategory values.
        has_chat: Whether to post the expense to the trip chat.

    Returns:
        Created Expense instance

    Raises:
        DataIntegrityError: If the amount is invalid for the currency, the
            split is empty or doesn't add up, or any referenced user isn't
            a trip member.
    """
    paid_by_id = _as_uuid(paid_by_id)
    currency = normalize_currency(currency)
    _validate_amount(amount, currency)

    participants, stored_shares = _resolve_split(
        trip=trip,
        amount=amount,
        currency=currency,
        paid_by_id=paid_by_id,
        split_type=split_type,
        split_among=split_among,
        custom_shares=custom_shares,
    )

    expense = Expense.objects.create(
        trip=trip,
        title=title,
        amount=amount,
        currency=currency,
        category=category,
        paid_by_id=paid_by_id,
        split_among=[str(m) for m in participants],
        split_type=split_type,
        custom_shares=stored_shares,
        date=date,
        has_chat=has_chat,
    )

    if has_chat:
        post_expense_message(expense, created_by)

    return expense


@transaction.atomic
def update_expense(
    *,
    expense_id: UUID,
    trip: Trip,
    user: User,
    title: Optional[str] = None,
    amount: Optional[Decimal] = None,
    currency: Optional[str] = None,
    paid_by_id: Optional[UUID] = None,
    date: Optional[date_type] = None,
    split_among: Optional[Iterable[UUID]] = None,
    split_type: Optional[str] = None,
    custom_shares: Optional[Mapping[UUID, Decimal]] = None,
    category: Optional[str] = None,
) -> Expense:
    """
    Edit an expense. Only the payer or the trip owner may do so.

    Fields left as None keep their stored value. The resulting split is
    checked against the roster and the amount exactly like a new expense,
    so an edited amount needs matching custom shares.

    Raises:
        Expense.DoesNotExist: If the expense isn't in this trip.
        NotTripMemberError: If the user may not edit it.
        DataIntegrityError: If the edited expense is invalid.
    """
    expense = Expense.objects.select_for_update().get(id=expense_id, trip=trip)
    _require_payer_or_owner(expense, trip, user, 'edit')

    amount = expense.amount if amount is None else amount
    currency = normalize_currency(expense.currency if currency is None else currency)
    paid_by_id = expense.paid_by_id if paid_by_id is None else _as_uuid(paid_by_id)
    split_type = expense.split_type if split_type is None else split_type
    split_among = expense.split_among if split_among is None else split_among
    if custom_shares is None and split_type == SplitType.CUSTOM:
        custom_shares = {
            member_id: Decimal(share) for member_id, share in expense.custom_shares.items()
        }

    _validate_amount(amount, currency)
    participants, stored_shares = _resolve_split(
        trip=trip,
        amount=amount,
        currency=currency,
        paid_by_id=paid_by_id,
        split_type=split_type,
        split_among=split_among,
        custom_shares=custom_shares,
    )

    expense.amount = amount
    expense.currency = currency
    expense.paid_by_id = paid_by_id
    expense.split_type = split_type
    expense.split_among = [str(m) for m in participants]
    expense.custom_shares = stored_shares
    if title is not None:
        expense.title = title
    if date is not None:
        expense.date = date
    if category is not None:
        expense.category = category
    expense.save()

    logger.info("Expense %s updated by %s", expense.id, user.id)
    return expense


@transaction.atomic
def delete_expense(*, expense_id: UUID, trip: Trip, user: User) -> None:
    """
    Delete an expense. Only the payer or the trip owner may do so.

    Raises:
        Expense.DoesNotExist: If the expense isn't in this trip.
        NotTripMemberError: If the user may not delete it.
    """
    expense = Expense.objects.select_for_update().get(id=expense_id, trip=trip)
    _require_payer_or_owner(expense, trip, user, 'delete')
    expense.delete()


@transaction.atomic
def record_settlement_payment(
    *,
    trip: Trip,
    from_user_id: UUID,
    to_user_id: UUID,
    amount: Decimal,
    currency: str,
    note: str = '',
) -> SettlementPayment:
    """
    Record that one member paid another to settle up.

    Raises:
        DataIntegrityError: If either party isn't a member, they are the
            same person, or the amount is invalid for the currency.
    """
    from_user_id, to_user_id = UUID(str(from_user_id)), UUID(str(to_user_id))
    currency = normalize_currency(currency)
    _validate_amount(amount, currency)

    if from_user_id == to_user_id:
        raise DataIntegrityError("A member cannot settle with themselves")

    roster = trip.member_ids()
    if from_user_id not in roster or to_user_id not in roster:
        raise DataIntegrityError("Both parties must be trip members")

    return SettlementPayment.objects.create(
        trip=trip,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        amount=amount,
        currency=currency,
        note=note,
    )


def get_trip_ledger(*, trip: Trip) -> List[CurrencyLedger]:
    """
    Compute balances and suggested transfers for a trip, one ledger per currency.

    Raises:
        DataIntegrityError: If stored rows violate the ledger invariants
            (e.g. a payer who has since left the trip).
    """
    expenses = [expense_to_entry(e) for e in trip.expenses.all()]
    payments = [payment_to_entry(p) for p in trip.settlement_payments.all()]

    try:
        return compute_trip_ledger(expenses, trip.member_ids(), payments)
    except DataIntegrityError as exc:
        logger.warning("Ledger rejected data for trip %s: %s", trip.id, exc)
        raise


def share_settlement_summary(*, trip: Trip, author: User) -> list:
    """Post one ``summary`` chat message per currency that still has open transfers."""
    messages = []
    for ledger in get_trip_ledger(trip=trip):
        if ledger.settlement:
            messages.append(
                post_settlement_summary(trip, author, ledger.currency, ledger.settlement)
            )
    return messages


def get_budget_summary(*, trip: Trip) -> Dict:
    """
    Summarise spending against the trip budget.

    Only expenses in the trip's own currency count towards the budget;
    other currencies are reported separately since nothing is converted.

    Returns:
        dict: A dictionary containing:
            - currency (str): The trip currency.
            - budget (Decimal | None): Planned budget.
            - total_spent (Decimal): Sum of expenses in the trip currency.
            - remaining (Decimal): Budget minus spent (budget treated as 0 if unset).
            - progress (float): Spent / budget clamped to [0, 1]; 0 without budget.
            - is_over_budget (bool): Whether a budget is set and exceeded.
            - category_totals (list[dict]): ``{category, total, currency}`` sorted by total desc.
            - other_currencies (list[dict]): ``{currency, total_spent}`` for the rest.
    """
    currency = normalize_currency(trip.currency)
    totals_by_currency: Dict[str, Decimal] = {}
    category_totals: Dict[str, Decimal] = {}

    for expense in trip.expenses.all():
        code = normalize_currency(expense.currency)
        totals_by_currency[code] = totals_by_currency.get(code, Decimal('0')) + expense.amount
        if code == currency:
            category_totals[expense.category] = (
                category_totals.get(expense.category, Decimal('0')) + expense.amount
            )

    total_spent = totals_by_currency.get(currency, Decimal('0.00'))
    budget: Optional[Decimal] = trip.budget
    remaining = (budget or Decimal('0')) - total_spent

    progress = 0.0
    if budget and budget > 0:
        progress = min(max(float(total_spent / budget), 0.0), 1.0)

    return {
        'currency': currency,
        'budget': budget,
        'total_spent': total_spent,
        'remaining': remaining,
        'progress': progress,
        'is_over_budget': budget is not None and remaining < 0,
        'category_totals': [
            {'category': category, 'total': total, 'currency': currency}
            for category, total in sorted(category_totals.items(), key=lambda item: (-item[1], item[0]))
        ],
        'other_currencies': [
            {'currency': code, 'total_spent': total}
            for code, total in sorted(totals_by_currency.items())
            if code != currency
        ],
    }
