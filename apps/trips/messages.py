"""
Typed chat message metadata.

Chat rows carry a free-form JSON ``metadata`` column. Only two shapes are
ever written, so they are modelled as explicit variants and validated at
the boundary instead of being passed around as loose dictionaries:

    * ``expense`` messages reference an expense (``ExpenseReference``)
    * ``summary`` messages describe a settlement run (``SettlementSummary``)
    * ``text`` messages carry no metadata

Example::

    ref = parse_message_metadata('expense', {
        'expenseId': '0b6f...', 'title': 'Dinner', 'amount': '42.00',
    })
    ref.amount  # Decimal('42.00')
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple, Union
from uuid import UUID

from rest_framework import serializers

from .models import ChatMessageType


@dataclass(frozen=True)
class ExpenseReference:
    """Metadata of an ``expense`` chat message."""

    expense_id: UUID
    title: str
    amount: Decimal

    def to_metadata(self) -> dict:
        return {
            'expenseId': str(self.expense_id),
            'title': self.title,
            'amount': str(self.amount),
        }


@dataclass(frozen=True)
class SummaryTransfer:
    from_member: UUID
    to_member: UUID
    amount: Decimal


@dataclass(frozen=True)
class SettlementSummary:
    """Metadata of a ``summary`` chat message: the suggested transfers in one currency."""

    currency: str
    transfers: Tuple[SummaryTransfer, ...]

    @property
    def total(self) -> Decimal:
        return sum((t.amount for t in self.transfers), Decimal('0'))

    def to_metadata(self) -> dict:
        return {
            'currency': self.currency,
            'debts': [
                {'from': str(t.from_member), 'to': str(t.to_member), 'amount': str(t.amount)}
                for t in self.transfers
            ],
        }


MessageMetadata = Union[ExpenseReference, SettlementSummary]


class ExpenseReferenceSerializer(serializers.Serializer):
    expenseId = serializers.UUIDField()
    title = serializers.CharField(max_length=200)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))


class SummaryTransferSerializer(serializers.Serializer):
    from_ = serializers.UUIDField()
    to = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))

    def get_fields(self):
        fields = super().get_fields()
        fields['from'] = fields.pop('from_')
        return fields


class SettlementSummarySerializer(serializers.Serializer):
    currency = serializers.RegexField(r'^[A-Za-z]{3,4}$')
    debts = SummaryTransferSerializer(many=True)


def parse_message_metadata(message_type: str, raw) -> Optional[MessageMetadata]:
    """
    Validate raw metadata against the shape its message type requires.

    Args:
        message_type: One of ChatMessageType values.
        raw: Decoded JSON metadata (dict or None).

    Returns:
        ExpenseReference, SettlementSummary, or None for text messages.

    Raises:
        serializers.ValidationError: If the metadata doesn't match the type.
    """
    if message_type == ChatMessageType.TEXT:
        if raw:
            raise serializers.ValidationError({'metadata': 'Text messages carry no metadata.'})
        return None

    if message_type == ChatMessageType.EXPENSE:
        serializer = ExpenseReferenceSerializer(data=raw or {})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return ExpenseReference(
            expense_id=data['expenseId'],
            title=data['title'],
            amount=data['amount'],
        )

    if message_type == ChatMessageType.SUMMARY:
        serializer = SettlementSummarySerializer(data=raw or {})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return SettlementSummary(
            currency=data['currency'].upper(),
            transfers=tuple(
                SummaryTransfer(from_member=t['from'], to_member=t['to'], amount=t['amount'])
                for t in data['debts']
            ),
        )

    raise serializers.ValidationError({'message_type': f'Unknown message type: {message_type}'})


def post_expense_message(expense, author):
    """Post an ``expense`` chat message referencing the given expense."""
    from .models import ChatMessage

    reference = ExpenseReference(
        expense_id=expense.id,
        title=expense.title,
        amount=expense.amount,
    )
    return ChatMessage.objects.create(
        trip_id=expense.trip_id,
        user=author,
        content=None,
        message_type=ChatMessageType.EXPENSE,
        metadata=reference.to_metadata(),
    )


def post_settlement_summary(trip, author, currency, debts):
    """
    Post a ``summary`` chat message listing suggested transfers.

    ``debts`` is any iterable of objects with ``from_member``, ``to_member``
    and ``amount`` attributes (the ledger's Debt works as-is).
    """
    from .models import ChatMessage

    summary = SettlementSummary(
        currency=currency,
        transfers=tuple(
            SummaryTransfer(from_member=d.from_member, to_member=d.to_member, amount=d.amount)
            for d in debts
        ),
    )
    return ChatMessage.objects.create(
        trip=trip,
        user=author,
        content=None,
        message_type=ChatMessageType.SUMMARY,
        metadata=summary.to_metadata(),
    )
