from decimal import Decimal

from rest_framework import serializers

from apps.accounts.models import User
from .currency import format_amount, quantize_amount
from .models import Expense, ExpenseCategory, SettlementPayment, SplitType


CURRENCY_CODE_REGEX = r'^[A-Za-z]{3,4}$'


class AmountField(serializers.Field):
    """
    Read-only amount rendered as a string with its currency's precision.

    Reads the amount from ``source`` (defaults to the field name) and the
    currency from ``currency_source`` on the same object or dict, so whole
    yen come out as ``"1200"`` and dollars as ``"12.50"``.
    """

    def __init__(self, currency_source='currency', **kwargs):
        self.currency_source = currency_source
        kwargs['read_only'] = True
        super().__init__(**kwargs)

    def get_attribute(self, instance):
        return instance

    def to_representation(self, instance):
        amount = self._lookup(instance, self.source)
        if amount is None:
            return None
        return str(quantize_amount(amount, self._lookup(instance, self.currency_source)))

    @staticmethod
    def _lookup(instance, name):
        if isinstance(instance, dict):
            return instance.get(name)
        return getattr(instance, name)


# =============================================================================
# Input Serializers
# =============================================================================

class ExpenseCreateSerializer(serializers.Serializer):
    """
    Validate input for recording an expense.

    Fields:
        title (str): Short description
        amount (Decimal): Positive amount
        currency (str): Three or four letter code, uppercased
        category (str): Expense category
        paid_by (UUID): Member who paid; defaults to the requester
        split_type (str): equal (default), custom or full
        split_among (list[UUID]): Members sharing the cost; required for equal splits
        custom_shares (dict[UUID, Decimal]): Per-member shares; required for custom splits
        date (date): Day the money was spent
        has_chat (bool): Post the expense to the trip chat
    """

    title = serializers.CharField(max_length=200)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    currency = serializers.RegexField(CURRENCY_CODE_REGEX, required=False)
    category = serializers.ChoiceField(choices=ExpenseCategory.choices, default=ExpenseCategory.OTHER)
    paid_by = serializers.UUIDField(required=False)
    split_type = serializers.ChoiceField(choices=SplitType.choices, default=SplitType.EQUAL)
    split_among = serializers.ListField(child=serializers.UUIDField(), allow_empty=False, required=False)
    custom_shares = serializers.DictField(
        child=serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01')),
        allow_empty=False,
        required=False,
    )
    date = serializers.DateField()
    has_chat = serializers.BooleanField(default=False)

    def validate_currency(self, value):
        return value.upper()

    def validate(self, attrs):
        split_type = attrs.get('split_type')
        if split_type == SplitType.EQUAL and 'split_among' not in attrs:
            raise serializers.ValidationError({'split_among': 'Required for an equal split.'})
        if split_type == SplitType.CUSTOM and 'custom_shares' not in attrs:
            raise serializers.ValidationError({'custom_shares': 'Required for a custom split.'})
        return attrs


class ExpenseUpdateSerializer(ExpenseCreateSerializer):
    """Partial edit of an expense. Every field is optional."""

    title = serializers.CharField(max_length=200, required=False)
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0.01'), required=False
    )
    category = serializers.ChoiceField(choices=ExpenseCategory.choices, required=False)
    split_type = serializers.ChoiceField(choices=SplitType.choices, required=False)
    date = serializers.DateField(required=False)
    has_chat = None

    def validate(self, attrs):
        # Missing split details are taken from the stored expense
        return attrs


class SettlementPaymentCreateSerializer(serializers.Serializer):
    """
    Validate input for recording a settle-up payment.

    Fields:
        from_user (UUID): Member who paid; defaults to the requester
        to_user (UUID): Member who received the money
        amount (Decimal): Positive amount
        currency (str): Currency code; defaults to the trip currency
        note (str): Optional note
    """

    from_user = serializers.UUIDField(required=False)
    to_user = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    currency = serializers.RegexField(CURRENCY_CODE_REGEX, required=False)
    note = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')

    def validate_currency(self, value):
        return value.upper()


# =============================================================================
# Output Serializers
# =============================================================================


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name', 'avatar_url']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class ExpenseSerializer(serializers.ModelSerializer):
    """Serializer for trip expenses."""

    paid_by = UserMinimalSerializer(read_only=True)
    amount = AmountField()
    formatted_amount = serializers.SerializerMethodField()

    class Meta:
        model = Expense
        fields = [
            'id',
            'trip',
            'title',
            'amount',
            'currency',
            'formatted_amount',
            'category',
            'paid_by',
            'split_type',
            'split_among',
            'custom_shares',
            'date',
            'has_chat',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_formatted_amount(self, obj):
        return format_amount(obj.amount, obj.currency)


class SettlementPaymentSerializer(serializers.ModelSerializer):
    """Serializer for recorded settle-up payments."""

    amount = AmountField()

    class Meta:
        model = SettlementPayment
        fields = [
            'id',
            'trip',
            'from_user',
            'to_user',
            'amount',
            'currency',
            'note',
            'created_at',
        ]
        read_only_fields = fields


class DebtSerializer(serializers.Serializer):
    """A suggested transfer. Serialized with ``from``/``to`` keys."""

    amount = AmountField()
    currency = serializers.CharField()
    formatted_amount = serializers.CharField()

    def to_representation(self, instance):
        data = super().to_representation(instance)
        return {
            'from': str(instance.from_member),
            'to': str(instance.to_member),
            **data,
        }


class BalanceSerializer(serializers.Serializer):
    member = serializers.UUIDField()
    balance = AmountField()


class CurrencyLedgerSerializer(serializers.Serializer):
    """Balances and settlement for one currency of a trip."""

    currency = serializers.CharField()
    total_spent = AmountField()
    balances = serializers.SerializerMethodField()
    settlement = DebtSerializer(many=True)

    def get_balances(self, obj):
        rows = [
            {'member': member, 'balance': amount, 'currency': obj.currency}
            for member, amount in obj.balances.items()
        ]
        return BalanceSerializer(rows, many=True).data


class CategoryTotalSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=ExpenseCategory.choices)
    total = AmountField()


class CurrencyTotalSerializer(serializers.Serializer):
    currency = serializers.CharField()
    total_spent = AmountField()


class BudgetSummarySerializer(serializers.Serializer):
    """Budget vs. spending for a trip."""

    currency = serializers.CharField()
    budget = AmountField()
    total_spent = AmountField()
    remaining = AmountField()
    progress = serializers.FloatField()
    is_over_budget = serializers.BooleanField()
    category_totals = CategoryTotalSerializer(many=True)
    other_currencies = CurrencyTotalSerializer(many=True)
