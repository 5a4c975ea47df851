from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class ExpenseCategory(models.TextChoices):
    FOOD = 'food', 'Food'
    TRANSPORT = 'transport', 'Transport'
    STAY = 'stay', 'Stay'
    ACTIVITIES = 'activities', 'Activities'
    OTHER = 'other', 'Other'


class SplitType(models.TextChoices):
    EQUAL = 'equal', 'Split equally'
    CUSTOM = 'custom', 'Custom split'
    FULL = 'full', 'Paid in full'


class Expense(models.Model):
    """Trip expense fronted by one member and shared by several."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    trip = models.ForeignKey(
        'trips.Trip',
        on_delete=models.CASCADE,
        related_name='expenses'
    )
    title = models.CharField(max_length=200)

    # Financial details
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    currency = models.CharField(max_length=4, default='USD')
    category = models.CharField(
        max_length=20,
        choices=ExpenseCategory.choices,
        default=ExpenseCategory.OTHER
    )

    # Who fronted the money and who shares it (profile ids, order irrelevant)
    paid_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='expenses_paid'
    )
    split_among = models.JSONField(default=list)
    split_type = models.CharField(
        max_length=10,
        choices=SplitType.choices,
        default=SplitType.EQUAL
    )
    # Custom splits only: {member id: share as a decimal string}
    custom_shares = models.JSONField(default=dict, blank=True)

    # Day the money was spent, not when the row was written
    date = models.DateField()
    has_chat = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'expenses'
        indexes = [
            models.Index(fields=['trip', 'date'], name='expenses_trip_date_idx'),
            models.Index(fields=['trip', 'currency'], name='expenses_trip_currency_idx'),
        ]
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.title} - {self.amount} {self.currency}"


class SettlementPayment(models.Model):
    """A settle-up payment recorded between two trip members."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    trip = models.ForeignKey(
        'trips.Trip',
        on_delete=models.CASCADE,
        related_name='settlement_payments'
    )
    from_user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='settlements_paid'
    )
    to_user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='settlements_received'
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    currency = models.CharField(max_length=4, default='USD')
    note = models.CharField(max_length=200, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'settlement_payments'
        indexes = [
            models.Index(fields=['trip', 'created_at'], name='settlements_trip_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.from_user_id} paid {self.to_user_id} {self.amount} {self.currency}"
