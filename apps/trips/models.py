# ==========================================
# apps/trips/models.py
# ==========================================

from decimal import Decimal
import uuid

from django.core.validators import MinValueValidator
from django.db import models


class TripStatus(models.TextChoices):
    PLANNING = 'planning', 'Planning'
    UPCOMING = 'upcoming', 'Upcoming'
    ACTIVE = 'active', 'Active'
    COMPLETED = 'completed', 'Completed'


class MemberRole(models.TextChoices):
    OWNER = 'owner', 'Owner'
    MEMBER = 'member', 'Member'


class Trip(models.Model):
    """Shared travel plan with members, dates, budget and expenses."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    destination = models.CharField(max_length=200, blank=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    # Budget is a label-currency figure; nothing is converted
    budget = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    currency = models.CharField(max_length=4, default='USD')

    status = models.CharField(max_length=20, choices=TripStatus.choices, default=TripStatus.PLANNING)
    created_by = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='created_trips')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'trips'
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def has_member(self, user):
        return self.memberships.filter(user=user).exists()

    def member_ids(self):
        """Return the set of member user ids (the trip roster)."""
        return set(self.memberships.values_list('user_id', flat=True))


class TripMember(models.Model):
    """User membership in a trip."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='trip_memberships')
    role = models.CharField(max_length=20, choices=MemberRole.choices, default=MemberRole.MEMBER)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'trip_members'
        unique_together = [['trip', 'user']]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.user.get_display_name()} in {self.trip.name} ({self.role})"


class ChatMessageType(models.TextChoices):
    TEXT = 'text', 'Text'
    EXPENSE = 'expense', 'Expense'
    SUMMARY = 'summary', 'Summary'


class ChatMessage(models.Model):
    """Trip chat message. Structured metadata is validated in apps.trips.messages."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name='chat_messages')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='chat_messages')
    content = models.TextField(null=True, blank=True)
    message_type = models.CharField(max_length=20, choices=ChatMessageType.choices, default=ChatMessageType.TEXT)
    metadata = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'chat_messages'
        indexes = [
            models.Index(fields=['trip', 'created_at'], name='chat_trip_created_idx'),
        ]
        ordering = ['created_at']

    def __str__(self):
        return f"{self.message_type} message in {self.trip_id}"

    @property
    def typed_metadata(self):
        """Metadata parsed into its variant (ExpenseReference, SettlementSummary or None)."""
        from .messages import parse_message_metadata
        return parse_message_metadata(self.message_type, self.metadata)
