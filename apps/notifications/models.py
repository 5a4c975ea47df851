from django.db import models
import uuid


class DevicePlatform(models.TextChoices):
    IOS = 'ios', 'iOS'


class DeviceToken(models.Model):
    """APNs device token registered by a user's app install."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='device_tokens'
    )
    token = models.CharField(max_length=200, unique=True)
    platform = models.CharField(
        max_length=10,
        choices=DevicePlatform.choices,
        default=DevicePlatform.IOS
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'device_tokens'
        indexes = [
            models.Index(fields=['user'], name='device_tokens_user_idx'),
        ]
        ordering = ['-updated_at']

    def __str__(self):
        return f"{self.platform} token of {self.user_id}"
