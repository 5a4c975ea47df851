"""
Device token store.

Async facade over the ``DeviceToken`` table used by the dispatcher. Each
dispatch reads once (all tokens of the target users) and writes at most
once (batch delete of tokens the gateway reported as invalid).
"""

import logging
from typing import Iterable, List
from uuid import UUID

from asgiref.sync import sync_to_async
from django.db import DatabaseError, transaction

from apps.accounts.models import User
from apps.notifications.models import DevicePlatform, DeviceToken

from .exceptions import DependencyError

logger = logging.getLogger(__name__)


class DeviceTokenStore:
    """Reads and prunes APNs device tokens."""

    def _fetch_for_users(self, user_ids: List[UUID]) -> List[str]:
        return list(
            DeviceToken.objects.filter(user_id__in=user_ids)
            .order_by('token')
            .values_list('token', flat=True)
        )

    def _delete_tokens(self, tokens: List[str]) -> int:
        deleted, _ = DeviceToken.objects.filter(token__in=tokens).delete()
        return deleted

    async def fetch_for_users(self, user_ids: Iterable[UUID]) -> List[str]:
        """
        Return every registered token of the given users.

        Raises:
            DependencyError: If the database query fails.
        """
        try:
            return await sync_to_async(self._fetch_for_users)(list(user_ids))
        except DatabaseError as exc:
            raise DependencyError("Failed to fetch device tokens") from exc

    async def delete_tokens(self, tokens: Iterable[str]) -> int:
        """
        Delete the given tokens in one statement. Unknown tokens are ignored.

        Raises:
            DependencyError: If the database write fails.
        """
        try:
            return await sync_to_async(self._delete_tokens)(list(tokens))
        except DatabaseError as exc:
            raise DependencyError("Failed to delete device tokens") from exc


@transaction.atomic
def register_device_token(*, user: User, token: str, platform: str = DevicePlatform.IOS) -> DeviceToken:
    """
    Register a device token for a user.

    A token belongs to one install, so registering a token another user
    held moves it to the new user.

    Returns:
        The created or updated DeviceToken.
    """
    device, created = DeviceToken.objects.update_or_create(
        token=token,
        defaults={'user': user, 'platform': platform},
    )
    if created:
        logger.info("Registered %s device token for user %s", platform, user.id)
    return device


def remove_device_token(*, user: User, token: str) -> bool:
    """Remove one of the user's tokens. Returns whether anything was deleted."""
    deleted, _ = DeviceToken.objects.filter(user=user, token=token).delete()
    return deleted > 0


def remove_all_device_tokens(*, user: User) -> int:
    """Remove every token of the user (e.g. on sign-out everywhere)."""
    deleted, _ = DeviceToken.objects.filter(user=user).delete()
    return deleted
