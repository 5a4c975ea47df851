"""
Push dispatcher.

One ``dispatch`` call takes a notification for a set of users and:

    1. resolves their device tokens (store failure aborts the call)
    2. returns early when there are no tokens or APNs isn't configured
    3. signs one provider token for the whole batch
    4. sends to every device concurrently and waits for all results
    5. deletes tokens the gateway reported as gone (HTTP 410) in one batch

Per-device failures only show up in the ``failed`` count.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from uuid import UUID

import httpx

from .apns import ApnsClient, ApnsConfig, PushResult, build_payload, create_provider_token
from .exceptions import DependencyError, InvalidPushRequestError
from .token_store import DeviceTokenStore

logger = logging.getLogger(__name__)


NO_TOKENS_MESSAGE = 'No device tokens found'
UNCONFIGURED_MESSAGE = 'APNs not configured, notifications stored in DB only'


@dataclass(frozen=True)
class PushRequest:
    user_ids: Tuple[UUID, ...]
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        if not self.user_ids:
            raise InvalidPushRequestError("user_ids must not be empty")
        if not (self.title or '').strip() or not (self.body or '').strip():
            raise InvalidPushRequestError("title and body are required")


@dataclass(frozen=True)
class DeliveryReport:
    """Outcome of a dispatch call. ``total`` is None when nothing was sent."""

    sent: int
    failed: int
    total: Optional[int] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict:
        report = {'sent': self.sent, 'failed': self.failed}
        if self.total is not None:
            report['total'] = self.total
        if self.message is not None:
            report['message'] = self.message
        return report


class PushDispatcher:
    """
    Fans a notification out to all devices of the target users.

    Args:
        store: Token store (``DeviceTokenStore`` or anything with the same
            async ``fetch_for_users``/``delete_tokens`` methods).
        config: APNs settings.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
    """

    def __init__(self, store, config: ApnsConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.store = store
        self.config = config
        self.transport = transport

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            http2=True,
            transport=self.transport,
            timeout=self.config.timeout_seconds,
        )

    async def dispatch(self, request: PushRequest) -> DeliveryReport:
        """
        Deliver one notification.

        Raises:
            InvalidPushRequestError: If there are no recipients, title or body.
            DependencyError: If device tokens can't be fetched.
            ConfigurationError: If the signing key is set but unreadable.
        """
        request.validate()
        tokens = await self.store.fetch_for_users(request.user_ids)
        if not tokens:
            return DeliveryReport(sent=0, failed=0, message=NO_TOKENS_MESSAGE)

        if not self.config.is_configured:
            logger.info(
                "APNs not configured, skipping push to %d device(s): %s",
                len(tokens), request.title,
            )
            return DeliveryReport(sent=0, failed=0, message=UNCONFIGURED_MESSAGE)

        provider_token = create_provider_token(self.config)
        payload = build_payload(request.title, request.body, request.data)

        async with self._http_client() as http_client:
            client = ApnsClient(self.config, provider_token, http_client)
            outcomes = await asyncio.gather(
                *(client.send(token, payload) for token in tokens),
                return_exceptions=True,
            )
        results = [self._as_result(token, outcome) for token, outcome in zip(tokens, outcomes)]

        sent = sum(1 for result in results if result.success)
        invalid = [result.token for result in results if result.token_invalidated]
        if invalid:
            await self._prune(invalid)

        return DeliveryReport(sent=sent, failed=len(results) - sent, total=len(tokens))

    @staticmethod
    def _as_result(token: str, outcome) -> PushResult:
        if isinstance(outcome, PushResult):
            return outcome
        if not isinstance(outcome, Exception):
            raise outcome
        logger.error("Push to %s… raised %r", token[:8], outcome)
        return PushResult(token=token, success=False, status=0)

    async def _prune(self, tokens) -> None:
        try:
            await self.store.delete_tokens(tokens)
        except DependencyError:
            logger.exception("Failed to remove %d invalid device token(s)", len(tokens))
            return
        logger.info("Removed %d invalid device token(s)", len(tokens))


def get_push_dispatcher() -> PushDispatcher:
    """Dispatcher wired to the database token store and ``settings.APNS``."""
    return PushDispatcher(store=DeviceTokenStore(), config=ApnsConfig.from_settings())
