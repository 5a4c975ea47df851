"""
Apple Push Notification service client.

Everything needed to talk to the APNs HTTP/2 gateway:

    * ``ApnsConfig`` - immutable gateway settings read from ``settings.APNS``
    * ``create_provider_token`` - ES256 provider JWT, one per dispatch batch
    * ``build_payload`` - alert payload with custom data merged at top level
    * ``ApnsClient`` - sends one push per device token

Example::

    config = ApnsConfig.from_settings()
    token = create_provider_token(config)
    async with httpx.AsyncClient(http2=True) as http_client:
        client = ApnsClient(config, token, http_client)
        result = await client.send(device_token, build_payload('Hi', 'There'))
"""

import base64
import binascii
import logging
import time
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import httpx
import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import (
    load_der_private_key,
    load_pem_private_key,
)
from django.conf import settings

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


PRODUCTION_HOST = 'api.push.apple.com'
SANDBOX_HOST = 'api.sandbox.push.apple.com'

# Gateway status meaning the device token is no longer valid for the topic
TOKEN_INVALIDATED_STATUS = 410


@dataclass(frozen=True)
class ApnsConfig:
    """APNs credentials and endpoint selection."""

    key_id: str = ''
    team_id: str = ''
    private_key: str = ''
    bundle_id: str = 'com.ouest.app'
    environment: str = 'development'
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, apns: Optional[Mapping] = None) -> 'ApnsConfig':
        apns = settings.APNS if apns is None else apns
        return cls(
            key_id=apns.get('KEY_ID', ''),
            team_id=apns.get('TEAM_ID', ''),
            private_key=apns.get('PRIVATE_KEY', ''),
            bundle_id=apns.get('BUNDLE_ID') or 'com.ouest.app',
            environment=apns.get('ENVIRONMENT') or 'development',
            timeout_seconds=float(apns.get('TIMEOUT_SECONDS', 10.0)),
        )

    @property
    def host(self) -> str:
        return PRODUCTION_HOST if self.environment == 'production' else SANDBOX_HOST

    @property
    def is_configured(self) -> bool:
        """The gateway is considered configured once a signing key id is set."""
        return bool(self.key_id)

    def load_signing_key(self) -> ec.EllipticCurvePrivateKey:
        """
        Decode the P-256 private key from ``private_key``.

        Accepts the base64 of a ``.p8`` file (PEM) or of its DER body, as
        well as the PEM text itself.

        Raises:
            ConfigurationError: If the key is missing, undecodable or not
                a P-256 EC key.
        """
        raw = (self.private_key or '').strip()
        if not raw:
            raise ConfigurationError("APNS_PRIVATE_KEY is not set")

        try:
            if raw.startswith('-----BEGIN'):
                key = load_pem_private_key(raw.encode(), password=None)
            else:
                material = base64.b64decode(raw, validate=False)
                if material.lstrip().startswith(b'-----BEGIN'):
                    key = load_pem_private_key(material, password=None)
                else:
                    key = load_der_private_key(material, password=None)
        except (ValueError, TypeError, binascii.Error, UnsupportedAlgorithm) as exc:
            raise ConfigurationError(f"APNS_PRIVATE_KEY could not be loaded: {exc}") from exc

        if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(key.curve, ec.SECP256R1):
            raise ConfigurationError("APNS_PRIVATE_KEY must be a P-256 EC private key")
        return key


def create_provider_token(config: ApnsConfig, issued_at: Optional[float] = None) -> str:
    """
    Sign an APNs provider token.

    Header is exactly ``{"alg": "ES256", "kid": <key id>}``; claims are
    ``iss`` (team id) and ``iat`` (issue time, whole seconds).

    Args:
        config: Gateway settings with signing credentials.
        issued_at: Unix timestamp to use for ``iat``; defaults to now.

    Returns:
        Compact JWS string (``header.payload.signature``).

    Raises:
        ConfigurationError: If the signing key can't be loaded.
    """
    key = config.load_signing_key()
    iat = int(time.time() if issued_at is None else issued_at)
    return jwt.encode(
        {'iss': config.team_id, 'iat': iat},
        key,
        algorithm='ES256',
        headers={'kid': config.key_id, 'typ': None},
    )


def build_payload(title: str, body: str, data: Optional[Mapping[str, str]] = None) -> Dict:
    """Alert payload; custom ``data`` keys sit next to ``aps`` and can't replace it."""
    payload = {
        'aps': {
            'alert': {'title': title, 'body': body},
            'badge': 1,
            'sound': 'default',
            'mutable-content': 1,
        },
    }
    for key, value in (data or {}).items():
        if key != 'aps':
            payload[key] = value
    return payload


@dataclass(frozen=True)
class PushResult:
    """Outcome of one push. ``status`` is 0 when no HTTP response was received."""

    token: str
    success: bool
    status: int

    @property
    def token_invalidated(self) -> bool:
        return self.status == TOKEN_INVALIDATED_STATUS


def _preview(token: str) -> str:
    return f"{token[:8]}…"


class ApnsClient:
    """Sends pushes for one batch, reusing a single provider token."""

    def __init__(self, config: ApnsConfig, provider_token: str, http_client: httpx.AsyncClient):
        self.config = config
        self.provider_token = provider_token
        self.http_client = http_client

    def headers(self) -> Dict[str, str]:
        return {
            'authorization': f'bearer {self.provider_token}',
            'apns-topic': self.config.bundle_id,
            'apns-push-type': 'alert',
            'apns-priority': '10',
            'content-type': 'application/json',
        }

    async def send(self, device_token: str, payload: Dict) -> PushResult:
        """
        Push ``payload`` to one device.

        Network failures (connect errors, timeouts, protocol errors) and
        tokens that can't form a valid URL are returned as
        ``PushResult(success=False, status=0)`` instead of raised.
        """
        url = f'https://{self.config.host}/3/device/{device_token}'
        try:
            response = await self.http_client.post(
                url,
                json=payload,
                headers=self.headers(),
                timeout=self.config.timeout_seconds,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("APNs request for %s failed: %s", _preview(device_token), exc)
            return PushResult(token=device_token, success=False, status=0)

        if not response.is_success:
            logger.info(
                "APNs rejected %s with %s: %s",
                _preview(device_token), response.status_code, response.text,
            )
        return PushResult(
            token=device_token,
            success=response.is_success,
            status=response.status_code,
        )
