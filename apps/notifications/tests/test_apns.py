"""
APNs client tests.

Tests cover:
- Configuration and gateway host selection
- Signing key loading
- Provider token structure and signature
- Payload shape
- Per-device send results, including network failures
"""

import base64
import json

import httpx
import jwt
import pytest
from asgiref.sync import async_to_sync
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat

from apps.notifications.services import (
    ApnsClient,
    ApnsConfig,
    ConfigurationError,
    PushResult,
    build_payload,
    create_provider_token,
)

from .fakes import FakeGateway


def _b64url_decode(segment):
    return base64.urlsafe_b64decode(segment + '=' * (-len(segment) % 4))


# =============================================================================
# ApnsConfig
# =============================================================================

class TestApnsConfig:

    def test_from_settings_reads_apns_dict(self):
        config = ApnsConfig.from_settings({
            'KEY_ID': 'KID',
            'TEAM_ID': 'TEAM',
            'PRIVATE_KEY': 'abc',
            'BUNDLE_ID': '',
            'ENVIRONMENT': 'production',
            'TIMEOUT_SECONDS': '5',
        })

        assert config.key_id == 'KID'
        assert config.bundle_id == 'com.ouest.app'
        assert config.timeout_seconds == 5.0
        assert config.host == 'api.push.apple.com'

    def test_from_django_settings(self, settings):
        settings.APNS = {'KEY_ID': 'FROMSET', 'ENVIRONMENT': 'development'}

        config = ApnsConfig.from_settings()

        assert config.key_id == 'FROMSET'
        assert config.host == 'api.sandbox.push.apple.com'

    @pytest.mark.parametrize('environment', ['development', 'sandbox', '', 'PRODUCTION'])
    def test_anything_but_production_uses_sandbox(self, environment):
        assert ApnsConfig(environment=environment).host == 'api.sandbox.push.apple.com'

    def test_configured_only_with_key_id(self):
        assert ApnsConfig().is_configured is False
        assert ApnsConfig(key_id='KID').is_configured is True


class TestLoadSigningKey:

    def test_base64_pem(self, apns_config, signing_key):
        key = apns_config.load_signing_key()

        assert key.private_numbers() == signing_key.private_numbers()

    def test_base64_der(self, signing_key):
        der = signing_key.private_bytes(Encoding.DER, PrivateFormat.PKCS8, NoEncryption())
        config = ApnsConfig(key_id='KID', private_key=base64.b64encode(der).decode())

        assert config.load_signing_key().private_numbers() == signing_key.private_numbers()

    def test_raw_pem_text(self, signing_key):
        pem = signing_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()).decode()
        config = ApnsConfig(key_id='KID', private_key=pem)

        assert config.load_signing_key().private_numbers() == signing_key.private_numbers()

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match='not set'):
            ApnsConfig(key_id='KID').load_signing_key()

    def test_garbage_key(self):
        with pytest.raises(ConfigurationError):
            ApnsConfig(key_id='KID', private_key='bm90IGEga2V5').load_signing_key()

    def test_wrong_curve(self):
        other = ec.generate_private_key(ec.SECP384R1())
        pem = other.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())
        config = ApnsConfig(key_id='KID', private_key=base64.b64encode(pem).decode())

        with pytest.raises(ConfigurationError, match='P-256'):
            config.load_signing_key()


# =============================================================================
# Provider token
# =============================================================================

class TestProviderToken:

    def test_header_is_alg_and_kid_only(self, apns_config):
        token = create_provider_token(apns_config, issued_at=1700000000)

        header = json.loads(_b64url_decode(token.split('.')[0]))
        assert header == {'alg': 'ES256', 'kid': 'ABC123DEFG'}

    def test_claims_and_signature(self, apns_config, signing_key):
        token = create_provider_token(apns_config, issued_at=1700000000.9)

        claims = jwt.decode(token, signing_key.public_key(), algorithms=['ES256'])
        assert claims == {'iss': 'TEAM123456', 'iat': 1700000000}

    def test_compact_serialization_without_padding(self, apns_config):
        token = create_provider_token(apns_config)

        segments = token.split('.')
        assert len(segments) == 3
        assert all(segments) and '=' not in token

    def test_unreadable_key_raises(self):
        config = ApnsConfig(key_id='KID', team_id='TEAM', private_key='%%%')

        with pytest.raises(ConfigurationError):
            create_provider_token(config)


# =============================================================================
# Payload
# =============================================================================

class TestBuildPayload:

    def test_alert_payload(self):
        assert build_payload('Trip update', 'Dinner was added') == {
            'aps': {
                'alert': {'title': 'Trip update', 'body': 'Dinner was added'},
                'badge': 1,
                'sound': 'default',
                'mutable-content': 1,
            },
        }

    def test_data_merged_at_top_level(self):
        payload = build_payload('t', 'b', {'tripId': '42', 'type': 'expense'})

        assert payload['tripId'] == '42'
        assert payload['type'] == 'expense'
        assert payload['aps']['alert'] == {'title': 't', 'body': 'b'}

    def test_data_cannot_replace_aps(self):
        payload = build_payload('t', 'b', {'aps': 'nope'})

        assert payload['aps']['badge'] == 1


# =============================================================================
# ApnsClient.send
# =============================================================================

class TestApnsClientSend:

    def _send(self, config, gateway, device_token, payload=None):
        async def run():
            async with httpx.AsyncClient(transport=gateway.transport) as http_client:
                client = ApnsClient(config, 'provider.jwt.token', http_client)
                return await client.send(device_token, payload or build_payload('t', 'b'))
        return async_to_sync(run)()

    def test_request_shape(self, apns_config):
        gateway = FakeGateway()

        result = self._send(apns_config, gateway, 'abcd1234', build_payload('t', 'b', {'k': 'v'}))

        assert result == PushResult(token='abcd1234', success=True, status=200)
        (request,) = gateway.requests
        assert request.method == 'POST'
        assert str(request.url) == 'https://api.sandbox.push.apple.com/3/device/abcd1234'
        assert request.headers['authorization'] == 'bearer provider.jwt.token'
        assert request.headers['apns-topic'] == 'com.ouest.app'
        assert request.headers['apns-push-type'] == 'alert'
        assert request.headers['apns-priority'] == '10'
        assert request.headers['content-type'] == 'application/json'
        assert json.loads(request.content)['k'] == 'v'

    def test_gone_token(self, apns_config):
        result = self._send(apns_config, FakeGateway({'dead': 410}), 'dead')

        assert result.success is False
        assert result.status == 410
        assert result.token_invalidated is True

    def test_other_rejection_is_not_invalidation(self, apns_config):
        result = self._send(apns_config, FakeGateway({'bad': 400}), 'bad')

        assert result.success is False
        assert result.token_invalidated is False

    @pytest.mark.parametrize('error', [httpx.ConnectError, httpx.ReadTimeout, httpx.RemoteProtocolError])
    def test_network_failure_reports_status_zero(self, apns_config, error):
        result = self._send(apns_config, FakeGateway({'tok': error}), 'tok')

        assert result == PushResult(token='tok', success=False, status=0)

    def test_token_that_breaks_the_url_reports_status_zero(self, apns_config):
        gateway = FakeGateway()

        result = self._send(apns_config, gateway, 'bad\x00token')

        assert result == PushResult(token='bad\x00token', success=False, status=0)
        assert gateway.requests == []
