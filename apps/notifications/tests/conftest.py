import base64

import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User
from apps.notifications.models import DeviceToken
from apps.notifications.services import ApnsConfig


@pytest.fixture
def signing_key():
    """Fresh P-256 key, like the .p8 key issued by Apple."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def p8_base64(signing_key):
    """Base64 of the PEM (.p8) encoding of the signing key."""
    pem = signing_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())
    return base64.b64encode(pem).decode()


@pytest.fixture
def apns_config(p8_base64):
    return ApnsConfig(
        key_id='ABC123DEFG',
        team_id='TEAM123456',
        private_key=p8_base64,
        bundle_id='com.ouest.app',
        environment='development',
    )


@pytest.fixture
def apns_settings(settings, p8_base64):
    """Configure settings.APNS with a usable signing key."""
    settings.APNS = {
        'KEY_ID': 'ABC123DEFG',
        'TEAM_ID': 'TEAM123456',
        'PRIVATE_KEY': p8_base64,
        'BUNDLE_ID': 'com.ouest.app',
        'ENVIRONMENT': 'development',
        'TIMEOUT_SECONDS': 10.0,
    }
    return settings.APNS


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def service_client():
    """Client presenting a service credential, as the database trigger does."""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='Bearer service-role-key')
    return client


@pytest.fixture
def traveller(db):
    return User.objects.create_user(
        email='traveller@example.com',
        password='TestPass123!',
        display_name='Traveller',
    )


@pytest.fixture
def companion(db):
    return User.objects.create_user(
        email='companion@example.com',
        password='TestPass123!',
        display_name='Companion',
    )


@pytest.fixture
def traveller_client(traveller):
    client = APIClient()
    refresh = RefreshToken.for_user(traveller)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def registered_devices(traveller, companion):
    """Traveller has two devices, companion has one."""
    return [
        DeviceToken.objects.create(user=traveller, token='a' * 64),
        DeviceToken.objects.create(user=traveller, token='b' * 64),
        DeviceToken.objects.create(user=companion, token='c' * 64),
    ]
