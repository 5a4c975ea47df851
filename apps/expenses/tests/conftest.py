import pytest
from decimal import Decimal
from datetime import date
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.trips.models import Trip, TripMember, MemberRole
from apps.expenses.models import Expense, ExpenseCategory


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


def _make_user(email, display_name):
    return User.objects.create_user(
        email=email,
        password='TestPass123!',
        display_name=display_name,
    )


def _authenticated_client(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def alice(db):
    """Trip owner."""
    return _make_user('alice@example.com', 'Alice')


@pytest.fixture
def bob(db):
    return _make_user('bob@example.com', 'Bob')


@pytest.fixture
def carol(db):
    return _make_user('carol@example.com', 'Carol')


@pytest.fixture
def outsider(db):
    """User who is not on the trip."""
    return _make_user('outsider@example.com', 'Outsider')


@pytest.fixture
def trip(db, alice, bob, carol):
    """Trip with Alice (owner), Bob and Carol."""
    trip = Trip.objects.create(
        name='Lisbon',
        destination='Lisbon, Portugal',
        budget=Decimal('600.00'),
        currency='USD',
        created_by=alice,
    )
    TripMember.objects.create(trip=trip, user=alice, role=MemberRole.OWNER)
    TripMember.objects.create(trip=trip, user=bob)
    TripMember.objects.create(trip=trip, user=carol)
    return trip


@pytest.fixture
def dinner(trip, alice, bob, carol):
    """30.00 USD dinner paid by Alice, split three ways."""
    return Expense.objects.create(
        trip=trip,
        title='Dinner',
        amount=Decimal('30.00'),
        currency='USD',
        category=ExpenseCategory.FOOD,
        paid_by=alice,
        split_among=[str(alice.id), str(bob.id), str(carol.id)],
        date=date(2026, 5, 1),
    )


@pytest.fixture
def alice_client(alice):
    return _authenticated_client(alice)


@pytest.fixture
def bob_client(bob):
    return _authenticated_client(bob)


@pytest.fixture
def outsider_client(outsider):
    return _authenticated_client(outsider)


@pytest.fixture
def carol_client(carol):
    return _authenticated_client(carol)
