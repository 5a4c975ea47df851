import pytest
from decimal import Decimal
from datetime import date
from uuid import uuid4
from django.urls import reverse
from rest_framework import status
from apps.expenses.models import Expense, SettlementPayment
from apps.trips.models import ChatMessage, ChatMessageType


def expenses_url(trip_id):
    return reverse('expenses:expense-list', kwargs={'trip_id': trip_id})


def expense_url(trip_id, expense_id):
    return reverse('expenses:expense-detail', kwargs={'trip_id': trip_id, 'pk': expense_id})


# =============================================================================
# Expense CRUD Tests
# =============================================================================

@pytest.mark.django_db
class TestExpenseList:
    """Tests for GET /api/trips/{trip_id}/expenses/"""

    def test_member_lists_expenses(self, bob_client, trip, dinner):
        response = bob_client.get(expenses_url(trip.id))

        assert response.status_code == status.HTTP_200_OK
        assert [e['id'] for e in response.data['results']] == [str(dinner.id)]
        assert response.data['results'][0]['formatted_amount'] == '$30.00'

    def test_filter_by_category(self, bob_client, trip, dinner):
        response = bob_client.get(expenses_url(trip.id), {'category': 'transport'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['results'] == []

    def test_outsider_forbidden(self, outsider_client, trip, dinner):
        response = outsider_client.get(expenses_url(trip.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert 'error' in response.data

    def test_unknown_trip_not_found(self, bob_client):
        response = bob_client.get(expenses_url(uuid4()))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_unauthenticated(self, api_client, trip):
        response = api_client.get(expenses_url(trip.id))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestExpenseCreate:
    """Tests for POST /api/trips/{trip_id}/expenses/"""

    def test_create_expense(self, bob_client, trip, alice, bob):
        data = {
            'title': 'Tram tickets',
            'amount': '12.60',
            'currency': 'eur',
            'category': 'transport',
            'split_among': [str(alice.id), str(bob.id)],
            'date': '2026-05-02',
        }
        response = bob_client.post(expenses_url(trip.id), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['currency'] == 'EUR'
        assert response.data['paid_by']['id'] == str(bob.id)
        assert Expense.objects.filter(title='Tram tickets', paid_by=bob).exists()

    def test_currency_defaults_to_trip_currency(self, bob_client, trip, bob):
        data = {
            'title': 'Coffee',
            'amount': '4.00',
            'split_among': [str(bob.id)],
            'date': '2026-05-02',
        }
        response = bob_client.post(expenses_url(trip.id), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['currency'] == 'USD'
        assert response.data['category'] == 'other'

    def test_create_with_chat_posts_message(self, alice_client, trip, alice, bob):
        data = {
            'title': 'Museum',
            'amount': '24.00',
            'split_among': [str(alice.id), str(bob.id)],
            'date': '2026-05-03',
            'has_chat': True,
        }
        response = alice_client.post(expenses_url(trip.id), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        message = ChatMessage.objects.get(trip=trip)
        assert message.message_type == ChatMessageType.EXPENSE
        assert message.metadata == {
            'expenseId': response.data['id'],
            'title': 'Museum',
            'amount': '24.00',
        }

    def test_split_with_outsider_rejected(self, alice_client, trip, alice, outsider):
        data = {
            'title': 'Dinner',
            'amount': '30.00',
            'split_among': [str(alice.id), str(outsider.id)],
            'date': '2026-05-01',
        }
        response = alice_client.post(expenses_url(trip.id), data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data
        assert not Expense.objects.exists()

    @pytest.mark.parametrize('field,value', [
        ('amount', '0'),
        ('amount', '-5.00'),
        ('currency', 'DOLLARS'),
        ('split_among', []),
        ('category', 'souvenirs'),
    ])
    def test_invalid_input_rejected(self, alice_client, trip, alice, field, value):
        data = {
            'title': 'Dinner',
            'amount': '30.00',
            'split_among': [str(alice.id)],
            'date': '2026-05-01',
        }
        data[field] = value
        response = alice_client.post(expenses_url(trip.id), data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert field in response.data

    def test_create_custom_split(self, alice_client, trip, alice, bob, carol):
        data = {
            'title': 'Groceries',
            'amount': '30.00',
            'split_type': 'custom',
            'custom_shares': {str(bob.id): '20.00', str(carol.id): '10.00'},
            'date': '2026-05-02',
        }
        response = alice_client.post(expenses_url(trip.id), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['split_type'] == 'custom'
        assert response.data['custom_shares'] == {str(bob.id): '20.00', str(carol.id): '10.00'}

    def test_custom_shares_not_adding_up_rejected(self, alice_client, trip, bob, carol):
        data = {
            'title': 'Groceries',
            'amount': '30.00',
            'split_type': 'custom',
            'custom_shares': {str(bob.id): '20.00', str(carol.id): '5.00'},
            'date': '2026-05-02',
        }
        response = alice_client.post(expenses_url(trip.id), data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'add up to 25.00' in response.data['error']
        assert not Expense.objects.exists()

    @pytest.mark.parametrize('split_type,missing', [
        ('equal', 'split_among'),
        ('custom', 'custom_shares'),
    ])
    def test_split_details_required(self, alice_client, trip, split_type, missing):
        data = {'title': 'Taxi', 'amount': '9.00', 'split_type': split_type, 'date': '2026-05-02'}
        response = alice_client.post(expenses_url(trip.id), data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert missing in response.data

    def test_full_split_needs_no_participants(self, alice_client, trip, alice):
        data = {'title': 'Souvenir', 'amount': '9.00', 'split_type': 'full', 'date': '2026-05-02'}
        response = alice_client.post(expenses_url(trip.id), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['split_among'] == [str(alice.id)]

    def test_zero_decimal_amount_rendered_without_cents(self, alice_client, trip, alice):
        data = {
            'title': 'Ramen',
            'amount': '1200',
            'currency': 'JPY',
            'split_among': [str(alice.id)],
            'date': '2026-05-02',
        }
        response = alice_client.post(expenses_url(trip.id), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['amount'] == '1200'


@pytest.mark.django_db
class TestExpenseDetail:
    """Tests for GET/DELETE /api/trips/{trip_id}/expenses/{id}/"""

    def test_retrieve(self, carol_client, trip, dinner):
        response = carol_client.get(expense_url(trip.id, dinner.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['title'] == 'Dinner'
        assert len(response.data['split_among']) == 3

    def test_payer_deletes(self, alice_client, trip, dinner):
        response = alice_client.delete(expense_url(trip.id, dinner.id))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Expense.objects.filter(id=dinner.id).exists()

    def test_other_member_cannot_delete(self, bob_client, trip, dinner):
        response = bob_client.delete(expense_url(trip.id, dinner.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert Expense.objects.filter(id=dinner.id).exists()

    def test_delete_unknown_expense(self, alice_client, trip):
        response = alice_client.delete(expense_url(trip.id, uuid4()))

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestExpenseUpdate:
    """Tests for PATCH /api/trips/{trip_id}/expenses/{id}/"""

    def test_edit_split_shows_in_ledger(self, alice_client, trip, dinner, alice, bob, carol):
        response = alice_client.patch(
            expense_url(trip.id, dinner.id),
            {'split_among': [str(alice.id), str(bob.id)]},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['title'] == 'Dinner'
        assert sorted(response.data['split_among']) == sorted([str(alice.id), str(bob.id)])

        ledger = alice_client.get(reverse('expenses:ledger-list', kwargs={'trip_id': trip.id})).data[0]
        assert [(d['from'], d['to'], d['amount']) for d in ledger['settlement']] == [
            (str(bob.id), str(alice.id), '15.00'),
        ]

    def test_edit_title_and_amount(self, alice_client, trip, dinner):
        response = alice_client.patch(
            expense_url(trip.id, dinner.id), {'title': 'Brunch', 'amount': '45.00'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        dinner.refresh_from_db()
        assert dinner.title == 'Brunch'
        assert dinner.amount == Decimal('45.00')

    def test_switch_to_custom_with_wrong_total_rejected(self, alice_client, trip, dinner, bob):
        response = alice_client.patch(
            expense_url(trip.id, dinner.id),
            {'split_type': 'custom', 'custom_shares': {str(bob.id): '10.00'}},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data
        dinner.refresh_from_db()
        assert dinner.split_type == 'equal'

    def test_other_member_cannot_edit(self, bob_client, trip, dinner):
        response = bob_client.patch(expense_url(trip.id, dinner.id), {'title': 'Mine'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        dinner.refresh_from_db()
        assert dinner.title == 'Dinner'

    def test_edit_unknown_expense(self, alice_client, trip):
        response = alice_client.patch(expense_url(trip.id, uuid4()), {'title': 'x'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_full_replace_not_supported(self, alice_client, trip, dinner):
        response = alice_client.put(expense_url(trip.id, dinner.id), {'title': 'x'}, format='json')

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED


# =============================================================================
# Ledger, Budget and Settlement Tests
# =============================================================================

@pytest.mark.django_db
class TestLedger:
    """Tests for GET /api/trips/{trip_id}/ledger/"""

    def test_ledger_for_dinner(self, bob_client, trip, dinner, alice, bob, carol):
        response = bob_client.get(reverse('expenses:ledger-list', kwargs={'trip_id': trip.id}))

        assert response.status_code == status.HTTP_200_OK
        (ledger,) = response.data
        assert ledger['currency'] == 'USD'
        assert Decimal(ledger['total_spent']) == Decimal('30.00')
        balances = {row['member']: Decimal(row['balance']) for row in ledger['balances']}
        assert balances == {
            str(alice.id): Decimal('20.00'),
            str(bob.id): Decimal('-10.00'),
            str(carol.id): Decimal('-10.00'),
        }
        transfers = {(d['from'], d['to'], d['amount']) for d in ledger['settlement']}
        assert transfers == {
            (str(bob.id), str(alice.id), '10.00'),
            (str(carol.id), str(alice.id), '10.00'),
        }

    def test_empty_trip_has_no_ledgers(self, bob_client, trip):
        response = bob_client.get(reverse('expenses:ledger-list', kwargs={'trip_id': trip.id}))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == []

    def test_inconsistent_rows_conflict(self, bob_client, trip, alice):
        Expense.objects.create(
            trip=trip,
            title='Ghost',
            amount=Decimal('10.00'),
            currency='USD',
            paid_by=alice,
            split_among=[str(uuid4())],
            date=date(2026, 5, 1),
        )

        response = bob_client.get(reverse('expenses:ledger-list', kwargs={'trip_id': trip.id}))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert 'error' in response.data

    def test_share_posts_summary(self, alice_client, trip, dinner):
        response = alice_client.post(reverse('expenses:ledger-share', kwargs={'trip_id': trip.id}))

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['posted'] == 1
        message = ChatMessage.objects.get(trip=trip)
        assert message.message_type == ChatMessageType.SUMMARY
        assert message.metadata['currency'] == 'USD'
        assert len(message.metadata['debts']) == 2


@pytest.mark.django_db
class TestBudget:
    """Tests for GET /api/trips/{trip_id}/budget/"""

    def test_budget_summary(self, bob_client, trip, dinner):
        response = bob_client.get(reverse('expenses:budget-list', kwargs={'trip_id': trip.id}))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['currency'] == 'USD'
        assert Decimal(response.data['remaining']) == Decimal('570.00')
        assert response.data['progress'] == pytest.approx(0.05)
        assert response.data['category_totals'][0]['category'] == 'food'


@pytest.mark.django_db
class TestSettlementPayments:
    """Tests for GET/POST /api/trips/{trip_id}/settlements/"""

    def test_record_payment_defaults_to_requester(self, bob_client, trip, dinner, alice, bob, carol):
        url = reverse('expenses:settlement-list', kwargs={'trip_id': trip.id})
        response = bob_client.post(url, {'to_user': str(alice.id), 'amount': '10.00'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        payment = SettlementPayment.objects.get()
        assert payment.from_user == bob
        assert payment.currency == 'USD'

        ledger = bob_client.get(reverse('expenses:ledger-list', kwargs={'trip_id': trip.id})).data[0]
        assert [(d['from'], d['to']) for d in ledger['settlement']] == [(str(carol.id), str(alice.id))]

    def test_payment_to_self_rejected(self, bob_client, trip, bob):
        url = reverse('expenses:settlement-list', kwargs={'trip_id': trip.id})
        response = bob_client.post(url, {'to_user': str(bob.id), 'amount': '10.00'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data

    def test_list_payments(self, bob_client, trip, alice, bob):
        SettlementPayment.objects.create(
            trip=trip, from_user=bob, to_user=alice, amount=Decimal('5.00'), currency='USD'
        )
        url = reverse('expenses:settlement-list', kwargs={'trip_id': trip.id})

        response = bob_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1


@pytest.mark.django_db
class TestServiceRoutes:
    """Tests for health check and the JSON 404 handler."""

    def test_health_check(self, api_client):
        response = api_client.get(reverse('health-check'))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'status': 'ok', 'database': 'ok'}

    def test_unknown_route_is_json_404(self, api_client):
        response = api_client.get('/api/nowhere/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {'error': 'No route for /api/nowhere/'}
