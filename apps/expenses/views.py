from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from .models import Expense
from .serializers import (
    BudgetSummarySerializer,
    CurrencyLedgerSerializer,
    ExpenseCreateSerializer,
    ExpenseSerializer,
    ExpenseUpdateSerializer,
    SettlementPaymentCreateSerializer,
    SettlementPaymentSerializer,
)

from apps.expenses.services import (
    create_expense,
    delete_expense,
    get_budget_summary,
    get_trip_for_member,
    get_trip_ledger,
    record_settlement_payment,
    share_settlement_summary,
    update_expense,
    # Exceptions
    DataIntegrityError,
    MixedCurrencyError,
    NotTripMemberError,
    TripNotFoundError,
)


class ExpensePagination(PageNumberPagination):
    """Custom pagination for expenses."""
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 200


class TripScopedViewSet(viewsets.GenericViewSet):
    """
    Base for views nested under ``/api/trips/{trip_id}/``.

    Resolves the trip from the URL and checks the requester is on its
    roster before any handler runs.
    """

    permission_classes = [IsAuthenticated]

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.trip = get_trip_for_member(trip_id=self.kwargs['trip_id'], user=request.user)

    def handle_exception(self, exc):
        if isinstance(exc, TripNotFoundError):
            return Response({'error': str(exc)}, status=status.HTTP_404_NOT_FOUND)
        if isinstance(exc, NotTripMemberError):
            return Response({'error': str(exc)}, status=status.HTTP_403_FORBIDDEN)
        return super().handle_exception(exc)


class ExpenseViewSet(TripScopedViewSet):
    """
    Expenses of one trip.

    list: All expenses, newest first
    create: Record an expense (optionally posted to the trip chat)
    retrieve: Get a specific expense
    partial_update: Edit an expense (payer or trip owner)
    destroy: Delete an expense (payer or trip owner)
    """

    serializer_class = ExpenseSerializer
    pagination_class = ExpensePagination
    lookup_value_regex = '[0-9a-fA-F-]{36}'

    def get_queryset(self):
        return Expense.objects.filter(trip=self.trip).select_related('paid_by')

    def get_serializer_class(self):
        if self.action == 'create':
            return ExpenseCreateSerializer
        if self.action == 'partial_update':
            return ExpenseUpdateSerializer
        return ExpenseSerializer

    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()

        category = request.query_params.get('category')
        if category:
            queryset = queryset.filter(category=category)

        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = ExpenseSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = ExpenseSerializer(queryset, many=True)
        return Response(serializer.data)

    def retrieve(self, request, *args, **kwargs):
        expense = self.get_object()
        return Response(ExpenseSerializer(expense).data)

    @extend_schema(request=ExpenseCreateSerializer, responses={201: ExpenseSerializer})
    def create(self, request, *args, **kwargs):
        """Record a new expense."""
        serializer = ExpenseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            expense = create_expense(
                trip=self.trip,
                created_by=request.user,
                title=data['title'],
                amount=data['amount'],
                currency=data.get('currency', self.trip.currency),
                paid_by_id=data.get('paid_by', request.user.id),
                split_among=data.get('split_among', ()),
                split_type=data['split_type'],
                custom_shares=data.get('custom_shares'),
                date=data['date'],
                category=data['category'],
                has_chat=data['has_chat'],
            )
        except DataIntegrityError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(ExpenseSerializer(expense).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=ExpenseUpdateSerializer, responses={200: ExpenseSerializer})
    def partial_update(self, request, *args, **kwargs):
        """Edit an expense; omitted fields keep their stored value."""
        serializer = ExpenseUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            expense = update_expense(
                expense_id=self.kwargs['pk'],
                trip=self.trip,
                user=request.user,
                title=data.get('title'),
                amount=data.get('amount'),
                currency=data.get('currency'),
                paid_by_id=data.get('paid_by'),
                date=data.get('date'),
                split_among=data.get('split_among'),
                split_type=data.get('split_type'),
                custom_shares=data.get('custom_shares'),
                category=data.get('category'),
            )
        except Expense.DoesNotExist:
            return Response({'error': 'Expense not found'}, status=status.HTTP_404_NOT_FOUND)
        except NotTripMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except DataIntegrityError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(ExpenseSerializer(expense).data)

    def destroy(self, request, *args, **kwargs):
        """Delete an expense."""
        try:
            delete_expense(expense_id=self.kwargs['pk'], trip=self.trip, user=request.user)
            return Response(status=status.HTTP_204_NO_CONTENT)
        except Expense.DoesNotExist:
            return Response({'error': 'Expense not found'}, status=status.HTTP_404_NOT_FOUND)
        except NotTripMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)


class LedgerViewSet(TripScopedViewSet):
    """
    Balances and suggested transfers of one trip.

    list: One ledger per currency used in the trip
    share: Post the open transfers to the trip chat as summary messages
    """

    serializer_class = CurrencyLedgerSerializer
    pagination_class = None

    @extend_schema(responses={200: CurrencyLedgerSerializer(many=True)})
    def list(self, request, *args, **kwargs):
        try:
            ledgers = get_trip_ledger(trip=self.trip)
        except (DataIntegrityError, MixedCurrencyError) as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(CurrencyLedgerSerializer(ledgers, many=True).data)

    @extend_schema(request=None, responses={201: None})
    @action(detail=False, methods=['post'])
    def share(self, request, *args, **kwargs):
        try:
            messages = share_settlement_summary(trip=self.trip, author=request.user)
        except (DataIntegrityError, MixedCurrencyError) as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(
            {'posted': len(messages), 'message_ids': [str(m.id) for m in messages]},
            status=status.HTTP_201_CREATED if messages else status.HTTP_200_OK,
        )


class BudgetViewSet(TripScopedViewSet):
    """Budget vs. spending in the trip currency."""

    serializer_class = BudgetSummarySerializer
    pagination_class = None

    def list(self, request, *args, **kwargs):
        summary = get_budget_summary(trip=self.trip)
        return Response(BudgetSummarySerializer(summary).data)


class SettlementPaymentViewSet(TripScopedViewSet):
    """
    Recorded settle-up payments of one trip.

    list: All payments, newest first
    create: Record that one member paid another
    """

    serializer_class = SettlementPaymentSerializer
    pagination_class = ExpensePagination

    def get_queryset(self):
        return self.trip.settlement_payments.all()

    def list(self, request, *args, **kwargs):
        page = self.paginate_queryset(self.get_queryset())
        if page is not None:
            serializer = SettlementPaymentSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(SettlementPaymentSerializer(self.get_queryset(), many=True).data)

    @extend_schema(request=SettlementPaymentCreateSerializer, responses={201: SettlementPaymentSerializer})
    def create(self, request, *args, **kwargs):
        serializer = SettlementPaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            payment = record_settlement_payment(
                trip=self.trip,
                from_user_id=data.get('from_user', request.user.id),
                to_user_id=data['to_user'],
                amount=data['amount'],
                currency=data.get('currency', self.trip.currency),
                note=data['note'],
            )
        except DataIntegrityError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(SettlementPaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
