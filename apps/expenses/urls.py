from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'expenses'

router = DefaultRouter()
router.include_root_view = False
router.register(r'expenses', views.ExpenseViewSet, basename='expense')
router.register(r'ledger', views.LedgerViewSet, basename='ledger')
router.register(r'budget', views.BudgetViewSet, basename='budget')
router.register(r'settlements', views.SettlementPaymentViewSet, basename='settlement')

urlpatterns = [
    # Expense routes
    # GET    /api/trips/{trip_id}/expenses/        - List expenses
    # POST   /api/trips/{trip_id}/expenses/        - Record expense
    # GET    /api/trips/{trip_id}/expenses/{id}/   - Get expense details
    # DELETE /api/trips/{trip_id}/expenses/{id}/   - Delete expense

    # Ledger routes
    # GET    /api/trips/{trip_id}/ledger/          - Balances and transfers per currency
    # POST   /api/trips/{trip_id}/ledger/share/    - Post open transfers to the trip chat
    # GET    /api/trips/{trip_id}/budget/          - Budget summary

    # Settlement routes
    # GET    /api/trips/{trip_id}/settlements/     - List settle-up payments
    # POST   /api/trips/{trip_id}/settlements/     - Record settle-up payment

    path('', include(router.urls)),
]
