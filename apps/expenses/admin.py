# ==========================================
# apps/expenses/admin.py
# ==========================================

from django.contrib import admin
from .currency import format_amount
from .models import Expense, SettlementPayment


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    """Admin interface for trip expenses."""

    list_display = [
        'title',
        'trip',
        'paid_by',
        'get_amount_display',
        'category',
        'split_count',
        'date',
        'has_chat',
    ]
    list_filter = ['category', 'split_type', 'currency', 'has_chat', 'date']
    search_fields = ['title', 'trip__name', 'paid_by__email']
    readonly_fields = ['created_at', 'updated_at']
    date_hierarchy = 'date'
    ordering = ['-date', '-created_at']

    fieldsets = (
        ('Expense', {
            'fields': ('trip', 'title', 'category', 'date')
        }),
        ('Money', {
            'fields': ('amount', 'currency', 'paid_by', 'split_type', 'split_among', 'custom_shares')
        }),
        ('Metadata', {
            'fields': ('has_chat', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_amount_display(self, obj):
        return format_amount(obj.amount, obj.currency)
    get_amount_display.short_description = 'Amount'
    get_amount_display.admin_order_field = 'amount'

    def split_count(self, obj):
        """Show number of members sharing the expense."""
        return len(obj.split_among or [])
    split_count.short_description = 'Split'


@admin.register(SettlementPayment)
class SettlementPaymentAdmin(admin.ModelAdmin):
    """Admin interface for settle-up payments."""

    list_display = ['trip', 'from_user', 'to_user', 'get_amount_display', 'created_at']
    list_filter = ['currency', 'created_at']
    search_fields = ['trip__name', 'from_user__email', 'to_user__email', 'note']
    readonly_fields = ['created_at']

    def get_amount_display(self, obj):
        return format_amount(obj.amount, obj.currency)
    get_amount_display.short_description = 'Amount'
