# ==========================================
# apps/trips/admin.py
# ==========================================

from django.contrib import admin
from apps.trips.models import Trip, TripMember, ChatMessage


class TripMemberInline(admin.TabularInline):
    """Inline admin for trip members."""
    model = TripMember
    extra = 0
    fields = ['user', 'role', 'joined_at']
    readonly_fields = ['joined_at']


@admin.register(Trip)
class TripAdmin(admin.ModelAdmin):
    """Admin interface for Trips."""

    list_display = [
        'name',
        'destination',
        'created_by',
        'member_count',
        'currency',
        'budget',
        'status',
        'created_at'
    ]
    list_filter = ['status', 'currency', 'created_at']
    search_fields = ['name', 'destination', 'created_by__email']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [TripMemberInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'destination', 'created_by', 'status')
        }),
        ('Dates', {
            'fields': ('start_date', 'end_date')
        }),
        ('Budget', {
            'fields': ('budget', 'currency')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        """Show number of members."""
        return obj.memberships.count()
    member_count.short_description = 'Members'


@admin.register(ChatMessage)
class ChatMessageAdmin(admin.ModelAdmin):
    """Admin interface for trip chat messages."""

    list_display = ['trip', 'user', 'message_type', 'created_at']
    list_filter = ['message_type', 'created_at']
    search_fields = ['trip__name', 'user__email', 'content']
    readonly_fields = ['created_at']
