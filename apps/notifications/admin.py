# ==========================================
# apps/notifications/admin.py
# ==========================================

from django.contrib import admin
from .models import DeviceToken


@admin.register(DeviceToken)
class DeviceTokenAdmin(admin.ModelAdmin):
    """Admin interface for registered push device tokens."""

    list_display = ['user', 'platform', 'get_token_preview', 'updated_at']
    list_filter = ['platform', 'created_at']
    search_fields = ['user__email', 'token']
    readonly_fields = ['created_at', 'updated_at']

    def get_token_preview(self, obj):
        return f"{obj.token[:12]}…"
    get_token_preview.short_description = 'Token'
