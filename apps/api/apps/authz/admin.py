from django.contrib import admin

from .models import PortalSession


@admin.register(PortalSession)
class PortalSessionAdmin(admin.ModelAdmin):
    list_display = ['id', 'role', 'clinic_id', 'created_at', 'revoked_at']
    list_filter = ['role']
    search_fields = ['id', 'clinic_id']
    readonly_fields = ['id', 'role', 'clinic_id', 'email', 'created_at']
