from django.contrib import admin

from apps.clinics.admin import ReadOnlyPortalAdmin

from .models import Patient


@admin.register(Patient)
class PatientAdmin(ReadOnlyPortalAdmin):
    list_display = ['id', 'name', 'clinic', 'created_at']
    list_filter = ['clinic']
    search_fields = ['id', 'name']
    fieldsets = [
        ('Patient', {
            'fields': ['id', 'name', 'phone', 'clinic']
        }),
        ('Metadata', {
            'fields': ['public_link', 'created_at']
        }),
    ]
