from django.contrib import admin

from .models import Clinic


class ReadOnlyPortalAdmin(admin.ModelAdmin):
    """
    Inspection-only admin.

    Portal records are created and removed through apps.integrity.services
    so mirrors, media and sessions stay consistent; the Django admin never
    writes them directly.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Clinic)
class ClinicAdmin(ReadOnlyPortalAdmin):
    list_display = ['id', 'name', 'city', 'login_email', 'created_at']
    search_fields = ['name', 'city', 'login_email']
    exclude = ['login_secret']
