from django.contrib import admin

from apps.clinics.admin import ReadOnlyPortalAdmin

from .models import Video


@admin.register(Video)
class VideoAdmin(ReadOnlyPortalAdmin):
    list_display = ['id', 'file_name', 'patient', 'content_type', 'size_bytes', 'uploaded_at']
    search_fields = ['id', 'file_name']
    date_hierarchy = 'uploaded_at'
