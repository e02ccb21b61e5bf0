"""Clinics app configuration."""
from django.apps import AppConfig


class ClinicsConfig(AppConfig):
    """Tenant clinics."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.clinics'
    verbose_name = 'Clinics'
