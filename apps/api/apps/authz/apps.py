"""Authz app configuration."""
from django.apps import AppConfig


class AuthzConfig(AppConfig):
    """Portal sessions and role gate."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.authz'
    verbose_name = 'Portal Sessions'
