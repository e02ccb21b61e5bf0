from django.apps import AppConfig


class IntegrityConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.integrity'
    verbose_name = 'Referential Integrity'
