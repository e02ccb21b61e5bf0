"""
Clinic model - the tenant root of the clinic -> patient -> video tree.
"""
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.core.identifiers import ID_MAX_LENGTH, new_id


class Clinic(models.Model):
    """
    A tenant organization.

    Clinics are created by an admin and only ever removed through
    apps.integrity.services.delete_clinic, which takes their patients and
    videos with them.
    """
    id = models.CharField(
        primary_key=True,
        max_length=ID_MAX_LENGTH,
        default=new_id,
        editable=False,
    )
    name = models.CharField(_('Name'), max_length=255)
    address = models.CharField(_('Address'), max_length=255, blank=True)
    city = models.CharField(_('City'), max_length=100, blank=True)

    # Credentials
    login_email = models.EmailField(_('Login Email'), unique=True)
    login_secret = models.CharField(
        _('Login Secret'),
        max_length=255,
        help_text=_('Salted hash produced by the configured password hasher')
    )

    created_at = models.DateTimeField(_('Created At'))

    class Meta:
        db_table = 'clinic'
        ordering = ['-created_at']
        verbose_name = _('Clinic')
        verbose_name_plural = _('Clinics')

    def __str__(self):
        return self.name
