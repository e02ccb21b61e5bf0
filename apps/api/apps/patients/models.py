"""
Patient model - a person whose ultrasound videos are tracked under one clinic.
"""
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.core.identifiers import ID_MAX_LENGTH, new_id


class Patient(models.Model):
    """
    Patient belonging to exactly one clinic.

    The clinic FK is PROTECT: a clinic row can only disappear after the
    cascade engine has removed its patients.
    """
    id = models.CharField(
        primary_key=True,
        max_length=ID_MAX_LENGTH,
        default=new_id,
        editable=False,
    )
    clinic = models.ForeignKey(
        'clinics.Clinic',
        on_delete=models.PROTECT,
        related_name='patients',
    )
    name = models.CharField(_('Name'), max_length=255)
    phone = models.CharField(_('Phone'), max_length=50, blank=True)
    created_at = models.DateTimeField(_('Created At'))

    # Cached convenience value; never consulted for access decisions
    public_link = models.CharField(_('Public Link'), max_length=500, blank=True)

    class Meta:
        db_table = 'patient'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['clinic', '-created_at'], name='patient_clinic__5d0c1e_idx'),
        ]
        verbose_name = _('Patient')
        verbose_name_plural = _('Patients')

    def __str__(self):
        return self.name

    @property
    def has_public_link(self):
        return bool(self.public_link)
