"""
Authz models: portal sessions.

A session is the explicit authorization context handed to every core
operation. It is created by login(), ended by logout() and revoked in bulk
when its clinic is deleted.
"""
import uuid
from django.db import models
from django.utils import timezone


class SessionRole(models.TextChoices):
    """Portal roles: admin manages clinics, clinic manages its own patients."""
    ADMIN = 'admin', 'Admin'
    CLINIC = 'clinic', 'Clinic'


class PortalSession(models.Model):
    """
    Server-side session referenced by the `sid` claim of an access token.

    clinic_id is a plain column rather than a foreign key so session rows
    survive the clinic they belonged to (revoked) for auditing.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    role = models.CharField(max_length=10, choices=SessionRole.choices)
    clinic_id = models.CharField(max_length=36, blank=True, db_index=True)
    email = models.EmailField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    revoked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'portal_session'
        ordering = ['-created_at']
        verbose_name = 'Portal Session'
        verbose_name_plural = 'Portal Sessions'

    def __str__(self):
        return f'{self.role} session {self.id}'

    # DRF treats request.user as authenticated when this is True
    is_authenticated = True
    is_anonymous = False

    @property
    def is_admin(self):
        return self.role == SessionRole.ADMIN

    @property
    def is_active(self):
        return self.revoked_at is None

    def revoke(self):
        if self.revoked_at is None:
            self.revoked_at = timezone.now()
            self.save(update_fields=['revoked_at'])
