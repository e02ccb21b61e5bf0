"""
Authz permissions and scope checks for portal sessions.
"""
from rest_framework import permissions

from apps.core.errors import AccessDenied, RecordNotFound

from .models import PortalSession


class IsPortalSession(permissions.BasePermission):
    """Allows any open portal session (admin or clinic)."""

    def has_permission(self, request, view):
        session = request.user
        return isinstance(session, PortalSession) and session.is_active


class IsAdminSession(IsPortalSession):
    """Allows admin sessions only."""

    def has_permission(self, request, view):
        return super().has_permission(request, view) and request.user.is_admin


def require_admin(session):
    if not session.is_admin:
        raise AccessDenied()


def can_access_clinic(session, clinic_id):
    """Admin sees every clinic; a clinic session only its own."""
    return session.is_admin or session.clinic_id == clinic_id


def require_clinic_scope(session, clinic_id):
    """For writes into a clinic the caller does not own."""
    if not can_access_clinic(session, clinic_id):
        raise AccessDenied()


def require_visible(session, clinic_id, kind, record_id):
    """
    For reads: records outside the caller's clinic are reported as missing
    so their existence is not disclosed.
    """
    if not can_access_clinic(session, clinic_id):
        raise RecordNotFound(kind, record_id)
