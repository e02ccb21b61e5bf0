"""
Session/Role gate.

login() checks credentials and opens a PortalSession; logout() and
revoke_clinic_sessions() close them. Secrets are only ever compared through
Django's password hashers.
"""
from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.db import DatabaseError
from django.utils import timezone
from rest_framework_simplejwt.tokens import AccessToken

from apps.core.errors import BackendUnavailable, InvalidCredentials
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.events import log_domain_event

from .models import PortalSession, SessionRole

logger = get_sanitized_logger(__name__)


def normalize_email(email):
    return (email or '').strip().lower()


def _login_failed(role):
    metrics.login_attempts_total.labels(role=role, result='failure').inc()
    log_domain_event('login', entity_type='session', result='blocked', role=role)
    return InvalidCredentials()


def login(email, secret):
    """
    Open a session for the admin or for the clinic owning email.

    Raises InvalidCredentials without saying which field was wrong.
    """
    from apps.integrity.selectors import find_clinic_by_login_email

    email = normalize_email(email)
    admin_email = normalize_email(settings.PORTAL_ADMIN_EMAIL)

    if admin_email and email == admin_email:
        admin_hash = settings.PORTAL_ADMIN_PASSWORD_HASH
        if not admin_hash or not check_password(secret, admin_hash):
            raise _login_failed(SessionRole.ADMIN)
        session = PortalSession.objects.create(role=SessionRole.ADMIN, email=email)
    else:
        clinic = find_clinic_by_login_email(email) if email else None
        if clinic is None:
            # Hash anyway so unknown emails cost the same as wrong secrets
            make_password(secret)
            raise _login_failed(SessionRole.CLINIC)
        if not check_password(secret, clinic['login_secret']):
            raise _login_failed(SessionRole.CLINIC)
        session = PortalSession.objects.create(
            role=SessionRole.CLINIC,
            clinic_id=clinic['id'],
            email=email,
        )

    metrics.login_attempts_total.labels(role=session.role, result='success').inc()
    log_domain_event(
        'login',
        entity_type='session',
        entity_id=str(session.id),
        role=session.role,
        clinic_id=session.clinic_id or None,
    )
    return session


def issue_access_token(session):
    """Encode session as a signed simplejwt access token."""
    token = AccessToken()
    token['sid'] = str(session.id)
    token['role'] = session.role
    if session.clinic_id:
        token['clinic_id'] = session.clinic_id
    return str(token)


def logout(session):
    session.revoke()
    log_domain_event('logout', entity_type='session', entity_id=str(session.id), role=session.role)


def revoke_clinic_sessions(clinic_id):
    """
    End every open session of a clinic. Returns the number revoked, or
    raises BackendUnavailable when the session table cannot be reached.
    """
    try:
        revoked = PortalSession.objects.filter(
            clinic_id=clinic_id,
            revoked_at__isnull=True,
        ).update(revoked_at=timezone.now())
    except DatabaseError as exc:
        metrics.backend_unavailable_total.labels(backend='sessions', operation='revoke').inc()
        logger.error(
            'Could not revoke clinic sessions',
            extra={'event': 'clinic_sessions_revoke_failed', 'clinic_id': clinic_id},
        )
        raise BackendUnavailable('sessions', 'revoke', reason=str(exc)) from exc
    if revoked:
        logger.info(
            'Clinic sessions revoked',
            extra={'event': 'clinic_sessions_revoked', 'clinic_id': clinic_id, 'count': revoked},
        )
    return revoked
