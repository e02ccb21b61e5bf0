"""
DRF authentication resolving simplejwt access tokens to portal sessions.
"""
from django.core.exceptions import ValidationError
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken

from apps.core.observability.correlation import bind_session

from .models import PortalSession


class PortalSessionAuthentication(JWTAuthentication):
    """
    Bearer-token authentication whose request.user is a PortalSession.

    Tokens stay valid only while their session is open, so logout and
    clinic deletion take effect immediately.
    """

    def get_user(self, validated_token):
        try:
            session_id = validated_token['sid']
        except KeyError:
            raise InvalidToken('Token contained no recognizable session identification')

        try:
            session = PortalSession.objects.get(id=session_id)
        except (PortalSession.DoesNotExist, ValidationError, ValueError):
            raise AuthenticationFailed('Session not found', code='session_not_found')

        if not session.is_active:
            raise AuthenticationFailed('Session has ended', code='session_revoked')

        bind_session(session)
        return session
