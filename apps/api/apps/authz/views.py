"""
Authz views: login, logout and current session.
"""
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.authz import services
from apps.authz.permissions import IsPortalSession
from apps.authz.serializers import LoginSerializer, SessionSerializer


class LoginView(APIView):
    """
    POST /api/auth/login/

    Exchanges email + password for a bearer token bound to a new session.
    Failures are always the same generic 401.
    """
    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'login'

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = services.login(
            serializer.validated_data['email'],
            serializer.validated_data['password'],
        )
        return Response({
            'access': services.issue_access_token(session),
            'session': SessionSerializer(session).data,
        })


class LogoutView(APIView):
    """POST /api/auth/logout/ - ends the current session."""
    permission_classes = [IsPortalSession]

    def post(self, request):
        services.logout(request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(APIView):
    """GET /api/auth/me/ - the session behind the bearer token."""
    permission_classes = [IsPortalSession]

    def get(self, request):
        return Response(SessionSerializer(request.user).data)
