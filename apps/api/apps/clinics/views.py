"""
Clinic API endpoints.
"""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz.permissions import IsPortalSession
from apps.integrity import selectors, services
from apps.videos.serializers import ClinicVideoSerializer

from .serializers import ClinicCreateSerializer, ClinicSerializer, ClinicStatsSerializer


class ClinicViewSet(viewsets.ViewSet):
    """
    ViewSet for clinics.

    Endpoints:
    - GET /api/v1/clinics/ - List clinics (admin)
    - POST /api/v1/clinics/ - Create clinic (admin)
    - GET /api/v1/clinics/{id}/ - Clinic detail (admin, or the clinic itself)
    - DELETE /api/v1/clinics/{id}/ - Delete clinic with its patients and videos (admin)
    - GET /api/v1/clinics/{id}/stats/ - Patient and video counts
    - GET /api/v1/clinics/{id}/videos/ - Videos of every patient, newest first
    """
    permission_classes = [IsPortalSession]

    def list(self, request):
        clinics = selectors.list_clinics(request.user)
        return Response(ClinicSerializer(clinics, many=True).data)

    def create(self, request):
        serializer = ClinicCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        clinic = services.create_clinic(
            request.user,
            name=data['name'],
            address=data['address'],
            city=data['city'],
            login_email=data['login_email'],
            login_secret=data['password'],
        )
        return Response(ClinicSerializer(clinic).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        clinic = selectors.get_clinic(request.user, pk)
        return Response(ClinicSerializer(clinic).data)

    def destroy(self, request, pk=None):
        services.delete_clinic(request.user, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        stats = services.clinic_stats(request.user, pk)
        return Response(ClinicStatsSerializer(stats).data)

    @action(detail=True, methods=['get'])
    def videos(self, request, pk=None):
        videos = selectors.list_clinic_videos(request.user, pk)
        return Response(ClinicVideoSerializer(videos, many=True).data)
