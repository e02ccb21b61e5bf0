"""
Patient API endpoints.
"""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from apps.authz.permissions import IsPortalSession
from apps.core.errors import InvalidUpload
from apps.integrity import selectors, services
from apps.videos.serializers import VideoSerializer

from .serializers import PatientCreateSerializer, PatientSerializer, PublicLinkSerializer


class PatientViewSet(viewsets.ViewSet):
    """
    ViewSet for patients.

    Endpoints:
    - GET /api/v1/patients/ - List patients (?clinic_id= for admins)
    - POST /api/v1/patients/ - Create patient
    - GET /api/v1/patients/{id}/ - Patient detail
    - DELETE /api/v1/patients/{id}/ - Delete patient with their videos
    - POST /api/v1/patients/{id}/public-link/ - Public URL + QR code URL
    - GET /api/v1/patients/{id}/videos/ - List videos
    - POST /api/v1/patients/{id}/videos/ - Upload video (multipart, field "file")

    Clinic sessions only ever see their own clinic's patients.
    """
    permission_classes = [IsPortalSession]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def list(self, request):
        patients = selectors.list_patients(
            request.user,
            clinic_id=request.query_params.get('clinic_id') or None,
        )
        return Response(PatientSerializer(patients, many=True).data)

    def create(self, request):
        serializer = PatientCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        clinic_id = data.get('clinic_id') or request.user.clinic_id
        if not clinic_id:
            raise ValidationError({'clinic_id': ['This field is required.']})
        patient = services.create_patient(
            request.user,
            clinic_id,
            name=data['name'],
            phone=data['phone'],
        )
        return Response(PatientSerializer(patient).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        patient = selectors.get_patient(request.user, pk)
        return Response(PatientSerializer(patient).data)

    def destroy(self, request, pk=None):
        services.delete_patient(request.user, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], url_path='public-link')
    def public_link(self, request, pk=None):
        link = services.acquire_public_link(request.user, pk)
        return Response(PublicLinkSerializer(link).data)

    @action(detail=True, methods=['get', 'post'])
    def videos(self, request, pk=None):
        if request.method == 'GET':
            videos = selectors.list_videos(request.user, pk)
            return Response(VideoSerializer(videos, many=True).data)

        file = request.FILES.get('file')
        if file is None:
            raise InvalidUpload('file is required')

        video = services.upload_video(
            request.user,
            pk,
            file,
            request.data.get('file_name') or file.name,
            file.content_type,
        )
        return Response(VideoSerializer(video).data, status=status.HTTP_201_CREATED)
