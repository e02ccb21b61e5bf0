"""
Public patient page API.

CRITICAL RULES:
- NO authentication required
- READ-ONLY
- Malformed and unknown ids get the exact same response
- Rate limited per IP (public_patient scope)
"""
import time

from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.core.errors import BackendUnavailable, InvalidIdFormat, RecordNotFound
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.events import log_domain_event

from .resolver import resolve
from .serializers import ResolvedPatientSerializer

logger = get_sanitized_logger(__name__)

INVALID_LINK_MESSAGE = 'This link is invalid or has expired.'
UNAVAILABLE_MESSAGE = 'Videos are temporarily unavailable. Please try again later.'


class PublicPatientView(APIView):
    """
    GET /public/patients/{patient_id}/

    Returns the patient's name and ready videos, newest first.
    """
    authentication_classes = []
    permission_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'public_patient'

    def get(self, request, patient_id):
        start_time = time.time()

        try:
            resolved = resolve(patient_id)
        except (InvalidIdFormat, RecordNotFound) as exc:
            result = 'invalid_id' if isinstance(exc, InvalidIdFormat) else 'not_found'
            metrics.public_resolve_total.labels(result=result).inc()
            log_domain_event('public.patient.resolve', entity_type='patient', result='blocked', reason=result)
            return Response({'detail': INVALID_LINK_MESSAGE}, status=status.HTTP_404_NOT_FOUND)
        except BackendUnavailable:
            metrics.public_resolve_total.labels(result='unavailable').inc()
            return Response({'detail': UNAVAILABLE_MESSAGE}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        metrics.public_resolve_total.labels(result='found').inc()
        logger.info(
            'Public patient page served',
            extra={
                'event': 'public_patient_served',
                'patient_id': resolved.patient['id'],
                'video_count': len(resolved.videos),
                'duration_ms': int((time.time() - start_time) * 1000),
            }
        )
        return Response(ResolvedPatientSerializer(resolved).data)
