"""
DRF exception handler.

Renders portal errors and DRF errors with one envelope:
{"detail": "...", "code": "...", ...details}
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from apps.core.errors import PortalError
from apps.core.observability import get_sanitized_logger, metrics

logger = get_sanitized_logger(__name__)


def api_exception_handler(exc, context):
    if isinstance(exc, PortalError):
        body = {'detail': exc.message, 'code': exc.code}
        details = exc.details()
        if details:
            body.update(details)

        if exc.status_code >= 500:
            view = context.get('view')
            metrics.exceptions_total.labels(
                exception_type=exc.__class__.__name__,
                location=view.__class__.__name__ if view else 'unknown',
            ).inc()
            logger.error(
                f'Request failed: {exc.__class__.__name__}',
                extra={'event': 'portal_error', 'code': exc.code},
            )
        return Response(body, status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(response.data, dict) and 'detail' in response.data:
        detail = response.data['detail']
        response.data['code'] = getattr(detail, 'code', None) or 'error'
    elif response.status_code == status.HTTP_400_BAD_REQUEST:
        response.data = {
            'detail': 'Invalid input.',
            'code': 'validation_error',
            'errors': response.data,
        }
    return response
