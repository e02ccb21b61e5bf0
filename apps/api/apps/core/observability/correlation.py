"""
Request correlation middleware.

Generates/propagates X-Request-ID and injects it into logs together with the
portal session that made the request.
"""
import uuid
import time
import logging
from django.utils.deprecation import MiddlewareMixin
from threading import local

from .metrics import metrics

# Thread-local storage for request context
_request_context = local()

logger = logging.getLogger(__name__)


def get_request_id():
    """Get current request ID from thread-local storage."""
    return getattr(_request_context, 'request_id', None)


def get_session_id():
    """Get current portal session ID from thread-local storage."""
    return getattr(_request_context, 'session_id', None)


def get_session_role():
    """Get current portal session role (admin|clinic) from thread-local storage."""
    return getattr(_request_context, 'session_role', None)


def get_clinic_id():
    """Get the clinic the current session is scoped to, if any."""
    return getattr(_request_context, 'clinic_id', None)


def bind_session(session):
    """
    Attach an authenticated portal session to the current request context.

    Called by the authentication class once DRF has resolved the token;
    Django's middleware runs before that and only sees anonymous users.
    """
    _request_context.session_id = str(session.id)
    _request_context.session_role = session.role
    _request_context.clinic_id = session.clinic_id or None


class RequestCorrelationMiddleware(MiddlewareMixin):
    """
    Middleware to handle request correlation.

    - Generates/propagates X-Request-ID
    - Stores context in thread-local for logging
    - Adds correlation headers to response
    - Tracks request duration
    """

    REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'

    def process_request(self, request):
        """Process incoming request and setup correlation context."""
        clear_request_context()

        request_id = request.META.get(self.REQUEST_ID_HEADER)
        if not request_id:
            request_id = str(uuid.uuid4())

        request.request_id = request_id
        request.start_time = time.time()
        _request_context.request_id = request_id

    def process_response(self, request, response):
        """Add correlation headers to response."""
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id

        if hasattr(request, 'start_time'):
            duration = time.time() - request.start_time
            duration_ms = duration * 1000

            match = getattr(request, 'resolver_match', None)
            metrics.http_request_duration_seconds.labels(
                view=match.url_name if match and match.url_name else 'unresolved',
                method=request.method,
            ).observe(duration)

            logger.info(
                'Request completed',
                extra={
                    'event': 'http_request_completed',
                    'path': request.path,
                    'method': request.method,
                    'status_code': response.status_code,
                    'duration_ms': round(duration_ms, 2),
                    'request_id': getattr(request, 'request_id', None),
                    'session_id': get_session_id(),
                    'session_role': get_session_role(),
                }
            )

        return response

    def process_exception(self, request, exception):
        """Log exceptions with correlation context."""
        duration_ms = 0
        if hasattr(request, 'start_time'):
            duration_ms = (time.time() - request.start_time) * 1000

        logger.error(
            f'Request failed: {exception.__class__.__name__}',
            exc_info=True,
            extra={
                'event': 'http_request_exception',
                'path': request.path,
                'method': request.method,
                'exception_type': exception.__class__.__name__,
                'duration_ms': round(duration_ms, 2),
                'request_id': getattr(request, 'request_id', None),
                'session_id': get_session_id(),
                'session_role': get_session_role(),
            }
        )


def clear_request_context():
    """Clear thread-local request context (useful for testing)."""
    for attr in ['request_id', 'session_id', 'session_role', 'clinic_id']:
        if hasattr(_request_context, attr):
            delattr(_request_context, attr)
