"""
Tests for observability infrastructure.

Run: pytest apps/api/tests/test_observability.py -v
"""
import json
import logging
from unittest.mock import Mock, patch

import pytest
from django.http import HttpResponse
from rest_framework import status

from apps.core.errors import BackendUnavailable
from apps.core.observability.correlation import (
    RequestCorrelationMiddleware,
    bind_session,
    clear_request_context,
    get_clinic_id,
    get_request_id,
    get_session_role,
)
from apps.core.observability.logging import (
    CorrelationFilter,
    SanitizedJSONFormatter,
    sanitize_dict,
)


def make_request(**meta):
    request = Mock()
    request.META = meta
    request.path = '/api/v1/patients/'
    request.method = 'GET'
    request.resolver_match = None
    return request


class TestRequestCorrelation:
    """Test request correlation middleware."""

    def setup_method(self):
        clear_request_context()

    def teardown_method(self):
        clear_request_context()

    def test_generates_request_id_if_missing(self):
        middleware = RequestCorrelationMiddleware(get_response=lambda r: HttpResponse())
        request = make_request()

        middleware.process_request(request)

        assert request.request_id
        assert get_request_id() == request.request_id

    def test_propagates_existing_request_id(self):
        middleware = RequestCorrelationMiddleware(get_response=lambda r: HttpResponse())
        request = make_request(HTTP_X_REQUEST_ID='test-request-123')

        middleware.process_request(request)

        assert request.request_id == 'test-request-123'

    def test_adds_request_id_to_response(self):
        middleware = RequestCorrelationMiddleware(get_response=lambda r: HttpResponse())
        request = make_request(HTTP_X_REQUEST_ID='test-request-456')
        middleware.process_request(request)

        response = middleware.process_response(request, HttpResponse())

        assert response['X-Request-ID'] == 'test-request-456'

    def test_new_request_drops_previous_session(self):
        session = Mock(id='abc', role='clinic', clinic_id='1700000000000')
        bind_session(session)
        assert get_clinic_id() == '1700000000000'

        middleware = RequestCorrelationMiddleware(get_response=lambda r: HttpResponse())
        middleware.process_request(make_request())

        assert get_session_role() is None
        assert get_clinic_id() is None


class TestSanitizedLogging:

    def _format(self, **extra):
        record = logging.LogRecord('portal.test', logging.INFO, __file__, 1, 'Something happened', None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        CorrelationFilter().filter(record)
        return json.loads(SanitizedJSONFormatter().format(record))

    def test_sensitive_extra_fields_are_redacted(self):
        data = self._format(
            event='clinic_created',
            login_email='desk@example.com',
            phone='555-0100',
            patient_name='Ana',
            file_url='videos/p/scan.mp4',
        )

        assert data['event'] == 'clinic_created'
        assert data['login_email'] == '[REDACTED]'
        assert data['phone'] == '[REDACTED]'
        assert data['patient_name'] == '[REDACTED]'
        assert data['file_url'] == '[REDACTED]'

    def test_nested_values_are_redacted(self):
        data = self._format(payload={'clinic': {'password': 'x', 'city': 'Madrid'}})
        assert data['payload'] == {'clinic': {'password': '[REDACTED]', 'city': 'Madrid'}}

    def test_correlation_context_is_attached(self):
        bind_session(Mock(id='s-1', role='admin', clinic_id=''))
        try:
            data = self._format(event='x')
        finally:
            clear_request_context()

        assert data['session_id'] == 's-1'
        assert data['session_role'] == 'admin'

    def test_explicit_clinic_id_wins_over_context(self):
        bind_session(Mock(id='s-1', role='clinic', clinic_id='1700000000000'))
        try:
            data = self._format(clinic_id='1700000000999')
        finally:
            clear_request_context()

        assert data['clinic_id'] == '1700000000999'

    def test_sanitize_dict(self):
        assert sanitize_dict({
            'email': 'a@b.c',
            'items': [{'name': 'Ana', 'id': '1'}],
            'count': 2,
        }) == {
            'email': '[REDACTED]',
            'items': [{'name': '[REDACTED]', 'id': '1'}],
            'count': 2,
        }


@pytest.mark.django_db
class TestHealthEndpoints:

    def test_healthz(self, client):
        response = client.get('/healthz')
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['status'] == 'ok'

    def test_readyz_checks_database_and_media(self, client):
        response = client.get('/readyz')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['checks'] == {'database': True, 'media_store': True}

    def test_readyz_reports_media_outage(self, client, media_store):
        with patch.object(media_store, 'ping', side_effect=BackendUnavailable('filesystem', 'ping')):
            response = client.get('/readyz')

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()['checks']['media_store'] is False

    def test_metrics_exposes_portal_counters(self, client, admin_session, clinic):
        response = client.get('/metrics')

        assert response.status_code == status.HTTP_200_OK
        body = response.content.decode()
        assert 'portal_entities_created_total' in body
        assert 'portal_record_writes_total' in body

    def test_responses_carry_request_id(self, api_client, db):
        response = api_client.get('/healthz', HTTP_X_REQUEST_ID='trace-me')
        assert response['X-Request-ID'] == 'trace-me'
