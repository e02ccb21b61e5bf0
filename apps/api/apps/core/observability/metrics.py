"""
Metrics instrumentation.

All portal metrics live on one MetricsRegistry instance backed by
prometheus_client and exposed at /metrics.
"""
from functools import wraps
import time

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry for the video portal.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        return Counter(name, description, labels or [])

    def _create_histogram(self, name, description, labels=None, buckets=None):
        if buckets:
            return Histogram(name, description, labels or [], buckets=buckets)
        return Histogram(name, description, labels or [])

    def _setup_metrics(self):
        """Setup all application metrics."""

        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_request_duration_seconds = self._create_histogram(
            'portal_http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['view', 'method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = self._create_counter(
            'portal_exceptions_total',
            'Total server-side exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Record Store Metrics
        # ===================================================================
        self.record_writes_total = self._create_counter(
            'portal_record_writes_total',
            'Record store writes',
            ['kind', 'operation', 'store', 'result']  # operation: put|delete
        )

        self.backend_unavailable_total = self._create_counter(
            'portal_backend_unavailable_total',
            'Storage backend failures',
            ['backend', 'operation']
        )

        self.mirror_write_failures_total = self._create_counter(
            'portal_mirror_write_failures_total',
            'Writes that reached the authoritative store but not a mirror',
            ['kind', 'operation']
        )

        self.degraded_writes_total = self._create_counter(
            'portal_degraded_writes_total',
            'Writes served by mirrors while the authoritative store was down',
            ['kind', 'operation']
        )

        # ===================================================================
        # Integrity Metrics
        # ===================================================================
        self.entities_created_total = self._create_counter(
            'portal_entities_created_total',
            'Clinics, patients and videos created',
            ['kind']
        )

        self.cascade_deletions_total = self._create_counter(
            'portal_cascade_deletions_total',
            'Cascade deletions',
            ['kind', 'result']  # result: success|partial
        )

        self.cascade_deletion_duration_seconds = self._create_histogram(
            'portal_cascade_deletion_duration_seconds',
            'Duration of a cascade deletion pass',
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.cascade_retries_total = self._create_counter(
            'portal_cascade_retries_total',
            'Automatic cascade deletion retries',
            ['kind', 'result']
        )

        # ===================================================================
        # Media Metrics
        # ===================================================================
        self.media_stored_bytes_total = self._create_counter(
            'portal_media_stored_bytes_total',
            'Bytes of video stored',
            ['backend']
        )

        self.media_released_total = self._create_counter(
            'portal_media_released_total',
            'Media handles released',
            ['backend', 'result']
        )

        # ===================================================================
        # Public / Auth Metrics
        # ===================================================================
        self.public_resolve_total = self._create_counter(
            'portal_public_resolve_total',
            'Public patient page resolutions',
            ['result']  # found, invalid_id, not_found
        )

        self.login_attempts_total = self._create_counter(
            'portal_login_attempts_total',
            'Login attempts',
            ['role', 'result']
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.cascade_deletion_duration_seconds)
            def delete_clinic(session, clinic_id):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
