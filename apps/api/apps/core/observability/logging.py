"""
Structured logging with PHI/PII protection.

Patient names, phone numbers, clinic credentials and media handles must never
reach the log stream. Filters and formatters here enforce that.
"""
import logging
import json
from datetime import datetime, timezone
from .correlation import get_request_id, get_session_id, get_session_role, get_clinic_id


# Fields that should NEVER be logged (PHI/PII/credentials)
SENSITIVE_FIELDS = {
    'password',
    'secret',
    'login_secret',
    'token',
    'access',
    'authorization',
    'email',
    'login_email',
    'name',
    'patient_name',
    'phone',
    'address',
    'file_url',
    'public_link',
    'url',
}

# Attributes every LogRecord carries; never copied into the JSON payload
_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
}


class CorrelationFilter(logging.Filter):
    """
    Logging filter that injects correlation context into log records.
    """

    def filter(self, record):
        # extra={} values passed to the logging call win over the context
        record.__dict__.setdefault('request_id', get_request_id() or '-')
        record.__dict__.setdefault('session_id', get_session_id() or '-')
        record.__dict__.setdefault('session_role', get_session_role() or '-')
        record.__dict__.setdefault('clinic_id', get_clinic_id() or '-')
        return True


class SanitizedJSONFormatter(logging.Formatter):
    """
    JSON formatter that sanitizes sensitive fields.
    """

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'request_id': getattr(record, 'request_id', '-'),
            'session_id': getattr(record, 'session_id', '-'),
            'session_role': getattr(record, 'session_role', '-'),
        }

        # extra={} fields from the logging call
        for key, value in record.__dict__.items():
            if key in log_data or key.startswith('_') or key in _RESERVED_ATTRS:
                continue
            if key.lower() in SENSITIVE_FIELDS:
                log_data[key] = '[REDACTED]'
            else:
                log_data[key] = self._sanitize_value(value)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)

    def _sanitize_value(self, value):
        """Sanitize a value recursively."""
        if isinstance(value, dict):
            return {
                k: '[REDACTED]' if str(k).lower() in SENSITIVE_FIELDS else self._sanitize_value(v)
                for k, v in value.items()
            }
        elif isinstance(value, (list, tuple)):
            return [self._sanitize_value(v) for v in value]
        else:
            return value


def get_sanitized_logger(name):
    """
    Get a logger with correlation filter applied.

    Usage:
        logger = get_sanitized_logger(__name__)
        logger.info('Clinic created', extra={'event': 'clinic_created', 'clinic_id': clinic_id})
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationFilter) for f in logger.filters):
        logger.addFilter(CorrelationFilter())

    return logger


def sanitize_dict(data):
    """
    Return a copy of data with sensitive keys redacted, recursing into
    nested dicts and lists of dicts.
    """
    if not isinstance(data, dict):
        return data

    sanitized = {}
    for key, value in data.items():
        if str(key).lower() in SENSITIVE_FIELDS:
            sanitized[key] = '[REDACTED]'
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value)
        elif isinstance(value, (list, tuple)):
            sanitized[key] = [
                sanitize_dict(v) if isinstance(v, dict) else v
                for v in value
            ]
        else:
            sanitized[key] = value

    return sanitized
