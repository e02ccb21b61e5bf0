"""
Portal error taxonomy.

Services raise these; the DRF exception handler in apps.core.exceptions turns
them into HTTP responses. Every error carries a stable machine code.
"""


class PortalError(Exception):
    """Base class for all expected portal failures."""
    code = 'portal_error'
    status_code = 400
    default_message = 'Request failed.'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    @property
    def message(self):
        return str(self)

    def details(self):
        """Extra fields rendered next to the message (no PHI)."""
        return None


class RecordNotFound(PortalError):
    code = 'not_found'
    status_code = 404

    def __init__(self, kind, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f'{kind} {record_id} not found')

    def details(self):
        return {'kind': self.kind, 'id': self.record_id}


class InvalidIdFormat(PortalError):
    code = 'invalid_id_format'
    status_code = 400

    def __init__(self, value, kind=None):
        self.value = value
        self.kind = kind
        super().__init__('Malformed identifier.')


class ParentNotFound(PortalError):
    """Foreign key does not resolve at create time."""
    code = 'parent_not_found'
    status_code = 400
    parent_kind = None

    def __init__(self, parent_id):
        self.parent_id = parent_id
        super().__init__(f'{self.parent_kind} {parent_id} does not exist')

    def details(self):
        return {'parent_kind': self.parent_kind, 'parent_id': self.parent_id}


class ClinicNotFound(ParentNotFound):
    code = 'clinic_not_found'
    parent_kind = 'clinic'


class PatientNotFound(ParentNotFound):
    code = 'patient_not_found'
    parent_kind = 'patient'


class BackendUnavailable(PortalError):
    code = 'backend_unavailable'
    status_code = 503

    def __init__(self, backend, operation, reason=None):
        self.backend = backend
        self.operation = operation
        self.reason = reason
        super().__init__(f'{backend} unavailable during {operation}')

    def details(self):
        return {'backend': self.backend, 'operation': self.operation}


class PartialDeletion(PortalError):
    """
    A cascade stopped part way. Re-running the same delete is safe and
    finishes the job once the failing backend is back.
    """
    code = 'partial_deletion'
    status_code = 409

    def __init__(self, kind, record_id, failures):
        self.kind = kind
        self.record_id = record_id
        self.failures = list(failures)
        super().__init__(
            f'Deletion of {kind} {record_id} is incomplete ({len(self.failures)} failed steps); retry the deletion.'
        )

    def details(self):
        return {
            'kind': self.kind,
            'id': self.record_id,
            'retriable': True,
            'failed_steps': self.failures,
        }


class DuplicateId(PortalError):
    code = 'duplicate_id'
    status_code = 409

    def __init__(self, kind, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f'{kind} {record_id} already exists')


class LoginEmailTaken(PortalError):
    code = 'login_email_taken'
    status_code = 409
    default_message = 'A clinic with this login email already exists.'


class MediaReleased(PortalError):
    """The media handle was released; it must not be served again."""
    code = 'media_released'
    status_code = 410
    default_message = 'This video is no longer available.'


class AccessDenied(PortalError):
    code = 'permission_denied'
    status_code = 403
    default_message = 'You do not have permission to perform this action.'


class InvalidCredentials(PortalError):
    code = 'invalid_credentials'
    status_code = 401
    default_message = 'Incorrect email or password.'


class InvalidUpload(PortalError):
    code = 'invalid_upload'
    status_code = 400


class MediaNotReady(PortalError):
    """The video record exists but its upload never produced a media handle."""
    code = 'media_not_ready'
    status_code = 409
    default_message = 'This video is not ready for playback.'
