"""
Upload validation for ultrasound videos.
"""
import os

from django.conf import settings

from apps.core.errors import InvalidUpload

ALLOWED_VIDEO_EXTENSIONS = ['mp4', 'mov', 'm4v', 'webm', 'avi']
ALLOWED_VIDEO_MIME_PREFIX = 'video/'


def validate_video_upload(file_obj, file_name, content_type):
    """Raise InvalidUpload unless file_obj looks like an acceptable video."""
    if file_obj is None:
        raise InvalidUpload('file is required')

    if not file_obj.size:
        raise InvalidUpload('Uploaded file is empty.')

    max_size = settings.PORTAL_MAX_VIDEO_SIZE_BYTES
    if file_obj.size > max_size:
        raise InvalidUpload(f'File size exceeds maximum of {max_size // (1024 * 1024)}MB')

    extension = os.path.splitext(file_name or '')[1].lower().lstrip('.')
    if extension not in ALLOWED_VIDEO_EXTENSIONS:
        raise InvalidUpload(f'Invalid file type. Allowed: {", ".join(ALLOWED_VIDEO_EXTENSIONS)}')

    if not (content_type or '').startswith(ALLOWED_VIDEO_MIME_PREFIX):
        raise InvalidUpload('Invalid MIME type. Expected a video/* upload.')
