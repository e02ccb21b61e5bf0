"""
Public link building.

Pure string functions; the QR image itself is rendered by an external
image endpoint addressed with the public URL.
"""
from urllib.parse import urlencode

from django.conf import settings


def _origin(origin=None):
    return (origin or settings.PORTAL_PUBLIC_ORIGIN).rstrip('/')


def public_url(patient_id, origin=None):
    """<origin>/patient/<patient_id>"""
    return f'{_origin(origin)}/patient/{patient_id}'


def legacy_public_url(patient_id, origin=None):
    """Path handed out by the first generation of QR codes."""
    return f'{_origin(origin)}/patient/{patient_id}/videos'


def qr_code_url(url, size=300):
    query = urlencode({'size': f'{size}x{size}', 'data': url})
    return f'{settings.PORTAL_QR_ENDPOINT}?{query}'
