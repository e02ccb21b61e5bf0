"""
Video model - one uploaded ultrasound recording.
"""
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.core.identifiers import ID_MAX_LENGTH, new_id


class Video(models.Model):
    """
    Video belonging to exactly one patient.

    file_url holds the media handle: an object key owned by the configured
    media store, or an external http(s) URL. Empty means the upload never
    completed and the video is not ready for playback.
    """
    id = models.CharField(
        primary_key=True,
        max_length=ID_MAX_LENGTH,
        default=new_id,
        editable=False,
    )
    patient = models.ForeignKey(
        'patients.Patient',
        on_delete=models.PROTECT,
        related_name='videos',
    )
    file_name = models.CharField(_('File Name'), max_length=255)
    file_url = models.CharField(_('Media Handle'), max_length=1024, blank=True)
    content_type = models.CharField(_('Content Type'), max_length=100, blank=True)
    size_bytes = models.BigIntegerField(_('Size (bytes)'), null=True, blank=True)
    uploaded_at = models.DateTimeField(_('Uploaded At'))

    class Meta:
        db_table = 'video'
        ordering = ['-uploaded_at']
        indexes = [
            models.Index(fields=['patient', '-uploaded_at'], name='video_patient_8a41f2_idx'),
        ]
        verbose_name = _('Video')
        verbose_name_plural = _('Videos')

    def __str__(self):
        return self.file_name

    @property
    def is_ready(self):
        return bool(self.file_url)
