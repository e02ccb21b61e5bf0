"""
Video serializers.

The raw media handle stays server-side; clients get playback URLs from the
play endpoint.
"""
from rest_framework import serializers


class VideoSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    patient_id = serializers.CharField(read_only=True)
    file_name = serializers.CharField(read_only=True)
    content_type = serializers.CharField(read_only=True)
    size_bytes = serializers.IntegerField(read_only=True, allow_null=True)
    uploaded_at = serializers.DateTimeField(read_only=True)
    is_ready = serializers.SerializerMethodField()

    def get_is_ready(self, obj):
        return bool(obj.get('file_url'))


class PlaybackSerializer(serializers.Serializer):
    url = serializers.CharField()


class ClinicVideoSerializer(VideoSerializer):
    patient_name = serializers.CharField(read_only=True)
