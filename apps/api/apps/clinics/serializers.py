"""
Clinic serializers.

Login secrets are write-only and leave the service layer already hashed;
no serializer ever returns them.
"""
from rest_framework import serializers


class ClinicSerializer(serializers.Serializer):
    """Read shape of a clinic record."""
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    address = serializers.CharField(read_only=True)
    city = serializers.CharField(read_only=True)
    login_email = serializers.EmailField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)


class ClinicCreateSerializer(serializers.Serializer):
    """Input for POST /api/v1/clinics/."""
    name = serializers.CharField(max_length=255)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    city = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    login_email = serializers.EmailField()
    password = serializers.CharField(min_length=6, max_length=128, write_only=True, trim_whitespace=False)


class ClinicStatsSerializer(serializers.Serializer):
    patient_count = serializers.IntegerField()
    video_count = serializers.IntegerField()
