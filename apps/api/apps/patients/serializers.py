"""
Patient serializers.
"""
from rest_framework import serializers


class PatientSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    clinic_id = serializers.CharField(read_only=True)
    name = serializers.CharField(read_only=True)
    phone = serializers.CharField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    public_link = serializers.CharField(read_only=True)
    has_public_link = serializers.SerializerMethodField()

    def get_has_public_link(self, obj):
        return bool(obj.get('public_link'))


class PatientCreateSerializer(serializers.Serializer):
    """
    Input for POST /api/v1/patients/.

    clinic_id is required for admins; clinic sessions default to their own
    clinic.
    """
    clinic_id = serializers.CharField(max_length=64, required=False)
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')


class PublicLinkSerializer(serializers.Serializer):
    public_url = serializers.CharField()
    legacy_public_url = serializers.CharField()
    qr_code_url = serializers.CharField()
