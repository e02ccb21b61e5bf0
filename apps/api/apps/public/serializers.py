"""
Serializers for the public patient page.

Only the patient's id and name leave the portal; phone and clinic stay
private.
"""
from rest_framework import serializers


class PublicPatientSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()


class PublicVideoSerializer(serializers.Serializer):
    id = serializers.CharField()
    file_name = serializers.CharField()
    uploaded_at = serializers.DateTimeField()
    url = serializers.CharField()


class ResolvedPatientSerializer(serializers.Serializer):
    patient = PublicPatientSerializer()
    videos = PublicVideoSerializer(many=True)
