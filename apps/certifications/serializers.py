from rest_framework import serializers


class GenerateHashSerializer(serializers.Serializer):
    file_content = serializers.CharField()
    skill_name = serializers.CharField(max_length=100)


class CertifySerializer(serializers.Serializer):
    skill_name = serializers.CharField(max_length=100)
    certificate_hash = serializers.CharField(max_length=128)
    address = serializers.CharField(max_length=42, required=False, allow_blank=True, default='')


class BatchCertifySerializer(serializers.Serializer):
    certifications = serializers.ListField(child=serializers.DictField(), allow_empty=False)
