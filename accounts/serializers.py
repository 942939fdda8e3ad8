from rest_framework import serializers

from .models import VerifierRequest


class VerifierRequestSerializer(serializers.ModelSerializer):
    class Meta:
        model = VerifierRequest
        fields = [
            "id",
            "name",
            "email",
            "phone",
            "college",
            "status",
            "user",
            "processed_by",
            "processed_at",
            "created_at",
        ]
        read_only_fields = fields
