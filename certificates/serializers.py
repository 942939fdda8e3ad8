from rest_framework import serializers

from .models import Certificate


class CertificateSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source="enrollment.student_name", read_only=True)
    course_title = serializers.CharField(source="course.title", read_only=True)
    document_url = serializers.SerializerMethodField()

    class Meta:
        model = Certificate
        fields = [
            "id",
            "enrollment",
            "student",
            "student_name",
            "course",
            "course_title",
            "certificate_number",
            "verification_hash",
            "theory_score",
            "practical_score",
            "total_score",
            "grade",
            "status",
            "issue_date",
            "revoked_at",
            "document_url",
        ]
        read_only_fields = fields

    def get_document_url(self, obj):
        if not obj.document:
            return None
        url = obj.document.url
        request = self.context.get("request")
        if request is not None and url.startswith("/"):
            return request.build_absolute_uri(url)
        return url
