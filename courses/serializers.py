from rest_framework import serializers

from .models import Course, Enrollment


class CourseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Course
        fields = [
            "id",
            "title",
            "code",
            "description",
            "category",
            "level",
            "status",
            "has_practical_session",
            "results_generated",
            "start_at",
            "end_at",
        ]
        read_only_fields = fields


class EnrollmentSerializer(serializers.ModelSerializer):
    course = CourseSerializer(read_only=True)
    student_name = serializers.CharField(read_only=True)
    has_certificate = serializers.SerializerMethodField()

    class Meta:
        model = Enrollment
        fields = [
            "id",
            "course",
            "student",
            "student_name",
            "verifier",
            "status",
            "theory_score",
            "practical_score",
            "final_score",
            "enrolled_at",
            "completed_at",
            "retake_of",
            "has_certificate",
        ]
        read_only_fields = fields

    def get_has_certificate(self, obj) -> bool:
        return hasattr(obj, "certificate")
