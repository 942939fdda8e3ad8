from rest_framework import serializers

from .models import Assignment, Question, Submission, SubmissionAnswer


class QuestionSerializer(serializers.ModelSerializer):
    """Question as shown to a student; reference data is never exposed."""

    class Meta:
        model = Question
        fields = ["id", "position", "q_type", "prompt", "options", "max_marks"]
        read_only_fields = fields


class AssignmentSerializer(serializers.ModelSerializer):
    questions = QuestionSerializer(many=True, read_only=True)
    max_score = serializers.FloatField(read_only=True)

    class Meta:
        model = Assignment
        fields = [
            "id",
            "course",
            "module",
            "type",
            "title",
            "description",
            "time_limit_minutes",
            "max_tab_switches",
            "allow_copy_paste",
            "max_score",
            "questions",
        ]
        read_only_fields = fields


class AnswerInputSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    selected_option_index = serializers.IntegerField(required=False, allow_null=True)
    answer_text = serializers.CharField(required=False, allow_blank=True, default="")
    code_url = serializers.URLField(required=False, allow_blank=True, default="", max_length=500)


class SubmissionAnswerSerializer(serializers.ModelSerializer):
    class Meta:
        model = SubmissionAnswer
        fields = ["question_id", "selected_option_index", "answer_text", "code_url"]
        read_only_fields = fields


class SubmissionSerializer(serializers.ModelSerializer):
    flags = serializers.DictField(read_only=True)
    answers = SubmissionAnswerSerializer(many=True, read_only=True)

    class Meta:
        model = Submission
        fields = [
            "id",
            "assignment",
            "course",
            "enrollment",
            "student",
            "status",
            "started_at",
            "submitted_at",
            "auto_score",
            "manual_score",
            "total_score",
            "flags",
            "rejection_reason",
            "evaluated_by",
            "evaluated_at",
            "answers",
        ]
        read_only_fields = fields
