from rest_framework import serializers

from .models import Doubt, DoubtReply


class DoubtReplySerializer(serializers.ModelSerializer):
    responder_name = serializers.SerializerMethodField()

    class Meta:
        model = DoubtReply
        fields = ["id", "responder", "responder_name", "message", "created_at"]
        read_only_fields = fields

    def get_responder_name(self, obj) -> str:
        return obj.responder.get_full_name() or obj.responder.username


class DoubtSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source="course.title", read_only=True)
    module_title = serializers.CharField(source="module.title", read_only=True, default=None)
    replies = DoubtReplySerializer(many=True, read_only=True)

    class Meta:
        model = Doubt
        fields = [
            "id",
            "course",
            "course_title",
            "module",
            "module_title",
            "student",
            "message",
            "attachments",
            "status",
            "replies",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
