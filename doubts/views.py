from rest_framework import generics, serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts import permissions as perms

from . import services as doubt_service
from .models import Doubt
from .serializers import DoubtSerializer


class CourseDoubtCreateView(APIView):
    permission_classes = [perms.capability_required(perms.ASK_DOUBT)]

    class InputSerializer(serializers.Serializer):
        message = serializers.CharField(max_length=5000)
        module_id = serializers.IntegerField(required=False, allow_null=True)
        attachments = serializers.ListField(
            child=serializers.URLField(), required=False, default=list, max_length=10
        )

    def post(self, request, course_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        doubt = doubt_service.create_doubt(
            request.user,
            course_id,
            serializer.validated_data["message"],
            module_id=serializer.validated_data.get("module_id"),
            attachments=serializer.validated_data["attachments"],
        )
        return Response(DoubtSerializer(doubt).data, status=status.HTTP_201_CREATED)


class DoubtListView(generics.ListAPIView):
    """Filterable by ``?course=<id>`` and ``?status=open|answered|closed``."""

    serializer_class = DoubtSerializer
    permission_classes = [perms.capability_required(perms.VIEW_OWN_RECORDS)]

    def get_queryset(self):
        course_id = self.request.query_params.get("course")
        status_filter = self.request.query_params.get("status")
        return doubt_service.doubts_for(
            self.request.user,
            course_id=int(course_id) if course_id and course_id.isdigit() else None,
            status=status_filter if status_filter in Doubt.Status.values else None,
        )


class DoubtAnswerView(APIView):
    permission_classes = [perms.capability_required(perms.REPLY_DOUBT)]

    class InputSerializer(serializers.Serializer):
        message = serializers.CharField(max_length=5000)

    def patch(self, request, doubt_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        doubt = doubt_service.answer_doubt(
            request.user, doubt_id, serializer.validated_data["message"]
        )
        return Response(DoubtSerializer(doubt).data)


class DoubtCloseView(APIView):
    permission_classes = [perms.capability_required(perms.REPLY_DOUBT)]

    def post(self, request, doubt_id: int, *args, **kwargs):
        doubt = doubt_service.close_doubt(request.user, doubt_id)
        return Response(DoubtSerializer(doubt).data)
