from rest_framework import generics, serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts import permissions as perms

from . import services as submission_service
from .serializers import AnswerInputSerializer, AssignmentSerializer, SubmissionSerializer


class AssignmentDetailView(APIView):
    permission_classes = [perms.capability_required(perms.VIEW_OWN_RECORDS)]

    def get(self, request, assignment_id: int, *args, **kwargs):
        assignment = submission_service.get_assignment_for(request.user, assignment_id)
        return Response(AssignmentSerializer(assignment).data)


class AssignmentStartView(APIView):
    """Open an attempt; the server clock starts here."""

    permission_classes = [perms.capability_required(perms.SUBMIT_ASSIGNMENT)]

    def post(self, request, assignment_id: int, *args, **kwargs):
        submission, created = submission_service.start_submission(request.user, assignment_id)
        return Response(
            SubmissionSerializer(submission).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class AssignmentSubmitView(APIView):
    permission_classes = [perms.capability_required(perms.SUBMIT_ASSIGNMENT)]

    class InputSerializer(serializers.Serializer):
        answers = AnswerInputSerializer(many=True)
        tab_switch_count = serializers.IntegerField(min_value=0, default=0)

    def post(self, request, assignment_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        submission = submission_service.submit_assignment(
            request.user,
            assignment_id,
            serializer.validated_data["answers"],
            serializer.validated_data["tab_switch_count"],
        )
        return Response(SubmissionSerializer(submission).data)


class TheoryEvaluateView(APIView):
    """Verifier confirms, corrects, or rejects a theory submission."""

    permission_classes = [perms.capability_required(perms.EVALUATE_SUBMISSION)]

    class InputSerializer(serializers.Serializer):
        auto_score = serializers.FloatField(required=False, allow_null=True)
        reject = serializers.BooleanField(default=False)
        rejection_reason = serializers.CharField(required=False, allow_blank=True, default="")
        override = serializers.BooleanField(default=False)

    def patch(self, request, submission_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        submission = submission_service.evaluate_theory(
            request.user,
            submission_id,
            auto_score_override=data.get("auto_score"),
            reject=data["reject"],
            rejection_reason=data["rejection_reason"],
            override=data["override"],
        )
        return Response(SubmissionSerializer(submission).data)


class PracticalEvaluateView(APIView):
    permission_classes = [perms.capability_required(perms.EVALUATE_SUBMISSION)]

    class InputSerializer(serializers.Serializer):
        manual_score = serializers.FloatField()
        override = serializers.BooleanField(default=False)

    def patch(self, request, submission_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        submission = submission_service.evaluate_practical(
            request.user,
            submission_id,
            serializer.validated_data["manual_score"],
            override=serializer.validated_data["override"],
        )
        return Response(SubmissionSerializer(submission).data)


class SubmissionListView(generics.ListAPIView):
    serializer_class = SubmissionSerializer
    permission_classes = [perms.capability_required(perms.VIEW_OWN_RECORDS)]

    def get_queryset(self):
        enrollment_id = self.request.query_params.get("enrollment")
        return submission_service.submissions_for(
            self.request.user,
            enrollment_id=int(enrollment_id) if enrollment_id and enrollment_id.isdigit() else None,
        ).prefetch_related("answers")
