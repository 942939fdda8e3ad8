from rest_framework import generics, serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts import permissions as perms
from assessments import scoring
from workshop.config import get_platform_config

from . import analytics
from . import services as course_service
from .models import Course
from .serializers import CourseSerializer, EnrollmentSerializer


class CourseListView(generics.ListAPIView):
    serializer_class = CourseSerializer
    queryset = Course.objects.filter(status=Course.Status.PUBLISHED)


class CourseEnrollView(APIView):
    permission_classes = [perms.capability_required(perms.ENROLL)]

    class InputSerializer(serializers.Serializer):
        name = serializers.CharField(max_length=255)
        email = serializers.EmailField()
        class_year = serializers.CharField(max_length=32)
        college = serializers.CharField(max_length=255)
        mobile = serializers.RegexField(r"^\+?\d{7,15}$", max_length=32)
        verifier_id = serializers.IntegerField(required=False, allow_null=True)

    def post(self, request, course_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        enrollment = course_service.enroll_student(
            request.user,
            course_id,
            config=get_platform_config(),
            **serializer.validated_data,
        )
        return Response(EnrollmentSerializer(enrollment).data, status=status.HTTP_201_CREATED)


class EnrollmentListView(generics.ListAPIView):
    """Own enrollments for students, assigned ones for verifiers, all for admins."""

    serializer_class = EnrollmentSerializer
    permission_classes = [perms.capability_required(perms.VIEW_OWN_RECORDS)]

    def get_queryset(self):
        return course_service.enrollments_for(self.request.user).select_related("certificate")


class CourseResultsView(APIView):
    """Recompute every completed enrollment of a course."""

    permission_classes = [perms.capability_required(perms.GENERATE_RESULTS)]

    def post(self, request, course_id: int, *args, **kwargs):
        report = scoring.generate_course_results(course_id, user=request.user)
        return Response(
            {
                "course_id": report.course_id,
                "succeeded": report.succeeded,
                "failed": report.failed,
            },
            status=status.HTTP_200_OK if report.ok else status.HTTP_207_MULTI_STATUS,
        )


class AnalyticsOverviewView(APIView):
    permission_classes = [perms.capability_required(perms.VIEW_ANALYTICS)]

    def get(self, request, *args, **kwargs):
        return Response(analytics.overview())


class CourseAnalyticsView(APIView):
    permission_classes = [perms.capability_required(perms.VIEW_ANALYTICS)]

    def get(self, request, *args, **kwargs):
        return Response(analytics.course_analytics())


class CourseResultsSummaryView(APIView):
    permission_classes = [perms.capability_required(perms.VIEW_ANALYTICS)]

    def get(self, request, course_id: int, *args, **kwargs):
        course = course_service.get_course_or_404(course_id)
        return Response(analytics.course_results_summary(course))


class CollegeAnalyticsView(APIView):
    permission_classes = [perms.capability_required(perms.VIEW_ANALYTICS)]

    def get(self, request, *args, **kwargs):
        return Response(analytics.college_analytics())
