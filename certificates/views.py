from rest_framework import generics, permissions, serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts import permissions as perms
from courses.serializers import EnrollmentSerializer
from workshop.config import get_platform_config

from . import services as certificate_service
from .serializers import CertificateSerializer


class EnrollmentFinalizeView(APIView):
    """Verifier decision on an enrollment: pass (and certify) or fail."""

    permission_classes = [perms.capability_required(perms.FINALIZE_ENROLLMENT)]

    class InputSerializer(serializers.Serializer):
        passed = serializers.BooleanField()
        practical_score = serializers.FloatField(required=False, allow_null=True)

    def post(self, request, enrollment_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        enrollment, result = certificate_service.finalize_enrollment(
            request.user,
            enrollment_id,
            serializer.validated_data["passed"],
            serializer.validated_data.get("practical_score"),
            config=get_platform_config(),
        )
        data = {"enrollment": EnrollmentSerializer(enrollment).data, "certificate": None}
        if result is not None:
            data["certificate"] = CertificateSerializer(
                result.certificate, context={"request": request}
            ).data
        return Response(data)


class CertificateIssueView(APIView):
    permission_classes = [perms.capability_required(perms.ISSUE_CERTIFICATE)]

    class InputSerializer(serializers.Serializer):
        practical_score = serializers.FloatField(required=False, allow_null=True)

    def post(self, request, enrollment_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = certificate_service.issue_certificate(
            enrollment_id,
            serializer.validated_data.get("practical_score"),
            issued_by=request.user,
            config=get_platform_config(),
        )
        return Response(
            CertificateSerializer(result.certificate, context={"request": request}).data,
            status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
        )


class CertificateListView(generics.ListAPIView):
    serializer_class = CertificateSerializer
    permission_classes = [perms.capability_required(perms.VIEW_OWN_RECORDS)]

    def get_queryset(self):
        return certificate_service.certificates_for(self.request.user)


class CertificateRevokeView(APIView):
    permission_classes = [perms.capability_required(perms.REVOKE_CERTIFICATE)]

    def post(self, request, certificate_id: int, *args, **kwargs):
        certificate = certificate_service.revoke_certificate(request.user, certificate_id)
        return Response(CertificateSerializer(certificate, context={"request": request}).data)


class CertificateRenderPayloadView(APIView):
    """Data for external certificate renderers."""

    permission_classes = [perms.capability_required(perms.VIEW_OWN_RECORDS)]

    def get(self, request, certificate_id: int, *args, **kwargs):
        certificate = generics.get_object_or_404(
            certificate_service.certificates_for(request.user), pk=certificate_id
        )
        return Response(
            certificate_service.build_render_payload(
                certificate, config=get_platform_config()
            )
        )


class CertificateVerifyView(APIView):
    """Public verification by hash; no authentication required."""

    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def get(self, request, verification_hash: str, *args, **kwargs):
        result = certificate_service.verify_certificate(verification_hash)
        return Response(result)
