from rest_framework import permissions, serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from workshop.config import get_platform_config

from . import permissions as perms
from . import services as account_service
from .models import VerifierRequest
from .serializers import VerifierRequestSerializer


class VerifierRequestListCreateView(APIView):
    """Public application form (POST) and the admin review queue (GET)."""

    class InputSerializer(serializers.Serializer):
        name = serializers.CharField(max_length=255)
        email = serializers.EmailField()
        college = serializers.CharField(max_length=255)
        phone = serializers.RegexField(
            r"^\+?\d{7,15}$", max_length=32, required=False, allow_blank=True, default=""
        )

    def get_permissions(self):
        if self.request.method == "POST":
            return [permissions.AllowAny()]
        return [perms.capability_required(perms.MANAGE_VERIFIERS)()]

    def get(self, request, *args, **kwargs):
        status_filter = request.query_params.get("status")
        queryset = account_service.verifier_requests(
            status=status_filter if status_filter in VerifierRequest.Status.values else None
        )
        return Response(VerifierRequestSerializer(queryset, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        verifier_request = account_service.create_verifier_request(
            config=get_platform_config(), **serializer.validated_data
        )
        return Response(
            VerifierRequestSerializer(verifier_request).data, status=status.HTTP_201_CREATED
        )


class VerifierRequestAcceptView(APIView):
    permission_classes = [perms.capability_required(perms.MANAGE_VERIFIERS)]

    def post(self, request, request_id: int, *args, **kwargs):
        verifier_request, password = account_service.accept_verifier_request(
            request.user, request_id
        )
        data = VerifierRequestSerializer(verifier_request).data
        data["password"] = password
        return Response(data)


class VerifierRequestRejectView(APIView):
    permission_classes = [perms.capability_required(perms.MANAGE_VERIFIERS)]

    def post(self, request, request_id: int, *args, **kwargs):
        verifier_request = account_service.reject_verifier_request(request.user, request_id)
        return Response(VerifierRequestSerializer(verifier_request).data)
