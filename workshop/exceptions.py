"""Error taxonomy shared by the service layer and the API.

Services raise DRF exceptions so views stay thin; every error response
carries a stable ``kind`` next to the human readable ``detail``.
"""
from __future__ import annotations

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.views import exception_handler


class InvalidState(exceptions.APIException):
    """The record exists but is not in a state that allows the action."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "The requested action is not allowed in the current state."
    default_code = "invalid_state"


class PracticalScoreRequired(InvalidState):
    default_detail = "Practical score is required for this course."
    default_code = "practical_score_required"


class CertificateCollision(exceptions.APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Could not allocate a unique certificate number. Try again."
    default_code = "collision"


def error_kind(exc: Exception) -> str:
    if isinstance(exc, Http404):
        return exceptions.NotFound.default_code
    if isinstance(exc, DjangoPermissionDenied):
        return exceptions.PermissionDenied.default_code
    return getattr(exc, "default_code", "error")


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    detail = response.data
    if isinstance(detail, dict) and set(detail) == {"detail"}:
        detail = detail["detail"]
    response.data = {"kind": error_kind(exc), "detail": detail}
    return response
