"""Verifier onboarding.

Anyone may apply to become a verifier.  An admin accepting the request
creates (or promotes) the account and receives a one-time password to hand
over; the password itself is never stored in clear text.
"""
from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.crypto import get_random_string
from rest_framework import exceptions

from workshop.config import PlatformConfig
from workshop.exceptions import InvalidState

from .models import Role, UserProfile, VerifierRequest

logger = logging.getLogger(__name__)

PASSWORD_LENGTH = 12
PASSWORD_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789!@#$%"


def create_verifier_request(
    *, name: str, email: str, college: str, phone: str = "", config: PlatformConfig
) -> VerifierRequest:
    email = email.strip().lower()
    if not config.is_allowed_email(email):
        raise exceptions.ValidationError({"email": "Only college email addresses are allowed."})
    if VerifierRequest.objects.filter(email=email).exists():
        raise InvalidState("A request with this email already exists.")

    try:
        with transaction.atomic():
            request = VerifierRequest.objects.create(
                name=name.strip(),
                email=email,
                phone=phone.strip(),
                college=college.strip(),
            )
    except IntegrityError as exc:
        raise InvalidState("A request with this email already exists.") from exc

    logger.info("Verifier request %s submitted for %s", request.pk, email)
    return request


def verifier_requests(*, status: str | None = None):
    queryset = VerifierRequest.objects.select_related("processed_by")
    if status:
        queryset = queryset.filter(status=status)
    return queryset


def _get_request_for_update(request_id: int) -> VerifierRequest:
    try:
        return VerifierRequest.objects.select_for_update().get(pk=request_id)
    except VerifierRequest.DoesNotExist as exc:
        raise exceptions.NotFound("Request not found") from exc


def _mark_processed(request: VerifierRequest, status: str, admin) -> None:
    request.status = status
    request.processed_by = admin
    request.processed_at = timezone.now()


@transaction.atomic
def accept_verifier_request(admin, request_id: int) -> tuple[VerifierRequest, str]:
    """Return the accepted request and the generated password."""
    request = _get_request_for_update(request_id)
    if request.status == VerifierRequest.Status.ACCEPTED:
        raise InvalidState("Request already accepted.")

    password = get_random_string(PASSWORD_LENGTH, allowed_chars=PASSWORD_CHARS)
    first_name, _, last_name = request.name.partition(" ")

    User = get_user_model()
    user = User.objects.filter(email__iexact=request.email).first()
    if user is None:
        user = User.objects.create_user(
            username=request.email,
            email=request.email,
            password=password,
            first_name=first_name[:150],
            last_name=last_name.strip()[:150],
        )
    else:
        user.set_password(password)
        user.first_name = first_name[:150]
        user.last_name = last_name.strip()[:150]
        user.save(update_fields=["password", "first_name", "last_name"])

    UserProfile.objects.update_or_create(
        user=user,
        defaults={"role": Role.VERIFIER, "college": request.college, "mobile": request.phone},
    )

    request.user = user
    _mark_processed(request, VerifierRequest.Status.ACCEPTED, admin)
    request.save()
    logger.info("Verifier request %s accepted by %s", request.pk, admin.pk)
    return request, password


@transaction.atomic
def reject_verifier_request(admin, request_id: int) -> VerifierRequest:
    request = _get_request_for_update(request_id)
    if request.status == VerifierRequest.Status.ACCEPTED:
        raise InvalidState("An accepted request cannot be rejected.")

    _mark_processed(request, VerifierRequest.Status.REJECTED, admin)
    request.save()
    logger.info("Verifier request %s rejected by %s", request.pk, admin.pk)
    return request
