from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from rest_framework import exceptions

from accounts.models import Role, UserProfile
from accounts.permissions import role_for
from workshop.config import PlatformConfig
from workshop.exceptions import InvalidState

from .models import Course, Enrollment

logger = logging.getLogger(__name__)


def get_course_or_404(course_id: int) -> Course:
    try:
        return Course.objects.get(pk=course_id)
    except Course.DoesNotExist as exc:
        raise exceptions.NotFound("Course not found") from exc


def _resolve_verifier(course: Course, verifier_id: int | None):
    if verifier_id is None:
        return None

    course_verifiers = course.verifiers.all()
    if course_verifiers.exists():
        verifier = course_verifiers.filter(pk=verifier_id).first()
        if verifier is None:
            raise exceptions.ValidationError(
                {"verifier_id": "Selected verifier is not assigned to this course."}
            )
        return verifier

    verifier = get_user_model().objects.filter(pk=verifier_id).first()
    if verifier is None or role_for(verifier) not in (Role.VERIFIER, Role.ADMIN):
        raise exceptions.ValidationError({"verifier_id": "Selected user is not a verifier."})
    return verifier


@transaction.atomic
def enroll_student(
    user,
    course_id: int,
    *,
    name: str,
    email: str,
    class_year: str,
    college: str,
    mobile: str,
    verifier_id: int | None = None,
    config: PlatformConfig,
) -> Enrollment:
    """Enroll ``user`` into a published course and snapshot their details."""
    course = get_course_or_404(course_id)
    if not course.is_open_for_enrollment:
        raise InvalidState("This course is not open for enrollment.")

    if Enrollment.objects.filter(course=course, student=user).exists():
        raise InvalidState("You are already enrolled in this course.")

    email = (email or "").strip().lower()
    if email != (user.email or "").strip().lower():
        raise exceptions.ValidationError(
            {"email": "Email must match the email of your account."}
        )
    if not config.is_allowed_email(email):
        raise exceptions.ValidationError(
            {"email": "Only college email addresses are allowed."}
        )

    verifier = _resolve_verifier(course, verifier_id)
    snapshot = {
        "name": name.strip(),
        "email": email,
        "class_year": class_year,
        "college": college,
        "mobile": mobile,
    }

    try:
        with transaction.atomic():
            enrollment = Enrollment.objects.create(
                course=course,
                student=user,
                verifier=verifier,
                profile_snapshot=snapshot,
            )
    except IntegrityError as exc:
        raise InvalidState("You are already enrolled in this course.") from exc

    UserProfile.objects.update_or_create(
        user=user,
        defaults={"college": college, "class_year": class_year, "mobile": mobile},
    )
    logger.info("User %s enrolled in course %s", user.pk, course.code)
    return enrollment


def enrollments_for(user):
    """Enrollments visible to ``user``."""
    queryset = Enrollment.objects.select_related("course", "student", "verifier").order_by(
        "-enrolled_at"
    )
    role = role_for(user)
    if role == Role.STUDENT:
        return queryset.filter(student=user)
    if role == Role.VERIFIER:
        return queryset.filter(verifier=user)
    return queryset
