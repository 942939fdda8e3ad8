"""Student doubts and their discussion threads."""
from __future__ import annotations

import logging
from typing import Sequence

from django.db import transaction
from django.db.models import Q
from rest_framework import exceptions

from accounts.models import Role
from accounts.permissions import role_for
from courses.models import CourseModule, Enrollment
from courses.services import get_course_or_404
from workshop.exceptions import InvalidState

from .models import Doubt, DoubtReply

logger = logging.getLogger(__name__)


def _verifier_course_filter(user, prefix: str = "") -> Q:
    return Q(**{f"{prefix}verifiers": user}) | Q(**{f"{prefix}created_by": user})


@transaction.atomic
def create_doubt(
    user,
    course_id: int,
    message: str,
    *,
    module_id: int | None = None,
    attachments: Sequence[str] = (),
) -> Doubt:
    course = get_course_or_404(course_id)
    if not Enrollment.objects.filter(student=user, course=course).exists():
        raise exceptions.PermissionDenied("You are not enrolled in this course.")

    module = None
    if module_id is not None:
        module = CourseModule.objects.filter(pk=module_id, course=course).first()
        if module is None:
            raise exceptions.ValidationError(
                {"module_id": "Module does not belong to this course."}
            )

    doubt = Doubt.objects.create(
        course=course,
        module=module,
        student=user,
        message=message.strip(),
        attachments=list(attachments),
    )
    logger.info("User %s raised doubt %s in course %s", user.pk, doubt.pk, course.code)
    return doubt


def doubts_for(user, *, course_id: int | None = None, status: str | None = None):
    """Own doubts for students, doubts of their courses for verifiers, all for admins."""
    queryset = Doubt.objects.select_related("course", "module", "student").prefetch_related(
        "replies__responder"
    )
    role = role_for(user)
    if role == Role.STUDENT:
        queryset = queryset.filter(student=user)
    elif role == Role.VERIFIER:
        queryset = queryset.filter(_verifier_course_filter(user, "course__")).distinct()
    if course_id is not None:
        queryset = queryset.filter(course_id=course_id)
    if status:
        queryset = queryset.filter(status=status)
    return queryset


def _ensure_participant(user, doubt: Doubt) -> None:
    role = role_for(user)
    if role == Role.ADMIN or doubt.student_id == user.pk:
        return
    if role == Role.VERIFIER and (
        doubt.course.verifiers.filter(pk=user.pk).exists()
        or doubt.course.created_by_id == user.pk
    ):
        return
    raise exceptions.PermissionDenied("Access denied")


def _get_doubt_for_update(doubt_id: int) -> Doubt:
    try:
        return Doubt.objects.select_for_update().select_related("course").get(pk=doubt_id)
    except Doubt.DoesNotExist as exc:
        raise exceptions.NotFound("Doubt not found") from exc


@transaction.atomic
def answer_doubt(user, doubt_id: int, message: str) -> Doubt:
    """Append a reply; an open doubt becomes answered once someone else replies."""
    doubt = _get_doubt_for_update(doubt_id)

    _ensure_participant(user, doubt)
    if doubt.status == Doubt.Status.CLOSED:
        raise InvalidState("This doubt is closed.")

    DoubtReply.objects.create(doubt=doubt, responder=user, message=message.strip())
    if doubt.status == Doubt.Status.OPEN and doubt.student_id != user.pk:
        doubt.status = Doubt.Status.ANSWERED
    doubt.save(update_fields=["status", "updated_at"])
    return doubt


@transaction.atomic
def close_doubt(user, doubt_id: int) -> Doubt:
    doubt = _get_doubt_for_update(doubt_id)
    _ensure_participant(user, doubt)
    if doubt.status != Doubt.Status.CLOSED:
        doubt.status = Doubt.Status.CLOSED
        doubt.save(update_fields=["status", "updated_at"])
        logger.info("Doubt %s closed by %s", doubt.pk, user.pk)
    return doubt
