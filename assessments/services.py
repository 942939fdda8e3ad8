"""Submission lifecycle: start, submit, and verifier evaluation.

Views call these helpers after the role check; ownership and assignment of
the verifier are enforced here.  Every transition that leaves a submission
``evaluated`` triggers a recompute of the owning enrollment.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from django.db import transaction
from django.utils import timezone
from rest_framework import exceptions

from accounts.models import Role
from accounts.permissions import ensure_assigned_verifier, ensure_owner, role_for
from courses.models import Enrollment
from workshop.exceptions import InvalidState

from . import grading, scoring
from .models import Assignment, Question, Submission, SubmissionAnswer

logger = logging.getLogger(__name__)


def _get_assignment(assignment_id: int) -> Assignment:
    try:
        return Assignment.objects.select_related("course").get(pk=assignment_id)
    except Assignment.DoesNotExist as exc:
        raise exceptions.NotFound("Assignment not found") from exc


def _get_submission_for_update(submission_id: int) -> Submission:
    try:
        return (
            Submission.objects.select_for_update()
            .select_related("assignment", "enrollment")
            .get(pk=submission_id)
        )
    except Submission.DoesNotExist as exc:
        raise exceptions.NotFound("Submission not found") from exc


def get_assignment_for(user, assignment_id: int) -> Assignment:
    """Return the assignment if ``user`` may see its questions."""
    assignment = _get_assignment(assignment_id)
    role = role_for(user)
    if role == Role.STUDENT:
        _get_enrollment(user, assignment)
    elif role == Role.VERIFIER and not assignment.course.verifiers.filter(pk=user.pk).exists():
        raise exceptions.PermissionDenied("Access denied. You are not a verifier of this course.")
    return assignment


def _get_enrollment(user, assignment: Assignment) -> Enrollment:
    enrollment = Enrollment.objects.filter(
        student=user, course_id=assignment.course_id
    ).first()
    if enrollment is None:
        raise exceptions.PermissionDenied("You are not enrolled in this course.")
    return enrollment


@transaction.atomic
def start_submission(user, assignment_id: int) -> tuple[Submission, bool]:
    """Return ``(submission, created)`` for the caller's attempt."""
    assignment = _get_assignment(assignment_id)
    enrollment = _get_enrollment(user, assignment)

    submission, created = Submission.objects.get_or_create(
        student=user,
        assignment=assignment,
        defaults={
            "course_id": assignment.course_id,
            "enrollment": enrollment,
            "started_at": timezone.now(),
        },
    )
    if created:
        logger.info("User %s started assignment %s", user.pk, assignment.pk)
    return submission, created


def _elapsed_minutes(submission: Submission, now) -> float:
    return max(0.0, (now - submission.started_at).total_seconds() / 60)


def _validate_answers(assignment: Assignment, answers: Sequence[Mapping[str, Any]]) -> None:
    questions_by_id = {
        question.id: question for question in assignment.questions.all()
    }
    errors = {}
    seen = set()
    for index, answer in enumerate(answers):
        question_id = answer.get("question_id")
        if question_id in seen:
            errors[str(index)] = "Question answered more than once."
            continue
        seen.add(question_id)

        question = questions_by_id.get(question_id)
        selected = answer.get("selected_option_index")
        if question is None or selected is None or question.q_type != Question.Kind.MCQ:
            continue
        if not 0 <= selected < len(question.options or []):
            errors[str(index)] = "Selected option is out of range."
    if errors:
        raise exceptions.ValidationError({"answers": errors})


@transaction.atomic
def submit_assignment(
    user,
    assignment_id: int,
    answers: Sequence[Mapping[str, Any]],
    tab_switch_count: int = 0,
) -> Submission:
    assignment = _get_assignment(assignment_id)
    try:
        submission = (
            Submission.objects.select_for_update()
            .get(student=user, assignment=assignment)
        )
    except Submission.DoesNotExist as exc:
        raise InvalidState("Start the assignment before submitting it.") from exc

    ensure_owner(user, submission.student_id)
    if submission.is_submitted:
        raise InvalidState("This assignment has already been submitted.")

    _validate_answers(assignment, answers)

    now = timezone.now()
    questions = list(assignment.questions.all())
    result = grading.evaluate_submission(
        assignment,
        answers,
        tab_switch_count,
        _elapsed_minutes(submission, now),
        questions=questions,
    )

    SubmissionAnswer.objects.bulk_create(
        [
            SubmissionAnswer(
                submission=submission,
                question_id=answer["question_id"],
                selected_option_index=answer.get("selected_option_index"),
                answer_text=answer.get("answer_text") or "",
                code_url=answer.get("code_url") or "",
            )
            for answer in answers
        ]
    )

    submission.submitted_at = now
    submission.auto_score = result.auto_score
    submission.total_score = result.total_score
    submission.status = result.status
    submission.tab_switch_count = result.tab_switch_count
    submission.time_exceeded = result.time_exceeded
    submission.cheating_suspected = result.cheating_suspected
    if result.cheating_suspected:
        submission.rejection_reason = "Automatically rejected: suspected cheating."
    submission.save()

    if result.cheating_suspected:
        logger.warning(
            "Submission %s rejected: tabs=%s time_exceeded=%s",
            submission.pk,
            result.tab_switch_count,
            result.time_exceeded,
        )
    else:
        scoring.recompute_enrollment_scores(submission.enrollment_id)
    return submission


def _mark_evaluated_by(submission: Submission, user) -> None:
    submission.evaluated_by = user
    submission.evaluated_at = timezone.now()


@transaction.atomic
def evaluate_theory(
    user,
    submission_id: int,
    *,
    auto_score_override: float | None = None,
    reject: bool = False,
    rejection_reason: str = "",
    override: bool = False,
) -> Submission:
    """Confirm, adjust, or reject a theory submission."""
    submission = _get_submission_for_update(submission_id)
    ensure_assigned_verifier(user, submission.enrollment.verifier_id)

    if submission.assignment.type != Assignment.Type.THEORY:
        raise InvalidState("Only theory submissions can be evaluated here.")
    if not submission.is_submitted:
        raise InvalidState("Submission has not been submitted yet.")

    if reject:
        submission.status = Submission.Status.REJECTED
        submission.rejection_reason = rejection_reason or "Rejected by verifier."
        _mark_evaluated_by(submission, user)
        submission.save()
        logger.info("Submission %s rejected by %s", submission.pk, user.pk)
        scoring.recompute_enrollment_scores(submission.enrollment_id)
        return submission

    if submission.status == Submission.Status.REJECTED and not override:
        raise InvalidState(
            "Submission was rejected; an explicit override is required to evaluate it."
        )

    if auto_score_override is not None:
        ceiling = max(0.0, submission.assignment.max_score - float(submission.manual_score))
        if auto_score_override < 0 or auto_score_override > ceiling:
            raise exceptions.ValidationError(
                {"auto_score": f"Score must be between 0 and {ceiling:g}."}
            )
        submission.auto_score = float(auto_score_override)

    submission.total_score = float(submission.auto_score) + float(submission.manual_score)
    submission.status = Submission.Status.EVALUATED
    if override:
        submission.rejection_reason = ""
    _mark_evaluated_by(submission, user)
    submission.save()

    scoring.recompute_enrollment_scores(submission.enrollment_id)
    return submission


@transaction.atomic
def evaluate_practical(
    user, submission_id: int, manual_score: float, *, override: bool = False
) -> Submission:
    submission = _get_submission_for_update(submission_id)
    ensure_assigned_verifier(user, submission.enrollment.verifier_id)

    if submission.assignment.type != Assignment.Type.PRACTICAL:
        raise InvalidState("Only practical submissions can be evaluated here.")
    if not submission.is_submitted:
        raise InvalidState("Submission has not been submitted yet.")

    grading.apply_manual_score(submission, manual_score, override=override)
    _mark_evaluated_by(submission, user)
    submission.save()

    scoring.recompute_enrollment_scores(submission.enrollment_id)
    return submission


def submissions_for(user, *, enrollment_id: int | None = None):
    """Submissions visible to ``user``: own, assigned, or all for admins."""
    queryset = Submission.objects.select_related("assignment", "enrollment").order_by("-id")
    role = role_for(user)
    if role == Role.STUDENT:
        queryset = queryset.filter(student=user)
    elif role == Role.VERIFIER:
        queryset = queryset.filter(enrollment__verifier=user)
    if enrollment_id is not None:
        queryset = queryset.filter(enrollment_id=enrollment_id)
    return queryset
