"""Enrollment score aggregation.

Scores are always recomputed from the full set of evaluated submissions and
written back onto the :class:`~courses.models.Enrollment`.  Nothing is ever
incremented, so concurrent recomputes for the same enrollment converge on the
same values.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.db import DatabaseError, transaction
from django.db.models import Prefetch
from rest_framework import exceptions

from accounts.permissions import is_admin
from certificates.models import Certificate
from courses.models import Course, Enrollment

from .models import Assignment, Question, Submission

logger = logging.getLogger(__name__)

TRACK_SCALE_WITH_PRACTICAL = 50.0
TRACK_SCALE_THEORY_ONLY = 100.0
PRACTICAL_CAP = 50.0


@dataclass(frozen=True)
class ScoreBreakdown:
    theory_raw: float
    theory_max: float
    practical_raw: float
    practical_max: float
    theory_score: float
    practical_score: float

    @property
    def final_score(self) -> float:
        return self.theory_score + self.practical_score


@dataclass
class ResultsReport:
    course_id: int
    succeeded: list[int] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def scale_track(raw: float, maximum: float, scale: float) -> float:
    """Scale ``raw`` out of ``maximum`` onto ``scale``.

    With nothing achievable yet the raw sum is used as is.
    """
    if maximum <= 0:
        return raw
    return (raw / maximum) * scale


def _evaluated_submissions(enrollment: Enrollment) -> list[Submission]:
    return list(
        Submission.objects.filter(
            enrollment=enrollment, status=Submission.Status.EVALUATED
        )
        .select_related("assignment")
        .prefetch_related(
            Prefetch("assignment__questions", queryset=Question.objects.only("id", "assignment_id", "max_marks"))
        )
        .order_by("id")
    )


def compute_enrollment_scores(
    enrollment: Enrollment, practical_score: float | None = None
) -> ScoreBreakdown:
    """Compute scaled theory/practical scores without persisting them."""
    theory_raw = theory_max = 0.0
    practical_raw = practical_max = 0.0

    for submission in _evaluated_submissions(enrollment):
        assignment = submission.assignment
        earned = float(submission.total_score or 0)
        if assignment.type == Assignment.Type.PRACTICAL:
            practical_raw += earned
            practical_max += assignment.max_score
        else:
            theory_raw += earned
            theory_max += assignment.max_score

    if enrollment.course.has_practical_session:
        theory_score = scale_track(theory_raw, theory_max, TRACK_SCALE_WITH_PRACTICAL)
        if practical_score is None:
            practical_score = scale_track(
                practical_raw, practical_max, TRACK_SCALE_WITH_PRACTICAL
            )
        practical_score = min(PRACTICAL_CAP, float(practical_score))
    else:
        theory_score = scale_track(theory_raw, theory_max, TRACK_SCALE_THEORY_ONLY)
        practical_score = 0.0

    return ScoreBreakdown(
        theory_raw=theory_raw,
        theory_max=theory_max,
        practical_raw=practical_raw,
        practical_max=practical_max,
        theory_score=theory_score,
        practical_score=practical_score,
    )


def is_frozen(enrollment: Enrollment) -> bool:
    return Certificate.objects.filter(enrollment=enrollment).exists()


def recompute_enrollment_scores(
    enrollment_id: int, practical_score: float | None = None
) -> Enrollment:
    """Recompute and persist the aggregate scores of an enrollment."""
    try:
        enrollment = Enrollment.objects.select_related("course").get(pk=enrollment_id)
    except Enrollment.DoesNotExist as exc:
        raise exceptions.NotFound("Enrollment not found") from exc

    if is_frozen(enrollment):
        logger.debug("Enrollment %s has a certificate; scores are frozen", enrollment.pk)
        return enrollment

    breakdown = compute_enrollment_scores(enrollment, practical_score=practical_score)
    Enrollment.objects.filter(pk=enrollment.pk).update(
        theory_score=breakdown.theory_score,
        practical_score=breakdown.practical_score,
        final_score=breakdown.final_score,
    )
    enrollment.refresh_from_db(fields=["theory_score", "practical_score", "final_score"])
    logger.info(
        "Recomputed enrollment %s: theory=%.2f practical=%.2f final=%.2f",
        enrollment.pk,
        enrollment.theory_score,
        enrollment.practical_score,
        enrollment.final_score,
    )
    return enrollment


def generate_course_results(course_id: int, *, user=None) -> ResultsReport:
    """Recompute every completed enrollment of a course.

    Each enrollment is processed on its own; a failure is recorded in the
    report and does not stop the remaining enrollments.
    """
    try:
        course = Course.objects.get(pk=course_id)
    except Course.DoesNotExist as exc:
        raise exceptions.NotFound("Course not found") from exc

    if user is not None and not is_admin(user) and not course.verifiers.filter(pk=user.pk).exists():
        raise exceptions.PermissionDenied("Access denied. You are not a verifier of this course.")

    report = ResultsReport(course_id=course.pk)
    enrollment_ids = course.enrollments.filter(
        status=Enrollment.Status.COMPLETED
    ).values_list("id", flat=True)

    for enrollment_id in enrollment_ids:
        try:
            with transaction.atomic():
                recompute_enrollment_scores(enrollment_id)
        except (exceptions.APIException, DatabaseError) as exc:
            logger.exception("Results generation failed for enrollment %s", enrollment_id)
            report.failed.append(
                {
                    "enrollment_id": enrollment_id,
                    "kind": getattr(exc, "default_code", "database_error"),
                    "message": str(exc),
                }
            )
        else:
            report.succeeded.append(enrollment_id)

    Course.objects.filter(pk=course.pk).update(results_generated=True)
    logger.info(
        "Generated results for course %s: %d succeeded, %d failed",
        course.pk,
        len(report.succeeded),
        len(report.failed),
    )
    return report
