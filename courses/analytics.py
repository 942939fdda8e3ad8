"""Read-only aggregates over enrollments and certificates for the admin dashboard."""
from __future__ import annotations

from django.db.models import Avg, Count, Q, Value
from django.db.models.functions import Coalesce, NullIf

from accounts.models import Role, UserProfile
from certificates.models import Certificate

from .models import Course, Enrollment

UNKNOWN_COLLEGE = "Unknown"


def completion_rate(completed: int, total: int) -> float:
    if not total:
        return 0.0
    return round(completed / total * 100, 2)


def overview() -> dict:
    enrollments = Enrollment.objects.aggregate(
        total=Count("id"),
        completed=Count("id", filter=Q(status=Enrollment.Status.COMPLETED)),
    )
    return {
        "total_students": UserProfile.objects.filter(role=Role.STUDENT).count(),
        "total_courses": Course.objects.count(),
        "total_enrollments": enrollments["total"],
        "completed_enrollments": enrollments["completed"],
        "completion_rate": completion_rate(enrollments["completed"], enrollments["total"]),
        "total_certificates": Certificate.objects.count(),
    }


def _course_rows(queryset):
    return queryset.annotate(
        total_enrollments=Count("enrollments", distinct=True),
        completed_enrollments=Count(
            "enrollments",
            filter=Q(enrollments__status=Enrollment.Status.COMPLETED),
            distinct=True,
        ),
        certificates_issued=Count(
            "certificates",
            filter=Q(certificates__status=Certificate.Status.ISSUED),
            distinct=True,
        ),
    )


def _course_entry(course) -> dict:
    return {
        "course_id": course.pk,
        "course_title": course.title,
        "course_code": course.code,
        "total_enrollments": course.total_enrollments,
        "completed_enrollments": course.completed_enrollments,
        "certificates_issued": course.certificates_issued,
        "completion_rate": completion_rate(
            course.completed_enrollments, course.total_enrollments
        ),
    }


def course_analytics() -> list[dict]:
    return [_course_entry(course) for course in _course_rows(Course.objects.order_by("title"))]


def course_results_summary(course: Course) -> dict:
    """Course counters plus score averages and the grade distribution."""
    entry = _course_entry(_course_rows(Course.objects.filter(pk=course.pk)).get())

    scores = Enrollment.objects.filter(
        course=course, status=Enrollment.Status.COMPLETED
    ).aggregate(
        average_theory=Avg("theory_score"),
        average_practical=Avg("practical_score"),
        average_final=Avg("final_score"),
    )
    for key, value in scores.items():
        entry[key] = round(value, 2) if value is not None else None

    grades = (
        Certificate.objects.filter(course=course, status=Certificate.Status.ISSUED)
        .values("grade")
        .annotate(count=Count("id"))
    )
    entry["grade_distribution"] = {row["grade"]: row["count"] for row in grades}
    entry["results_generated"] = course.results_generated
    return entry


def _college_expression(path: str):
    return Coalesce(NullIf(path, Value("")), Value(UNKNOWN_COLLEGE))


def college_analytics() -> list[dict]:
    """Enrollment counts grouped by the student's college.

    ``total_students`` counts all student profiles of the college, including
    students without an enrollment.
    """
    rows = (
        Enrollment.objects.annotate(college=_college_expression("student__profile__college"))
        .values("college")
        .annotate(
            total_enrollments=Count("id"),
            completed_enrollments=Count("id", filter=Q(status=Enrollment.Status.COMPLETED)),
        )
        .order_by("college")
    )
    students = dict(
        UserProfile.objects.filter(role=Role.STUDENT)
        .annotate(college_name=_college_expression("college"))
        .values("college_name")
        .annotate(count=Count("id"))
        .values_list("college_name", "count")
    )
    return [
        {
            "college": row["college"],
            "total_students": students.get(row["college"], 0),
            "total_enrollments": row["total_enrollments"],
            "completed_enrollments": row["completed_enrollments"],
            "completion_rate": completion_rate(
                row["completed_enrollments"], row["total_enrollments"]
            ),
        }
        for row in rows
    ]
