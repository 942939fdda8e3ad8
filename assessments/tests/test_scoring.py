from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from rest_framework import exceptions

from assessments import scoring
from assessments.models import Assignment, Submission
from certificates.models import Certificate
from courses.models import Enrollment

from . import factories


class ComputeEnrollmentScoresTests(TestCase):
    def setUp(self):
        self.student = factories.create_user()

    def _theory(self, course, max_marks=(5, 5)):
        assignment = factories.create_assignment(course)
        for position, marks in enumerate(max_marks):
            factories.add_short(assignment, max_marks=marks, position=position)
        return assignment

    def test_theory_only_course_scales_to_hundred(self):
        course = factories.create_course()
        enrollment = factories.enroll(self.student, course)
        factories.create_submission(enrollment, self._theory(course), auto_score=8)

        breakdown = scoring.compute_enrollment_scores(enrollment)

        self.assertAlmostEqual(breakdown.theory_score, 80.0)
        self.assertEqual(breakdown.practical_score, 0.0)
        self.assertAlmostEqual(breakdown.final_score, 80.0)

    def test_practical_course_scales_theory_to_fifty(self):
        course = factories.create_course(has_practical_session=True)
        enrollment = factories.enroll(self.student, course)
        factories.create_submission(enrollment, self._theory(course), auto_score=8)

        breakdown = scoring.compute_enrollment_scores(enrollment, practical_score=45)

        self.assertAlmostEqual(breakdown.theory_score, 40.0)
        self.assertAlmostEqual(breakdown.practical_score, 45.0)
        self.assertAlmostEqual(breakdown.final_score, 85.0)

    def test_practical_score_is_capped_at_fifty(self):
        course = factories.create_course(has_practical_session=True)
        enrollment = factories.enroll(self.student, course)

        breakdown = scoring.compute_enrollment_scores(enrollment, practical_score=70)

        self.assertEqual(breakdown.practical_score, 50.0)

    def test_practical_track_is_scaled_from_submissions_without_explicit_score(self):
        course = factories.create_course(has_practical_session=True)
        enrollment = factories.enroll(self.student, course)
        practical = factories.create_assignment(course, type=Assignment.Type.PRACTICAL)
        factories.add_short(practical, max_marks=20)
        factories.create_submission(enrollment, practical, manual_score=15)

        breakdown = scoring.compute_enrollment_scores(enrollment)

        self.assertAlmostEqual(breakdown.practical_score, 37.5)
        self.assertEqual(breakdown.practical_max, 20.0)

    def test_zero_max_uses_raw_sum(self):
        course = factories.create_course()
        enrollment = factories.enroll(self.student, course)
        empty = factories.create_assignment(course)
        factories.create_submission(enrollment, empty, auto_score=3)

        breakdown = scoring.compute_enrollment_scores(enrollment)

        self.assertEqual(breakdown.theory_max, 0.0)
        self.assertEqual(breakdown.theory_score, 3.0)

    def test_only_evaluated_submissions_count(self):
        course = factories.create_course()
        enrollment = factories.enroll(self.student, course)
        factories.create_submission(enrollment, self._theory(course), auto_score=10)
        factories.create_submission(
            enrollment, self._theory(course), auto_score=10, status=Submission.Status.REJECTED
        )
        factories.create_submission(
            enrollment, self._theory(course), status=Submission.Status.PENDING
        )

        breakdown = scoring.compute_enrollment_scores(enrollment)

        self.assertEqual(breakdown.theory_raw, 10.0)
        self.assertEqual(breakdown.theory_max, 10.0)
        self.assertAlmostEqual(breakdown.theory_score, 100.0)


class RecomputeEnrollmentScoresTests(TestCase):
    def setUp(self):
        self.student = factories.create_user()
        self.course = factories.create_course()
        self.enrollment = factories.enroll(self.student, self.course)
        assignment = factories.create_assignment(self.course)
        factories.add_mcq(assignment, max_marks=10)
        factories.create_submission(self.enrollment, assignment, auto_score=7)

    def test_scores_are_written_to_enrollment(self):
        enrollment = scoring.recompute_enrollment_scores(self.enrollment.pk)
        self.assertAlmostEqual(enrollment.theory_score, 70.0)
        self.assertAlmostEqual(enrollment.final_score, 70.0)

    def test_recompute_is_idempotent(self):
        first = scoring.recompute_enrollment_scores(self.enrollment.pk)
        second = scoring.recompute_enrollment_scores(self.enrollment.pk)
        self.assertEqual(first.final_score, second.final_score)

    def test_unknown_enrollment_raises_not_found(self):
        with self.assertRaises(exceptions.NotFound):
            scoring.recompute_enrollment_scores(999999)

    def test_certified_enrollment_is_frozen(self):
        Enrollment.objects.filter(pk=self.enrollment.pk).update(final_score=42.0)
        Certificate.objects.create(
            enrollment=self.enrollment,
            student=self.student,
            course=self.course,
            certificate_number="CERT-20240101000000-ABCDEFGHI",
            verification_hash="f" * 64,
            total_score=42.0,
            grade=Certificate.Grade.F,
        )

        enrollment = scoring.recompute_enrollment_scores(self.enrollment.pk)

        self.assertEqual(enrollment.final_score, 42.0)


class GenerateCourseResultsTests(TestCase):
    def setUp(self):
        self.verifier = factories.create_user(role="verifier")
        self.course = factories.create_course(verifiers=[self.verifier])
        self.completed = [
            factories.enroll(
                factories.create_user(), self.course, status=Enrollment.Status.COMPLETED
            )
            for _ in range(2)
        ]
        self.ongoing = factories.enroll(factories.create_user(), self.course)

    def test_recomputes_completed_enrollments_and_flags_course(self):
        report = scoring.generate_course_results(self.course.pk, user=self.verifier)

        self.assertTrue(report.ok)
        self.assertCountEqual(report.succeeded, [e.pk for e in self.completed])
        self.course.refresh_from_db()
        self.assertTrue(self.course.results_generated)

    def test_failures_are_collected_per_enrollment(self):
        failing_id = self.completed[0].pk
        original = scoring.recompute_enrollment_scores

        def flaky(enrollment_id, practical_score=None):
            if enrollment_id == failing_id:
                raise DatabaseError("connection lost")
            return original(enrollment_id, practical_score)

        with mock.patch("assessments.scoring.recompute_enrollment_scores", side_effect=flaky):
            report = scoring.generate_course_results(self.course.pk)

        self.assertFalse(report.ok)
        self.assertEqual(report.succeeded, [self.completed[1].pk])
        self.assertEqual(report.failed[0]["enrollment_id"], failing_id)
        self.assertEqual(report.failed[0]["kind"], "database_error")

    def test_other_verifier_is_denied(self):
        outsider = factories.create_user(role="verifier")
        with self.assertRaises(exceptions.PermissionDenied):
            scoring.generate_course_results(self.course.pk, user=outsider)
