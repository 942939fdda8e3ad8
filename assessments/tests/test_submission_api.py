import json
from datetime import timedelta
from unittest import mock

from django.test import TestCase

from assessments.models import Assignment, Question, Submission, SubmissionAnswer
from courses.models import Enrollment

from . import factories


class SubmissionFlowTests(TestCase):
    def setUp(self):
        self.verifier = factories.create_user(role="verifier")
        self.student = factories.create_user()
        self.course = factories.create_course(verifiers=[self.verifier])
        self.enrollment = factories.enroll(self.student, self.course, verifier=self.verifier)

        self.assignment = factories.create_assignment(self.course, time_limit_minutes=60)
        self.mcq = factories.add_mcq(self.assignment, correct_option_index=1, max_marks=5)
        self.short = factories.add_short(
            self.assignment, reference_answer="Binary Search", max_marks=5, position=1
        )
        self.client.force_login(self.student)

    def _post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type="application/json")

    def _patch(self, url, payload):
        return self.client.patch(url, data=json.dumps(payload), content_type="application/json")

    def _start(self):
        return self._post(f"/api/assignments/{self.assignment.pk}/start/")

    def _submit(self, answers=None, tabs=0):
        if answers is None:
            answers = [
                {"question_id": self.mcq.pk, "selected_option_index": 1},
                {"question_id": self.short.pk, "answer_text": "binary search"},
            ]
        return self._post(
            f"/api/assignments/{self.assignment.pk}/submit/",
            {"answers": answers, "tab_switch_count": tabs},
        )

    def test_assignment_detail_hides_reference_answers(self):
        response = self.client.get(f"/api/assignments/{self.assignment.pk}/")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["max_score"], 10.0)
        self.assertEqual(len(payload["questions"]), 2)
        for question in payload["questions"]:
            self.assertNotIn("reference_answer", question)
            self.assertNotIn("correct_option_index", question)

    def test_start_is_idempotent(self):
        first = self._start()
        self.assertEqual(first.status_code, 201)
        second = self._start()
        self.assertEqual(second.status_code, 200)
        self.assertEqual(first.json()["id"], second.json()["id"])

    def test_submit_grades_and_recomputes_enrollment(self):
        self._start()
        response = self._submit()

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["status"], Submission.Status.EVALUATED)
        self.assertEqual(payload["auto_score"], 10.0)
        self.assertFalse(payload["flags"]["cheating_suspected"])
        self.assertEqual(SubmissionAnswer.objects.filter(submission_id=payload["id"]).count(), 2)

        self.enrollment.refresh_from_db()
        self.assertAlmostEqual(self.enrollment.theory_score, 100.0)
        self.assertAlmostEqual(self.enrollment.final_score, 100.0)

    def test_submit_twice_is_rejected(self):
        self._start()
        self._submit()
        response = self._submit()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["kind"], "invalid_state")

    def test_submit_without_start_is_rejected(self):
        response = self._submit()
        self.assertEqual(response.status_code, 409)

    def test_out_of_range_option_is_invalid(self):
        self._start()
        response = self._submit([{"question_id": self.mcq.pk, "selected_option_index": 7}])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["kind"], "invalid")

    def test_repeated_question_is_invalid(self):
        self._start()
        response = self._submit([{"question_id": self.mcq.pk, "selected_option_index": 1}] * 10)

        self.assertEqual(response.status_code, 400)
        self.assertIn("answers", response.json()["detail"])
        submission = Submission.objects.get(student=self.student, assignment=self.assignment)
        self.assertFalse(submission.is_submitted)
        self.enrollment.refresh_from_db()
        self.assertEqual(self.enrollment.final_score, 0.0)

    def test_option_index_on_short_question_is_ignored(self):
        self._start()
        response = self._submit(
            [
                {
                    "question_id": self.short.pk,
                    "answer_text": "binary search",
                    "selected_option_index": 2,
                }
            ]
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["auto_score"], 5.0)

    def test_too_many_tab_switches_reject_submission(self):
        self._start()
        response = self._submit(tabs=4)
        payload = response.json()
        self.assertEqual(payload["status"], Submission.Status.REJECTED)
        self.assertTrue(payload["flags"]["cheating_suspected"])
        self.enrollment.refresh_from_db()
        self.assertEqual(self.enrollment.final_score, 0.0)

    def test_elapsed_time_is_measured_on_the_server(self):
        self._start()
        submission = Submission.objects.get(student=self.student, assignment=self.assignment)
        late = submission.started_at + timedelta(minutes=61)

        with mock.patch("assessments.services.timezone.now", return_value=late):
            response = self._submit()

        payload = response.json()
        self.assertTrue(payload["flags"]["time_exceeded"])
        self.assertEqual(payload["status"], Submission.Status.REJECTED)

    def test_student_not_enrolled_cannot_start(self):
        outsider = factories.create_user()
        self.client.force_login(outsider)
        response = self._start()
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["kind"], "permission_denied")

    def test_verifier_cannot_submit(self):
        self.client.force_login(self.verifier)
        response = self._start()
        self.assertEqual(response.status_code, 403)

    def test_anonymous_request_is_refused(self):
        self.client.logout()
        response = self._start()
        self.assertIn(response.status_code, (401, 403))


class EvaluationApiTests(TestCase):
    def setUp(self):
        self.verifier = factories.create_user(role="verifier")
        self.other_verifier = factories.create_user(role="verifier")
        self.student = factories.create_user()
        self.course = factories.create_course(
            has_practical_session=True, verifiers=[self.verifier, self.other_verifier]
        )
        self.enrollment = factories.enroll(self.student, self.course, verifier=self.verifier)

        self.theory = factories.create_assignment(self.course)
        factories.add_mcq(self.theory, max_marks=10)
        self.practical = factories.create_assignment(self.course, type=Assignment.Type.PRACTICAL)
        factories.add_short(self.practical, q_type=Question.Kind.CODE, max_marks=20)

        self.theory_submission = factories.create_submission(
            self.enrollment, self.theory, auto_score=6
        )
        self.practical_submission = factories.create_submission(
            self.enrollment, self.practical, status=Submission.Status.PENDING
        )
        self.client.force_login(self.verifier)

    def _patch(self, url, payload):
        return self.client.patch(url, data=json.dumps(payload), content_type="application/json")

    def _theory_url(self, submission=None):
        submission = submission or self.theory_submission
        return f"/api/submissions/{submission.pk}/theory-evaluate/"

    def _practical_url(self):
        return f"/api/submissions/{self.practical_submission.pk}/practical-evaluate/"

    def test_theory_evaluation_records_evaluator(self):
        response = self._patch(self._theory_url(), {"auto_score": 8})
        self.assertEqual(response.status_code, 200)

        self.theory_submission.refresh_from_db()
        self.assertEqual(self.theory_submission.total_score, 8.0)
        self.assertEqual(self.theory_submission.evaluated_by, self.verifier)
        self.assertIsNotNone(self.theory_submission.evaluated_at)

        self.enrollment.refresh_from_db()
        self.assertAlmostEqual(self.enrollment.theory_score, 40.0)

    def test_rejecting_drops_submission_from_scores(self):
        self._patch(self._theory_url(), {"auto_score": 10})
        response = self._patch(
            self._theory_url(), {"reject": True, "rejection_reason": "Copied answers"}
        )
        self.assertEqual(response.json()["status"], Submission.Status.REJECTED)
        self.assertEqual(response.json()["rejection_reason"], "Copied answers")

        self.enrollment.refresh_from_db()
        self.assertEqual(self.enrollment.theory_score, 0.0)

    def test_rejected_submission_needs_override(self):
        self.theory_submission.status = Submission.Status.REJECTED
        self.theory_submission.save()

        response = self._patch(self._theory_url(), {})
        self.assertEqual(response.status_code, 409)

        response = self._patch(self._theory_url(), {"override": True})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], Submission.Status.EVALUATED)

    def test_unassigned_verifier_is_denied(self):
        self.client.force_login(self.other_verifier)
        response = self._patch(self._theory_url(), {"auto_score": 8})
        self.assertEqual(response.status_code, 403)

    def test_student_cannot_evaluate(self):
        self.client.force_login(self.student)
        response = self._patch(self._theory_url(), {"auto_score": 10})
        self.assertEqual(response.status_code, 403)

    def test_theory_endpoint_refuses_practical_submission(self):
        response = self._patch(self._theory_url(self.practical_submission), {})
        self.assertEqual(response.status_code, 409)

    def test_practical_evaluation_sets_manual_score(self):
        response = self._patch(self._practical_url(), {"manual_score": 15})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["manual_score"], 15.0)
        self.assertEqual(payload["status"], Submission.Status.EVALUATED)

        enrollment = Enrollment.objects.get(pk=self.enrollment.pk)
        self.assertAlmostEqual(enrollment.practical_score, 37.5)

    def test_practical_score_above_maximum_is_invalid(self):
        response = self._patch(self._practical_url(), {"manual_score": 25})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["kind"], "invalid")

    def test_practical_score_cannot_exceed_remaining_marks(self):
        Submission.objects.filter(pk=self.practical_submission.pk).update(auto_score=20)

        response = self._patch(self._practical_url(), {"manual_score": 10})
        self.assertEqual(response.status_code, 400)
        self.practical_submission.refresh_from_db()
        self.assertEqual(self.practical_submission.total_score, 0.0)

    def test_theory_override_respects_manual_score(self):
        Submission.objects.filter(pk=self.theory_submission.pk).update(manual_score=4)

        response = self._patch(self._theory_url(), {"auto_score": 8})
        self.assertEqual(response.status_code, 400)

        response = self._patch(self._theory_url(), {"auto_score": 6})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_score"], 10.0)

    def test_student_sees_only_own_submissions(self):
        other = factories.create_user()
        other_enrollment = factories.enroll(other, self.course, verifier=self.verifier)
        factories.create_submission(other_enrollment, self.theory)

        self.client.force_login(self.student)
        response = self.client.get("/api/submissions/")
        ids = {item["id"] for item in response.json()}
        self.assertEqual(ids, {self.theory_submission.pk, self.practical_submission.pk})
