from django.test import SimpleTestCase, TestCase
from rest_framework import exceptions

from assessments import grading
from assessments.models import Assignment, Question, Submission
from workshop.exceptions import InvalidState

from . import factories


def _question(pk, q_type, *, marks=5, correct=None, reference=""):
    return Question(
        id=pk,
        q_type=q_type,
        prompt="?",
        options=["a", "b", "c"] if q_type == Question.Kind.MCQ else [],
        correct_option_index=correct,
        reference_answer=reference,
        max_marks=marks,
    )


class AnswersMatchTests(SimpleTestCase):
    def test_case_and_whitespace_are_ignored(self):
        self.assertTrue(grading.answers_match("  binary search ", "Binary Search"))

    def test_containment_in_either_direction(self):
        self.assertTrue(grading.answers_match("binary", "Binary Search"))
        self.assertTrue(grading.answers_match("it is binary search tree", "binary search"))

    def test_blank_values_never_match(self):
        self.assertFalse(grading.answers_match("", "Binary Search"))
        self.assertFalse(grading.answers_match("   ", "Binary Search"))
        self.assertFalse(grading.answers_match("anything", ""))
        self.assertFalse(grading.answers_match(None, None))

    def test_unrelated_answer_does_not_match(self):
        self.assertFalse(grading.answers_match("merge sort", "binary search"))


class ScoreAnswerTests(SimpleTestCase):
    def test_mcq_correct_option_awards_full_marks(self):
        question = _question(1, Question.Kind.MCQ, marks=4, correct=2)
        self.assertEqual(grading.score_answer(question, {"selected_option_index": 2}), 4.0)
        self.assertEqual(grading.score_answer(question, {"selected_option_index": 1}), 0.0)

    def test_mcq_without_correct_index_awards_nothing(self):
        question = _question(1, Question.Kind.MCQ, correct=None)
        self.assertEqual(grading.score_answer(question, {"selected_option_index": 0}), 0.0)

    def test_code_question_uses_answer_text(self):
        question = _question(1, Question.Kind.CODE, marks=10, reference="print('hi')")
        answer = {"answer_text": "print('hi')", "code_url": "https://example.com/x"}
        self.assertEqual(grading.score_answer(question, answer), 10.0)
        self.assertEqual(grading.score_answer(question, {"code_url": "https://example.com/x"}), 0.0)


class EvaluateSubmissionTests(SimpleTestCase):
    def setUp(self):
        self.assignment = Assignment(
            type=Assignment.Type.THEORY, time_limit_minutes=30, max_tab_switches=3
        )
        self.questions = [
            _question(1, Question.Kind.MCQ, marks=5, correct=1),
            _question(2, Question.Kind.SHORT, marks=5, reference="Binary Search"),
        ]

    def evaluate(self, answers, tabs=0, elapsed=10.0, **kwargs):
        return grading.evaluate_submission(
            self.assignment, answers, tabs, elapsed, questions=self.questions, **kwargs
        )

    def test_all_correct_answers(self):
        result = self.evaluate(
            [
                {"question_id": 1, "selected_option_index": 1},
                {"question_id": 2, "answer_text": "binary search"},
            ]
        )
        self.assertEqual(result.auto_score, 10.0)
        self.assertEqual(result.total_score, 10.0)
        self.assertEqual(result.status, Submission.Status.EVALUATED)
        self.assertFalse(result.cheating_suspected)

    def test_unknown_question_ids_are_ignored(self):
        result = self.evaluate(
            [
                {"question_id": 99, "selected_option_index": 1},
                {"question_id": 1, "selected_option_index": 1},
            ]
        )
        self.assertEqual(result.auto_score, 5.0)

    def test_repeated_answers_score_a_question_once(self):
        result = self.evaluate([{"question_id": 1, "selected_option_index": 1}] * 10)
        self.assertEqual(result.auto_score, 5.0)

    def test_first_answer_to_a_question_wins(self):
        result = self.evaluate(
            [
                {"question_id": 1, "selected_option_index": 0},
                {"question_id": 1, "selected_option_index": 1},
            ]
        )
        self.assertEqual(result.auto_score, 0.0)

    def test_manual_score_is_added_to_total(self):
        result = self.evaluate([{"question_id": 1, "selected_option_index": 1}], manual_score=3)
        self.assertEqual(result.auto_score, 5.0)
        self.assertEqual(result.total_score, 8.0)

    def test_tab_switches_above_limit_reject(self):
        result = self.evaluate([], tabs=4)
        self.assertTrue(result.cheating_suspected)
        self.assertFalse(result.time_exceeded)
        self.assertEqual(result.status, Submission.Status.REJECTED)

    def test_tab_switches_at_limit_are_allowed(self):
        result = self.evaluate([], tabs=3)
        self.assertFalse(result.cheating_suspected)
        self.assertEqual(result.status, Submission.Status.EVALUATED)

    def test_exceeding_time_limit_rejects(self):
        result = self.evaluate([], elapsed=30.5)
        self.assertTrue(result.time_exceeded)
        self.assertTrue(result.cheating_suspected)
        self.assertEqual(result.status, Submission.Status.REJECTED)

    def test_exact_time_limit_is_not_exceeded(self):
        result = self.evaluate([], elapsed=30)
        self.assertFalse(result.time_exceeded)

    def test_no_questions_scores_zero(self):
        result = grading.evaluate_submission(self.assignment, [], 0, 1, questions=[])
        self.assertEqual(result.auto_score, 0.0)
        self.assertEqual(result.status, Submission.Status.EVALUATED)
        self.assertEqual(
            result.flags,
            {"tab_switch_count": 0, "time_exceeded": False, "cheating_suspected": False},
        )


class ApplyManualScoreTests(TestCase):
    def setUp(self):
        student = factories.create_user()
        course = factories.create_course(has_practical_session=True)
        self.assignment = factories.create_assignment(course, type=Assignment.Type.PRACTICAL)
        factories.add_short(self.assignment, q_type=Question.Kind.CODE, max_marks=20)
        enrollment = factories.enroll(student, course)
        self.submission = factories.create_submission(
            enrollment, self.assignment, status=Submission.Status.PENDING
        )

    def test_manual_score_moves_pending_to_evaluated(self):
        grading.apply_manual_score(self.submission, 15)
        self.assertEqual(self.submission.manual_score, 15.0)
        self.assertEqual(self.submission.total_score, 15.0)
        self.assertEqual(self.submission.status, Submission.Status.EVALUATED)

    def test_score_outside_range_is_rejected(self):
        with self.assertRaises(exceptions.ValidationError):
            grading.apply_manual_score(self.submission, 21)
        with self.assertRaises(exceptions.ValidationError):
            grading.apply_manual_score(self.submission, -1)

    def test_rejected_submission_requires_override(self):
        self.submission.status = Submission.Status.REJECTED
        self.submission.rejection_reason = "tabs"
        with self.assertRaises(InvalidState):
            grading.apply_manual_score(self.submission, 10)

        grading.apply_manual_score(self.submission, 10, override=True)
        self.assertEqual(self.submission.status, Submission.Status.EVALUATED)
        self.assertEqual(self.submission.rejection_reason, "")

    def test_manual_score_is_bounded_by_remaining_marks(self):
        self.submission.auto_score = 20
        with self.assertRaises(exceptions.ValidationError):
            grading.apply_manual_score(self.submission, 1)

        self.submission.auto_score = 12
        grading.apply_manual_score(self.submission, 8)
        self.assertEqual(self.submission.total_score, 20.0)
        with self.assertRaises(exceptions.ValidationError):
            grading.apply_manual_score(self.submission, 8.5)
