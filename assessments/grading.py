"""Automatic grading of assignment submissions.

Everything except :func:`apply_manual_score` is side-effect free: callers
pass an assignment with its questions and the submitted answers and receive
a :class:`GradingResult` they decide how to persist.

Short-answer and code questions use :func:`answers_match`, a lenient heuristic
(mutual substring containment after case folding).  A very short reference
answer such as ``"a"`` matches almost any response; swap the
function out if exact or token based matching is required.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from rest_framework import exceptions

from workshop.exceptions import InvalidState

from .models import Assignment, Question, Submission


@dataclass(frozen=True)
class GradingResult:
    auto_score: float
    total_score: float
    tab_switch_count: int
    time_exceeded: bool
    cheating_suspected: bool
    status: str

    @property
    def flags(self) -> dict[str, Any]:
        return {
            "tab_switch_count": self.tab_switch_count,
            "time_exceeded": self.time_exceeded,
            "cheating_suspected": self.cheating_suspected,
        }


def normalize_answer(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().casefold()


def answers_match(student_text: Any, reference_text: Any) -> bool:
    student = normalize_answer(student_text)
    reference = normalize_answer(reference_text)
    if not student or not reference:
        return False
    return student in reference or reference in student


def _answer_value(answer: Any, key: str) -> Any:
    if isinstance(answer, Mapping):
        return answer.get(key)
    return getattr(answer, key, None)


def score_answer(question: Question, answer: Any) -> float:
    """Return the marks awarded for ``answer``; never partial credit."""
    marks = float(question.max_marks or 0)

    if question.q_type == Question.Kind.MCQ:
        correct = question.correct_option_index
        selected = _answer_value(answer, "selected_option_index")
        if correct is None or selected is None:
            return 0.0
        return marks if int(selected) == int(correct) else 0.0

    if question.q_type in (Question.Kind.SHORT, Question.Kind.CODE):
        if answers_match(_answer_value(answer, "answer_text"), question.reference_answer):
            return marks
        return 0.0

    return 0.0


def calculate_auto_score(questions: Iterable[Question], answers: Iterable[Any]) -> float:
    """Sum the marks of ``answers``; only the first answer to a question counts."""
    by_id = {question.id: question for question in questions}
    scored = set()
    total = 0.0
    for answer in answers:
        question_id = _answer_value(answer, "question_id")
        question = by_id.get(question_id)
        if question is None or question_id in scored:
            continue
        scored.add(question_id)
        total += score_answer(question, answer)
    return total


def detect_cheating(
    *,
    tab_switch_count: int,
    max_tab_switches: int,
    elapsed_minutes: float,
    time_limit_minutes: float,
) -> tuple[bool, bool]:
    """Return ``(time_exceeded, cheating_suspected)``."""
    time_exceeded = elapsed_minutes > time_limit_minutes
    cheating_suspected = tab_switch_count > max_tab_switches or time_exceeded
    return time_exceeded, cheating_suspected


def evaluate_submission(
    assignment: Assignment,
    answers: Sequence[Any],
    tab_switch_count: int,
    elapsed_minutes: float,
    *,
    manual_score: float = 0.0,
    questions: Iterable[Question] | None = None,
) -> GradingResult:
    if questions is None:
        questions = assignment.questions.all()

    auto_score = calculate_auto_score(questions, answers)
    tab_switch_count = int(tab_switch_count or 0)
    time_exceeded, cheating_suspected = detect_cheating(
        tab_switch_count=tab_switch_count,
        max_tab_switches=assignment.max_tab_switches,
        elapsed_minutes=elapsed_minutes,
        time_limit_minutes=assignment.time_limit_minutes,
    )
    status = (
        Submission.Status.REJECTED if cheating_suspected else Submission.Status.EVALUATED
    )

    return GradingResult(
        auto_score=auto_score,
        total_score=auto_score + float(manual_score or 0),
        tab_switch_count=tab_switch_count,
        time_exceeded=time_exceeded,
        cheating_suspected=cheating_suspected,
        status=status,
    )


def apply_manual_score(
    submission: Submission, manual_score: float, *, override: bool = False
) -> Submission:
    """Set ``manual_score`` on ``submission`` in memory and recompute totals.

    The manual part may not push the total past the assignment maximum, so it
    is bounded by ``max_score - auto_score``.  A rejected submission only
    becomes evaluated when ``override`` is set.
    """
    auto_score = float(submission.auto_score or 0)
    ceiling = max(0.0, submission.assignment.max_score - auto_score)
    manual_score = float(manual_score)
    if manual_score < 0 or manual_score > ceiling:
        raise exceptions.ValidationError(
            {"manual_score": f"Score must be between 0 and {ceiling:g}."}
        )

    if submission.status == Submission.Status.REJECTED and not override:
        raise InvalidState(
            "Submission was rejected; an explicit override is required to evaluate it."
        )

    submission.manual_score = manual_score
    submission.total_score = auto_score + manual_score
    submission.status = Submission.Status.EVALUATED
    if override:
        submission.rejection_reason = ""
    return submission
