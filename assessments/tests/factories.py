from __future__ import annotations

from uuid import uuid4

from django.contrib.auth import get_user_model
from django.utils import timezone

from accounts.models import Role
from assessments.models import Assignment, Question, Submission
from courses.models import Course, CourseModule, Enrollment, Lesson


def create_user(
    *,
    username: str | None = None,
    role: str = Role.STUDENT,
    email: str | None = None,
    first_name: str = "",
    last_name: str = "",
):
    username = username or f"user-{uuid4().hex[:8]}"
    user = get_user_model().objects.create_user(
        username=username,
        password="secret",
        email=email if email is not None else f"{username}@college.edu",
        first_name=first_name,
        last_name=last_name,
    )
    user.profile.role = role
    user.profile.save(update_fields=["role", "updated_at"])
    return user


def create_course(
    *,
    code: str | None = None,
    title: str = "Data Structures Workshop",
    has_practical_session: bool = False,
    status: str = Course.Status.PUBLISHED,
    verifiers=(),
) -> Course:
    course = Course.objects.create(
        title=title,
        code=code or f"cs-{uuid4().hex[:6]}",
        status=status,
        has_practical_session=has_practical_session,
    )
    if verifiers:
        course.verifiers.set(verifiers)
    return course


def create_module(course: Course, *, title: str = "Module", order: int = 0) -> CourseModule:
    lesson = Lesson.objects.create(course=course, title=f"Lesson for {title}", order=order)
    return CourseModule.objects.create(course=course, lesson=lesson, title=title, order=order)


def create_assignment(
    course: Course,
    *,
    type: str = Assignment.Type.THEORY,
    title: str | None = None,
    time_limit_minutes: int = 60,
    max_tab_switches: int = 3,
) -> Assignment:
    module = create_module(course, title=title or f"{type} module")
    return Assignment.objects.create(
        course=course,
        module=module,
        type=type,
        title=title or f"{type.title()} assignment",
        time_limit_minutes=time_limit_minutes,
        max_tab_switches=max_tab_switches,
    )


def add_mcq(
    assignment: Assignment,
    *,
    correct_option_index: int | None = 1,
    max_marks: float = 5,
    position: int = 0,
) -> Question:
    return Question.objects.create(
        assignment=assignment,
        position=position,
        q_type=Question.Kind.MCQ,
        prompt="Which structure is FIFO?",
        options=["Stack", "Queue", "Tree"],
        correct_option_index=correct_option_index,
        max_marks=max_marks,
    )


def add_short(
    assignment: Assignment,
    *,
    reference_answer: str = "Binary Search",
    max_marks: float = 5,
    q_type: str = Question.Kind.SHORT,
    position: int = 0,
) -> Question:
    return Question.objects.create(
        assignment=assignment,
        position=position,
        q_type=q_type,
        prompt="Name the algorithm.",
        reference_answer=reference_answer,
        max_marks=max_marks,
    )


def enroll(
    student,
    course: Course,
    *,
    verifier=None,
    status: str = Enrollment.Status.ONGOING,
    name: str = "Asha Rao",
) -> Enrollment:
    return Enrollment.objects.create(
        course=course,
        student=student,
        verifier=verifier,
        status=status,
        profile_snapshot={"name": name, "email": student.email},
    )


def create_submission(
    enrollment: Enrollment,
    assignment: Assignment,
    *,
    status: str = Submission.Status.EVALUATED,
    auto_score: float = 0,
    manual_score: float = 0,
    submitted: bool = True,
) -> Submission:
    now = timezone.now()
    return Submission.objects.create(
        assignment=assignment,
        course=enrollment.course,
        student=enrollment.student,
        enrollment=enrollment,
        started_at=now,
        submitted_at=now if submitted else None,
        auto_score=auto_score,
        manual_score=manual_score,
        total_score=auto_score + manual_score,
        status=status,
    )
