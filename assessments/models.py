from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from courses.models import Course, CourseModule, Enrollment, TimeStampedModel


class Assignment(TimeStampedModel):
    class Type(models.TextChoices):
        THEORY = "theory", "Theory"
        PRACTICAL = "practical", "Practical"

    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        related_name="assignments",
    )
    module = models.OneToOneField(
        CourseModule,
        on_delete=models.CASCADE,
        related_name="assignment",
    )
    type = models.CharField(max_length=20, choices=Type.choices)
    title = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    time_limit_minutes = models.PositiveIntegerField(default=60)
    max_tab_switches = models.PositiveIntegerField(default=3)
    allow_copy_paste = models.BooleanField(default=False)

    class Meta:
        ordering = ("course", "id")

    def clean(self):
        super().clean()

        if self.module_id and self.course_id and self.module.course_id != self.course_id:
            raise ValidationError({"module": "Module must belong to the same course."})

    def __str__(self) -> str:
        return self.title or f"{self.module} ({self.type})"

    @property
    def max_score(self) -> float:
        """Sum of question marks; the only source of truth for the cap."""
        return float(sum(question.max_marks for question in self.questions.all()))


class Question(models.Model):
    class Kind(models.TextChoices):
        MCQ = "mcq", "Multiple choice"
        SHORT = "short", "Short answer"
        CODE = "code", "Code"

    assignment = models.ForeignKey(
        Assignment,
        on_delete=models.CASCADE,
        related_name="questions",
    )
    position = models.PositiveIntegerField(default=0)
    q_type = models.CharField(max_length=10, choices=Kind.choices)
    prompt = models.TextField()
    options = models.JSONField(default=list, blank=True)
    correct_option_index = models.IntegerField(null=True, blank=True)
    reference_answer = models.TextField(
        blank=True,
        help_text="Reference answer for short-answer and code questions.",
    )
    max_marks = models.FloatField(default=0, validators=[MinValueValidator(0)])

    class Meta:
        ordering = ("assignment", "position", "id")

    def clean(self):
        super().clean()

        if self.q_type == self.Kind.MCQ:
            if not isinstance(self.options, list) or len(self.options) < 2:
                raise ValidationError(
                    {"options": "Multiple choice questions need at least two options."}
                )
            if self.correct_option_index is not None and not (
                0 <= self.correct_option_index < len(self.options)
            ):
                raise ValidationError(
                    {"correct_option_index": "Correct option index is out of range."}
                )
        elif self.correct_option_index is not None:
            raise ValidationError(
                {"correct_option_index": "Only multiple choice questions have options."}
            )

    def __str__(self) -> str:
        return f"{self.assignment} · Q{self.position or self.id}"


class Submission(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        EVALUATED = "evaluated", "Evaluated"
        REJECTED = "rejected", "Rejected"

    assignment = models.ForeignKey(
        Assignment,
        on_delete=models.PROTECT,
        related_name="submissions",
    )
    course = models.ForeignKey(
        Course,
        on_delete=models.PROTECT,
        related_name="submissions",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="submissions",
    )
    enrollment = models.ForeignKey(
        Enrollment,
        on_delete=models.PROTECT,
        related_name="submissions",
    )
    started_at = models.DateTimeField()
    submitted_at = models.DateTimeField(null=True, blank=True)
    auto_score = models.FloatField(default=0)
    manual_score = models.FloatField(default=0)
    total_score = models.FloatField(default=0)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    tab_switch_count = models.PositiveIntegerField(default=0)
    time_exceeded = models.BooleanField(default=False)
    cheating_suspected = models.BooleanField(default=False)
    rejection_reason = models.TextField(blank=True)
    evaluated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="evaluated_submissions",
    )
    evaluated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ("student", "assignment")
        indexes = [
            models.Index(fields=["enrollment", "status"], name="assess_sub_enr_status_idx"),
            models.Index(fields=["course", "status"], name="assess_sub_course_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.student} → {self.assignment} ({self.status})"

    @property
    def is_submitted(self) -> bool:
        return self.submitted_at is not None

    @property
    def flags(self) -> dict:
        return {
            "tab_switch_count": self.tab_switch_count,
            "time_exceeded": self.time_exceeded,
            "cheating_suspected": self.cheating_suspected,
        }


class SubmissionAnswer(models.Model):
    submission = models.ForeignKey(
        Submission,
        on_delete=models.CASCADE,
        related_name="answers",
    )
    question_id = models.BigIntegerField()
    selected_option_index = models.IntegerField(null=True, blank=True)
    answer_text = models.TextField(blank=True)
    code_url = models.URLField(max_length=500, blank=True)

    class Meta:
        ordering = ("submission", "id")

    def __str__(self) -> str:  # pragma: no cover - representation only
        return f"{self.submission_id} · question {self.question_id}"
