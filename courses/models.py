from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models


class TimeStampedModel(models.Model):
    """Reusable timestamped base model for course entities."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Course(TimeStampedModel):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PUBLISHED = "published", "Published"
        ARCHIVED = "archived", "Archived"

    title = models.CharField(max_length=255)
    code = models.CharField(max_length=32, unique=True, db_index=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    level = models.CharField(max_length=50, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
    )
    has_practical_session = models.BooleanField(
        default=False,
        help_text="Theory is scaled to 50 and a practical score of up to 50 is required.",
    )
    results_generated = models.BooleanField(default=False)
    tutors = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="tutored_courses",
    )
    verifiers = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="verified_courses",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="courses_created",
    )
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("title",)
        indexes = [models.Index(fields=["status"], name="courses_course_status_idx")]

    def __str__(self) -> str:
        return f"{self.code}: {self.title}"

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)

    @property
    def is_open_for_enrollment(self) -> bool:
        return self.status == self.Status.PUBLISHED


class Lesson(TimeStampedModel):
    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        related_name="lessons",
    )
    title = models.CharField(max_length=255)
    content = models.TextField(blank=True)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ("course", "order", "id")

    def __str__(self) -> str:
        return f"{self.course}: {self.title}"


class CourseModule(TimeStampedModel):
    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        related_name="modules",
    )
    lesson = models.ForeignKey(
        Lesson,
        on_delete=models.CASCADE,
        related_name="modules",
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ("lesson", "order", "id")

    def clean(self):
        super().clean()

        if self.lesson_id and self.course_id and self.lesson.course_id != self.course_id:
            raise ValidationError({"lesson": "Lesson must belong to the same course."})

    def save(self, *args, **kwargs):
        if self.lesson_id and not self.course_id:
            self.course_id = self.lesson.course_id
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.lesson}: {self.title}"


class Enrollment(models.Model):
    class Status(models.TextChoices):
        ONGOING = "ongoing", "Ongoing"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"
        RETAKE = "retake", "Retake"

    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        related_name="enrollments",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="enrollments",
    )
    verifier = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="verifier_enrollments",
    )
    profile_snapshot = models.JSONField(
        default=dict,
        blank=True,
        help_text="Name, email, class year, college and mobile at enrollment time.",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ONGOING,
    )
    theory_score = models.FloatField(default=0, validators=[MinValueValidator(0)])
    practical_score = models.FloatField(default=0, validators=[MinValueValidator(0)])
    final_score = models.FloatField(default=0, validators=[MinValueValidator(0)])
    enrolled_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    last_access_at = models.DateTimeField(auto_now=True)
    retake_of = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="retakes",
    )

    class Meta:
        unique_together = ("course", "student")
        indexes = [
            models.Index(fields=["verifier", "status"], name="courses_enr_verifier_idx"),
        ]
        verbose_name = "Enrollment"
        verbose_name_plural = "Enrollments"

    def __str__(self) -> str:
        return f"{self.student} → {self.course} ({self.status})"

    @property
    def student_name(self) -> str:
        name = (self.profile_snapshot or {}).get("name")
        if name:
            return name
        return self.student.get_full_name() or self.student.username
