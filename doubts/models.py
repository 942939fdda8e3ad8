from django.conf import settings
from django.db import models


class Doubt(models.Model):
    """A question raised by an enrolled student about course material."""

    class Status(models.TextChoices):
        OPEN = "open", "Open"
        ANSWERED = "answered", "Answered"
        CLOSED = "closed", "Closed"

    course = models.ForeignKey(
        "courses.Course",
        on_delete=models.CASCADE,
        related_name="doubts",
    )
    module = models.ForeignKey(
        "courses.CourseModule",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="doubts",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="doubts",
    )
    message = models.TextField()
    attachments = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.OPEN)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(fields=["course", "status"], name="doubts_course_status_idx"),
            models.Index(fields=["student"], name="doubts_student_idx"),
        ]

    def __str__(self) -> str:
        return f"Doubt #{self.pk} ({self.status})"


class DoubtReply(models.Model):
    doubt = models.ForeignKey(Doubt, on_delete=models.CASCADE, related_name="replies")
    responder = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="doubt_replies",
    )
    message = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("created_at", "id")
        verbose_name_plural = "Doubt replies"

    def __str__(self) -> str:
        return f"Reply to doubt #{self.doubt_id}"
