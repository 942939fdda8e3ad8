from django.conf import settings
from django.db import models
from django.utils import timezone

from courses.models import Course, Enrollment


def certificate_upload_to(instance, filename):
    return f"certificates/{instance.certificate_number}.pdf"


class Certificate(models.Model):
    """Issued completion certificate.

    Scores and grade are a snapshot taken at issuance; afterwards only
    ``status`` and ``document`` change.
    """

    class Grade(models.TextChoices):
        A = "A", "A"
        B = "B", "B"
        C = "C", "C"
        D = "D", "D"
        F = "F", "F"

    class Status(models.TextChoices):
        ISSUED = "issued", "Issued"
        REVOKED = "revoked", "Revoked"

    enrollment = models.OneToOneField(
        Enrollment,
        on_delete=models.PROTECT,
        related_name="certificate",
    )
    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="certificates",
    )
    course = models.ForeignKey(
        Course,
        on_delete=models.PROTECT,
        related_name="certificates",
    )
    certificate_number = models.CharField(max_length=64, unique=True)
    verification_hash = models.CharField(max_length=64, unique=True)
    theory_score = models.FloatField(default=0)
    practical_score = models.FloatField(default=0)
    total_score = models.FloatField(default=0)
    grade = models.CharField(max_length=1, choices=Grade.choices)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.ISSUED,
    )
    issue_date = models.DateTimeField(default=timezone.now)
    document = models.FileField(upload_to=certificate_upload_to, blank=True)
    issued_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="issued_certificates",
    )
    revoked_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-issue_date",)
        indexes = [
            models.Index(fields=["student", "status"], name="certs_student_status_idx"),
        ]

    def __str__(self) -> str:
        return self.certificate_number

    @property
    def is_valid(self) -> bool:
        return self.status == self.Status.ISSUED
