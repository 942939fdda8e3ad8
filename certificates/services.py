"""Certificate issuance, revocation and public verification.

Issuing is idempotent per enrollment: the first successful call creates the
certificate and freezes the enrollment scores, every later call returns the
same certificate.  Rendering the PDF and emailing the student happen after
the transaction commits and never undo an issuance.
"""
from __future__ import annotations

import hashlib
import logging
import string
from dataclasses import dataclass
from datetime import timezone as dt_timezone
from typing import Any

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.crypto import get_random_string
from rest_framework import exceptions

from accounts.models import Role
from accounts.permissions import ensure_assigned_verifier, is_admin, role_for
from assessments import scoring
from courses.models import Enrollment
from workshop.config import PlatformConfig, get_platform_config
from workshop.exceptions import CertificateCollision, InvalidState, PracticalScoreRequired

from . import notifications, rendering
from .models import Certificate

logger = logging.getLogger(__name__)

GRADE_THRESHOLDS = (
    (90.0, Certificate.Grade.A),
    (80.0, Certificate.Grade.B),
    (70.0, Certificate.Grade.C),
    (60.0, Certificate.Grade.D),
)
NUMBER_SUFFIX_LENGTH = 9
NUMBER_SUFFIX_CHARS = string.ascii_uppercase + string.digits
ISSUE_ATTEMPTS = 2


@dataclass(frozen=True)
class IssueResult:
    certificate: Certificate
    created: bool


def grade_for_score(final_score: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if final_score >= threshold:
            return grade
    return Certificate.Grade.F


def generate_certificate_number() -> str:
    stamp = timezone.now().astimezone(dt_timezone.utc).strftime("%Y%m%d%H%M%S")
    suffix = get_random_string(NUMBER_SUFFIX_LENGTH, allowed_chars=NUMBER_SUFFIX_CHARS)
    return f"CERT-{stamp}-{suffix}"


def generate_verification_hash(certificate_number: str, student_id: int) -> str:
    return hashlib.sha256(f"{certificate_number}{student_id}".encode("utf-8")).hexdigest()


def _get_enrollment_for_update(enrollment_id: int) -> Enrollment:
    try:
        return (
            Enrollment.objects.select_for_update()
            .select_related("course", "student")
            .get(pk=enrollment_id)
        )
    except Enrollment.DoesNotExist as exc:
        raise exceptions.NotFound("Enrollment not found") from exc


def _existing_certificate(enrollment_id: int) -> Certificate | None:
    return Certificate.objects.filter(enrollment_id=enrollment_id).first()


def _create_certificate(enrollment: Enrollment, breakdown, issued_by) -> IssueResult:
    grade = grade_for_score(breakdown.final_score)

    for attempt in range(1, ISSUE_ATTEMPTS + 1):
        number = generate_certificate_number()
        try:
            with transaction.atomic():
                certificate = Certificate.objects.create(
                    enrollment=enrollment,
                    student_id=enrollment.student_id,
                    course_id=enrollment.course_id,
                    certificate_number=number,
                    verification_hash=generate_verification_hash(number, enrollment.student_id),
                    theory_score=breakdown.theory_score,
                    practical_score=breakdown.practical_score,
                    total_score=breakdown.final_score,
                    grade=grade,
                    issued_by=issued_by,
                )
                Enrollment.objects.filter(pk=enrollment.pk).update(
                    theory_score=breakdown.theory_score,
                    practical_score=breakdown.practical_score,
                    final_score=breakdown.final_score,
                )
        except IntegrityError:
            winner = _existing_certificate(enrollment.pk)
            if winner is not None:
                return IssueResult(certificate=winner, created=False)
            logger.warning(
                "Certificate number collision for enrollment %s (attempt %s)",
                enrollment.pk,
                attempt,
            )
            continue
        return IssueResult(certificate=certificate, created=True)

    logger.error("Giving up issuing certificate for enrollment %s", enrollment.pk)
    raise CertificateCollision()


def deliver_certificate(certificate_id: int, config: PlatformConfig) -> None:
    """Render the document and notify the student; failures are only logged."""
    certificate = Certificate.objects.select_related(
        "enrollment", "student", "course"
    ).get(pk=certificate_id)
    payload = build_render_payload(certificate, config=config)

    try:
        rendering.store_certificate_document(certificate, payload)
    except Exception:
        logger.exception("Rendering failed for certificate %s", certificate.certificate_number)

    notifications.send_certificate_email(certificate, payload, config)


@transaction.atomic
def issue_certificate(
    enrollment_id: int,
    practical_score: float | None = None,
    *,
    issued_by=None,
    config: PlatformConfig,
) -> IssueResult:
    enrollment = _get_enrollment_for_update(enrollment_id)

    if issued_by is not None:
        ensure_assigned_verifier(issued_by, enrollment.verifier_id)

    existing = _existing_certificate(enrollment.pk)
    if existing is not None:
        return IssueResult(certificate=existing, created=False)

    if enrollment.status != Enrollment.Status.COMPLETED:
        raise InvalidState("Enrollment must be completed before a certificate is issued.")
    if enrollment.verifier_id is None:
        raise InvalidState("Enrollment has no assigned verifier.")

    if enrollment.course.has_practical_session:
        if practical_score is None:
            raise PracticalScoreRequired()
        if practical_score < 0:
            raise exceptions.ValidationError(
                {"practical_score": "Practical score must not be negative."}
            )

    breakdown = scoring.compute_enrollment_scores(enrollment, practical_score=practical_score)
    result = _create_certificate(enrollment, breakdown, issued_by)

    if result.created:
        certificate = result.certificate
        logger.info(
            "Issued certificate %s for enrollment %s (grade %s, total %.2f)",
            certificate.certificate_number,
            enrollment.pk,
            certificate.grade,
            certificate.total_score,
        )
        transaction.on_commit(lambda: deliver_certificate(certificate.pk, config))
    return result


@transaction.atomic
def finalize_enrollment(
    user,
    enrollment_id: int,
    passed: bool,
    practical_score: float | None = None,
    *,
    config: PlatformConfig,
) -> tuple[Enrollment, IssueResult | None]:
    """Mark an enrollment completed (and certify it) or failed."""
    enrollment = _get_enrollment_for_update(enrollment_id)
    ensure_assigned_verifier(user, enrollment.verifier_id)

    if enrollment.status == Enrollment.Status.FAILED:
        raise InvalidState("Enrollment has already been marked as failed.")

    if not passed:
        if enrollment.status == Enrollment.Status.COMPLETED:
            raise InvalidState("Enrollment has already been completed.")
        enrollment.status = Enrollment.Status.FAILED
        enrollment.save(update_fields=["status", "last_access_at"])
        logger.info("Enrollment %s marked failed by %s", enrollment.pk, user.pk)
        return enrollment, None

    if enrollment.status != Enrollment.Status.COMPLETED:
        enrollment.status = Enrollment.Status.COMPLETED
        enrollment.completed_at = timezone.now()
        enrollment.save(update_fields=["status", "completed_at", "last_access_at"])

    result = issue_certificate(
        enrollment.pk,
        practical_score,
        issued_by=user,
        config=config,
    )
    enrollment.refresh_from_db()
    return enrollment, result


@transaction.atomic
def revoke_certificate(user, certificate_id: int) -> Certificate:
    if not is_admin(user):
        raise exceptions.PermissionDenied("Only administrators can revoke certificates.")

    try:
        certificate = Certificate.objects.select_for_update().get(pk=certificate_id)
    except Certificate.DoesNotExist as exc:
        raise exceptions.NotFound("Certificate not found") from exc

    if certificate.status == Certificate.Status.REVOKED:
        raise InvalidState("Certificate has already been revoked.")

    certificate.status = Certificate.Status.REVOKED
    certificate.revoked_at = timezone.now()
    certificate.save(update_fields=["status", "revoked_at", "updated_at"])
    logger.warning("Certificate %s revoked by %s", certificate.certificate_number, user.pk)
    return certificate


def build_render_payload(
    certificate: Certificate, *, config: PlatformConfig | None = None
) -> dict[str, Any]:
    """Everything an external renderer needs to draw the certificate."""
    config = config or get_platform_config()
    return {
        "student_name": certificate.enrollment.student_name,
        "course_title": certificate.course.title,
        "theory_score": certificate.theory_score,
        "practical_score": certificate.practical_score,
        "total_score": certificate.total_score,
        "grade": certificate.grade,
        "certificate_number": certificate.certificate_number,
        "issue_date": certificate.issue_date.date().isoformat(),
        "verification_hash": certificate.verification_hash,
        "verification_url": config.verification_url(certificate.verification_hash),
    }


def verify_certificate(verification_hash: str) -> dict[str, Any]:
    """Public lookup; exposes no ids, scores or the hash itself."""
    certificate = (
        Certificate.objects.select_related("enrollment__student", "course")
        .filter(verification_hash=(verification_hash or "").strip().lower())
        .first()
    )
    if certificate is None:
        return {
            "valid": False,
            "reason": "not_found",
            "message": "Certificate not found.",
        }
    if certificate.status == Certificate.Status.REVOKED:
        return {
            "valid": False,
            "reason": "revoked",
            "message": "This certificate has been revoked.",
        }
    return {
        "valid": True,
        "student_name": certificate.enrollment.student_name,
        "course_title": certificate.course.title,
        "issue_date": certificate.issue_date.date().isoformat(),
        "certificate_number": certificate.certificate_number,
    }


def certificates_for(user):
    queryset = Certificate.objects.select_related("enrollment", "course", "student")
    role = role_for(user)
    if role == Role.STUDENT:
        return queryset.filter(student=user)
    if role == Role.VERIFIER:
        return queryset.filter(enrollment__verifier=user)
    return queryset
