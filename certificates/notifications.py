from __future__ import annotations

import logging
from smtplib import SMTPException

from django.core.mail import send_mail

from workshop.config import PlatformConfig

from .models import Certificate

logger = logging.getLogger(__name__)


def send_certificate_email(certificate: Certificate, payload: dict, config: PlatformConfig) -> bool:
    """Tell the student their certificate is ready; returns ``False`` on failure."""
    recipient = (certificate.enrollment.profile_snapshot or {}).get("email") or certificate.student.email
    if not recipient:
        logger.warning("Certificate %s has no recipient email", certificate.certificate_number)
        return False

    message = (
        f"Dear {payload['student_name']},\n\n"
        f"Congratulations on completing {payload['course_title']} "
        f"with grade {payload['grade']} ({float(payload['total_score']):.2f}).\n\n"
        f"Certificate number: {payload['certificate_number']}\n"
        f"Verify your certificate: {payload['verification_url']}\n"
        f"Dashboard: {config.dashboard_url()}\n"
    )
    try:
        send_mail(
            subject=f"Your certificate for {payload['course_title']}",
            message=message,
            from_email=config.email_from,
            recipient_list=[recipient],
        )
    except (SMTPException, OSError):
        logger.exception(
            "Failed to send certificate email for %s", certificate.certificate_number
        )
        return False
    return True
