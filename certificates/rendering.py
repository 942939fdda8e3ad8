"""PDF rendering of issued certificates with reportlab."""
from __future__ import annotations

from io import BytesIO
from typing import Mapping

from django.core.files.base import ContentFile
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas

from .models import Certificate

PAGE_SIZE = landscape(A4)
BORDER_COLOR = colors.HexColor("#1F3A5F")


def render_certificate_pdf(payload: Mapping[str, object]) -> bytes:
    """Return the PDF bytes for a render payload built by the issuer."""
    buffer = BytesIO()
    width, height = PAGE_SIZE
    pdf = canvas.Canvas(buffer, pagesize=PAGE_SIZE)
    pdf.setTitle(f"Certificate {payload['certificate_number']}")

    pdf.setStrokeColor(BORDER_COLOR)
    pdf.setLineWidth(4)
    pdf.rect(30, 30, width - 60, height - 60, stroke=1, fill=0)

    pdf.setFillColor(BORDER_COLOR)
    pdf.setFont("Helvetica-Bold", 34)
    pdf.drawCentredString(width / 2, height - 120, "Certificate of Completion")

    pdf.setFillColor(colors.black)
    pdf.setFont("Helvetica", 16)
    pdf.drawCentredString(width / 2, height - 170, "This is to certify that")
    pdf.setFont("Helvetica-Bold", 26)
    pdf.drawCentredString(width / 2, height - 210, str(payload["student_name"]))
    pdf.setFont("Helvetica", 16)
    pdf.drawCentredString(width / 2, height - 250, "has successfully completed")
    pdf.setFont("Helvetica-Bold", 20)
    pdf.drawCentredString(width / 2, height - 285, str(payload["course_title"]))

    pdf.setFont("Helvetica", 13)
    scores = (
        f"Theory: {float(payload['theory_score']):.2f}    "
        f"Practical: {float(payload['practical_score']):.2f}    "
        f"Total: {float(payload['total_score']):.2f}    "
        f"Grade: {payload['grade']}"
    )
    pdf.drawCentredString(width / 2, height - 330, scores)

    pdf.setFont("Helvetica", 10)
    pdf.drawString(60, 80, f"Certificate No: {payload['certificate_number']}")
    pdf.drawString(60, 64, f"Issued on: {payload['issue_date']}")
    pdf.drawRightString(width - 60, 80, "Verify at:")
    pdf.drawRightString(width - 60, 64, str(payload["verification_url"]))

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def store_certificate_document(certificate: Certificate, payload: Mapping[str, object]) -> str:
    """Render ``certificate`` and save it into the configured media storage."""
    content = ContentFile(render_certificate_pdf(payload))
    certificate.document.save(f"{certificate.certificate_number}.pdf", content, save=False)
    certificate.save(update_fields=["document", "updated_at"])
    return certificate.document.name
