from django.urls import path

from .views import (
    CertificateIssueView,
    CertificateListView,
    CertificateRenderPayloadView,
    CertificateRevokeView,
    CertificateVerifyView,
    EnrollmentFinalizeView,
)

urlpatterns = [
    path(
        "enrollments/<int:enrollment_id>/finalize/",
        EnrollmentFinalizeView.as_view(),
        name="enrollment-finalize",
    ),
    path(
        "enrollments/<int:enrollment_id>/certificate/",
        CertificateIssueView.as_view(),
        name="certificate-issue",
    ),
    path("certificates/", CertificateListView.as_view(), name="certificate-list"),
    path(
        "certificates/<int:certificate_id>/revoke/",
        CertificateRevokeView.as_view(),
        name="certificate-revoke",
    ),
    path(
        "certificates/<int:certificate_id>/payload/",
        CertificateRenderPayloadView.as_view(),
        name="certificate-payload",
    ),
    path(
        "certificates/verify/<str:verification_hash>/",
        CertificateVerifyView.as_view(),
        name="certificate-verify",
    ),
]
