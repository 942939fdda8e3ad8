from django.urls import path

from .views import (
    VerifierRequestAcceptView,
    VerifierRequestListCreateView,
    VerifierRequestRejectView,
)

urlpatterns = [
    path(
        "verifier-requests/",
        VerifierRequestListCreateView.as_view(),
        name="verifier-request-list",
    ),
    path(
        "verifier-requests/<int:request_id>/accept/",
        VerifierRequestAcceptView.as_view(),
        name="verifier-request-accept",
    ),
    path(
        "verifier-requests/<int:request_id>/reject/",
        VerifierRequestRejectView.as_view(),
        name="verifier-request-reject",
    ),
]
