from django.urls import path

from .views import (
    AssignmentDetailView,
    AssignmentStartView,
    AssignmentSubmitView,
    PracticalEvaluateView,
    SubmissionListView,
    TheoryEvaluateView,
)

urlpatterns = [
    path(
        "assignments/<int:assignment_id>/",
        AssignmentDetailView.as_view(),
        name="assignment-detail",
    ),
    path(
        "assignments/<int:assignment_id>/start/",
        AssignmentStartView.as_view(),
        name="assignment-start",
    ),
    path(
        "assignments/<int:assignment_id>/submit/",
        AssignmentSubmitView.as_view(),
        name="assignment-submit",
    ),
    path("submissions/", SubmissionListView.as_view(), name="submission-list"),
    path(
        "submissions/<int:submission_id>/theory-evaluate/",
        TheoryEvaluateView.as_view(),
        name="submission-theory-evaluate",
    ),
    path(
        "submissions/<int:submission_id>/practical-evaluate/",
        PracticalEvaluateView.as_view(),
        name="submission-practical-evaluate",
    ),
]
