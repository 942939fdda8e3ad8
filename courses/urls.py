from django.urls import path

from .views import (
    AnalyticsOverviewView,
    CollegeAnalyticsView,
    CourseAnalyticsView,
    CourseEnrollView,
    CourseListView,
    CourseResultsSummaryView,
    CourseResultsView,
    EnrollmentListView,
)

urlpatterns = [
    path("courses/", CourseListView.as_view(), name="course-list"),
    path("courses/<int:course_id>/enroll/", CourseEnrollView.as_view(), name="course-enroll"),
    path("courses/<int:course_id>/results/", CourseResultsView.as_view(), name="course-results"),
    path("enrollments/", EnrollmentListView.as_view(), name="enrollment-list"),
    path("analytics/overview/", AnalyticsOverviewView.as_view(), name="analytics-overview"),
    path("analytics/courses/", CourseAnalyticsView.as_view(), name="analytics-courses"),
    path(
        "analytics/courses/<int:course_id>/",
        CourseResultsSummaryView.as_view(),
        name="analytics-course-detail",
    ),
    path("analytics/colleges/", CollegeAnalyticsView.as_view(), name="analytics-colleges"),
]
