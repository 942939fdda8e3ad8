from django.urls import path

from .views import CourseDoubtCreateView, DoubtAnswerView, DoubtCloseView, DoubtListView

urlpatterns = [
    path("courses/<int:course_id>/doubts/", CourseDoubtCreateView.as_view(), name="doubt-create"),
    path("doubts/", DoubtListView.as_view(), name="doubt-list"),
    path("doubts/<int:doubt_id>/answer/", DoubtAnswerView.as_view(), name="doubt-answer"),
    path("doubts/<int:doubt_id>/close/", DoubtCloseView.as_view(), name="doubt-close"),
]
