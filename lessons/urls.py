from django.urls import path
from .views import LessonKeyView, LessonVideoDetailView, LessonVideoProcessView

urlpatterns = [
    path("lessons/<int:lesson_id>/video/", LessonVideoDetailView.as_view(), name="lesson-video"),
    path("lessons/<int:lesson_id>/video/process/", LessonVideoProcessView.as_view(), name="lesson-video-process"),
    path("lessons/<int:lesson_id>/key/", LessonKeyView.as_view(), name="lesson-key"),
]
