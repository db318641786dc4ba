from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import status, views
from rest_framework.response import Response

from .models import Lesson
from .serializers import LessonVideoSerializer
from .tasks import enqueue_lesson_video, video_in_flight


class LessonVideoDetailView(views.APIView):
    def get(self, request, lesson_id):
        lesson = get_object_or_404(Lesson, pk=lesson_id)
        return Response(LessonVideoSerializer(lesson).data)


class LessonVideoProcessView(views.APIView):
    """
    Queues (re)processing of the lesson's uploaded video.
    Refuses while an attempt is queued, running or waiting to be retried.
    """

    def post(self, request, lesson_id):
        lesson = get_object_or_404(Lesson, pk=lesson_id)
        if video_in_flight(lesson):
            return Response({"detail": "Video is already being processed."}, status=status.HTTP_409_CONFLICT)
        if not lesson.video_path:
            return Response({"detail": "Lesson has no uploaded video."}, status=status.HTTP_400_BAD_REQUEST)

        enqueue_lesson_video(lesson)
        return Response({"lesson_id": lesson.pk, "status": lesson.video_status}, status=status.HTTP_202_ACCEPTED)


class LessonKeyView(views.APIView):
    """
    Key delivery for the HLS player. Its URL is the one written into every
    key-info descriptor, so the route name must stay "lesson-key".
    """

    def get(self, request, lesson_id):
        lesson = get_object_or_404(Lesson, pk=lesson_id)
        key = lesson.video_encryption_key
        if lesson.video_status != Lesson.VideoStatus.COMPLETED or not key:
            return Response({"detail": "Not found"}, status=status.HTTP_404_NOT_FOUND)

        response = HttpResponse(bytes(key), content_type="application/octet-stream")
        response["Cache-Control"] = "no-store"
        return response
