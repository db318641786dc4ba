from rest_framework import serializers
from .models import Lesson


class LessonVideoSerializer(serializers.ModelSerializer):
    status = serializers.CharField(source="video_status", read_only=True)
    progress = serializers.IntegerField(source="video_progress", read_only=True)
    hls_path = serializers.CharField(source="video_hls_path", read_only=True)
    attempts = serializers.IntegerField(source="video_attempts", read_only=True)
    error = serializers.CharField(source="video_last_error", read_only=True)

    class Meta:
        model = Lesson
        fields = [
            "id",
            "title",
            "status",
            "progress",
            "hls_path",
            "attempts",
            "error",
            "updated_at",
        ]
