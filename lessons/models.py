from django.db import models


class Lesson(models.Model):
    class VideoStatus(models.TextChoices):
        PENDING = "pending"
        PROCESSING = "processing"
        COMPLETED = "completed"
        FAILED = "failed"

    title = models.CharField(max_length=255)
    video_path = models.CharField(max_length=512, blank=True, default="")  # relative to PRIVATE_STORAGE_ROOT
    video_status = models.CharField(
        max_length=16, choices=VideoStatus.choices, default=VideoStatus.PENDING
    )
    video_progress = models.PositiveSmallIntegerField(default=0)  # 0..100
    video_encryption_key = models.BinaryField(max_length=16, null=True, blank=True, editable=False)
    video_hls_path = models.CharField(max_length=512, blank=True, default="")
    video_attempts = models.PositiveSmallIntegerField(default=0)
    video_last_error = models.TextField(blank=True, default="")
    video_error_kind = models.CharField(max_length=32, blank=True, default="")
    video_enqueued_at = models.DateTimeField(null=True, blank=True)
    video_retry_at = models.DateTimeField(null=True, blank=True)  # set while a retry is scheduled

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["video_status"], name="lessons_video_status_idx")]

    def __str__(self):
        return f"Lesson {self.pk}: {self.title}"
