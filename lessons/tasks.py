import logging
from dataclasses import asdict
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .models import Lesson
from .pipeline import LessonPipeline, Verdict

logger = logging.getLogger(__name__)

# hard limit sits above the encoder timeout so the pipeline can report first
SOFT_TIME_LIMIT = settings.TRANSCODE_TIMEOUT_SECONDS + 300
TIME_LIMIT = settings.TRANSCODE_TIMEOUT_SECONDS + 600


def video_in_flight(lesson: Lesson, now=None) -> bool:
    """True while a queued, running or scheduled-retry attempt still owns the lesson."""
    status = lesson.video_status
    if status == Lesson.VideoStatus.PROCESSING:
        return True
    if not lesson.video_enqueued_at:
        return False
    now = now or timezone.now()
    if now >= lesson.video_enqueued_at + timedelta(seconds=settings.VIDEO_RETRY_DEADLINE_SECONDS):
        return False
    if status == Lesson.VideoStatus.PENDING:
        return True
    return status == Lesson.VideoStatus.FAILED and lesson.video_retry_at is not None


def enqueue_lesson_video(lesson: Lesson):
    """Reset the lesson's video state to pending and dispatch the first attempt."""
    now = timezone.now()
    Lesson.objects.filter(pk=lesson.pk).update(
        video_status=Lesson.VideoStatus.PENDING,
        video_progress=0,
        video_attempts=0,
        video_encryption_key=None,
        video_hls_path="",
        video_last_error="",
        video_error_kind="",
        video_enqueued_at=now,
        video_retry_at=None,
        updated_at=now,
    )
    lesson.refresh_from_db()
    return process_lesson_video.apply_async(
        args=(lesson.pk,),
        kwargs={"enqueued_at": now.isoformat()},
        queue=settings.VIDEO_QUEUE,
    )


@shared_task(
    bind=True,
    acks_late=True,
    soft_time_limit=SOFT_TIME_LIMIT,
    time_limit=TIME_LIMIT,
)
def process_lesson_video(self, lesson_id, enqueued_at=None):
    attempt = self.request.retries + 1

    pipeline = LessonPipeline()
    result = pipeline.run_attempt(
        lesson_id,
        attempt=attempt,
        enqueued_at=parse_datetime(enqueued_at) if enqueued_at else None,
    )

    if result.verdict == Verdict.RETRY:
        raise self.retry(
            args=(lesson_id,),
            kwargs={"enqueued_at": enqueued_at},
            countdown=result.retry_in,
            max_retries=pipeline.policy.max_attempts - 1,
        )
    if result.verdict == Verdict.FAILED:
        logger.error("Lesson %s video failed: %s", lesson_id, result.error_kind)
    return asdict(result)
