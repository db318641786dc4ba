from datetime import timedelta

import pytest
from celery.exceptions import Retry
from django.utils import timezone

from lessons import tasks
from lessons.models import Lesson
from lessons.pipeline import AttemptResult, RetryPolicy, Verdict

pytestmark = pytest.mark.django_db


class StubPipeline:
    def __init__(self, verdict, retry_in=None):
        self.policy = RetryPolicy(max_attempts=5, backoff_seconds=30)
        self.verdict = verdict
        self.retry_in = retry_in
        self.calls = []

    def run_attempt(self, lesson_id, attempt=1, enqueued_at=None):
        self.calls.append((lesson_id, attempt, enqueued_at))
        return AttemptResult(verdict=self.verdict, lesson_id=lesson_id, attempt=attempt, retry_in=self.retry_in)


def test_completed_attempt_returns_result(monkeypatch, lesson):
    stub = StubPipeline(Verdict.COMPLETED)
    monkeypatch.setattr(tasks, "LessonPipeline", lambda: stub)

    result = tasks.process_lesson_video.run(lesson.pk, enqueued_at="2026-10-17T08:00:00+00:00")

    assert result["verdict"] == Verdict.COMPLETED
    lesson_id, attempt, enqueued_at = stub.calls[0]
    assert (lesson_id, attempt) == (lesson.pk, 1)
    assert enqueued_at.isoformat() == "2026-10-17T08:00:00+00:00"


def test_retry_verdict_schedules_retry(monkeypatch, lesson):
    stub = StubPipeline(Verdict.RETRY, retry_in=30)
    monkeypatch.setattr(tasks, "LessonPipeline", lambda: stub)
    seen = {}

    def fake_retry(**kwargs):
        seen.update(kwargs)
        return Retry("retry scheduled")

    monkeypatch.setattr(tasks.process_lesson_video, "retry", fake_retry)

    with pytest.raises(Retry):
        tasks.process_lesson_video.run(lesson.pk, enqueued_at="2026-10-17T08:00:00+00:00")

    assert seen["countdown"] == 30
    assert seen["max_retries"] == 4
    assert seen["args"] == (lesson.pk,)
    assert seen["kwargs"] == {"enqueued_at": "2026-10-17T08:00:00+00:00"}


def test_enqueue_resets_record_and_dispatches(monkeypatch, lesson, settings):
    sent = {}

    def fake_apply_async(args=None, kwargs=None, queue=None, **options):
        sent.update(args=args, kwargs=kwargs, queue=queue)

    monkeypatch.setattr(tasks.process_lesson_video, "apply_async", fake_apply_async)
    Lesson.objects.filter(pk=lesson.pk).update(
        video_status=Lesson.VideoStatus.FAILED,
        video_progress=40,
        video_last_error="boom",
        video_error_kind="io",
        video_retry_at=timezone.now(),
    )

    tasks.enqueue_lesson_video(lesson)

    assert lesson.video_status == Lesson.VideoStatus.PENDING
    assert lesson.video_progress == 0
    assert lesson.video_error_kind == ""
    assert lesson.video_enqueued_at is not None
    assert lesson.video_retry_at is None
    assert sent["args"] == (lesson.pk,)
    assert sent["kwargs"]["enqueued_at"] == lesson.video_enqueued_at.isoformat()
    assert sent["queue"] == settings.VIDEO_QUEUE


def test_missing_enqueued_at_is_not_invented(monkeypatch, lesson):
    stub = StubPipeline(Verdict.COMPLETED)
    monkeypatch.setattr(tasks, "LessonPipeline", lambda: stub)

    tasks.process_lesson_video.run(lesson.pk)

    assert stub.calls == [(lesson.pk, 1, None)]


def test_in_flight_covers_scheduled_retries(lesson, settings):
    now = timezone.now()
    Status = Lesson.VideoStatus

    lesson.video_status = Status.PROCESSING
    assert tasks.video_in_flight(lesson, now=now)

    lesson.video_enqueued_at = now - timedelta(minutes=1)
    lesson.video_status = Status.PENDING
    assert tasks.video_in_flight(lesson, now=now)

    lesson.video_status = Status.FAILED
    lesson.video_retry_at = now + timedelta(seconds=30)
    assert tasks.video_in_flight(lesson, now=now)

    lesson.video_retry_at = None
    assert not tasks.video_in_flight(lesson, now=now)

    # past the retry deadline nothing will pick the lesson up again
    lesson.video_retry_at = now
    lesson.video_enqueued_at = now - timedelta(seconds=settings.VIDEO_RETRY_DEADLINE_SECONDS + 1)
    assert not tasks.video_in_flight(lesson, now=now)
