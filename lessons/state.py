"""Lesson record access for the video pipeline.

``DjangoStateTracker`` is the only code that writes the ``video_*`` fields of a
:class:`~lessons.models.Lesson`. Every write is a single filtered ``UPDATE`` so
that status guards (never leave ``completed``, never lower progress) are
enforced by the database rather than by read-modify-write in Python.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Union

from django.db import DatabaseError
from django.utils import timezone

from .errors import LessonNotFoundError
from .models import Lesson

logger = logging.getLogger(__name__)

Status = Lesson.VideoStatus

ERROR_TEXT_LIMIT = 4000


@dataclass(frozen=True)
class LessonVideoRecord:
    lesson_id: int
    source_path: str
    status: str
    progress: int = 0
    attempts: int = 0
    error_kind: str = ""
    enqueued_at: Optional[datetime] = None


@dataclass(frozen=True)
class Success:
    encryption_key: bytes
    playlist_path: str


@dataclass(frozen=True)
class Failure:
    reason: str
    kind: str
    retry_at: Optional[datetime] = None


Outcome = Union[Success, Failure]


class StateTracker(Protocol):
    def load(self, lesson_id) -> LessonVideoRecord: ...

    def begin_attempt(self, lesson_id, attempt: int) -> bool: ...

    def record_progress(self, lesson_id, percent: int) -> None: ...

    def record_outcome(self, lesson_id, outcome: Outcome) -> None: ...


def _clamp(percent) -> int:
    return max(0, min(100, int(percent)))


class DjangoStateTracker:
    def load(self, lesson_id) -> LessonVideoRecord:
        try:
            lesson = Lesson.objects.get(pk=lesson_id)
        except Lesson.DoesNotExist as exc:
            raise LessonNotFoundError(f"Lesson {lesson_id} does not exist") from exc
        return LessonVideoRecord(
            lesson_id=lesson.pk,
            source_path=lesson.video_path,
            status=lesson.video_status,
            progress=lesson.video_progress,
            attempts=lesson.video_attempts,
            error_kind=lesson.video_error_kind,
            enqueued_at=lesson.video_enqueued_at,
        )

    def begin_attempt(self, lesson_id, attempt: int) -> bool:
        """Move the lesson into ``processing``. False if completed or gone."""
        updated = (
            Lesson.objects.filter(pk=lesson_id)
            .exclude(video_status=Status.COMPLETED)
            .update(
                video_status=Status.PROCESSING,
                video_progress=0,
                video_attempts=attempt,
                video_retry_at=None,
                updated_at=timezone.now(),
            )
        )
        return updated == 1

    def record_progress(self, lesson_id, percent: int) -> None:
        percent = _clamp(percent)
        try:
            Lesson.objects.filter(
                pk=lesson_id,
                video_status=Status.PROCESSING,
                video_progress__lt=percent,
            ).update(video_progress=percent, updated_at=timezone.now())
        except DatabaseError as exc:
            logger.warning("Could not record progress %d%% for lesson %s: %s", percent, lesson_id, exc)

    def record_outcome(self, lesson_id, outcome: Outcome) -> None:
        now = timezone.now()
        qs = Lesson.objects.filter(pk=lesson_id).exclude(video_status=Status.COMPLETED)
        if isinstance(outcome, Success):
            # key and playlist land in the same UPDATE as the status flip
            qs.update(
                video_status=Status.COMPLETED,
                video_progress=100,
                video_encryption_key=outcome.encryption_key,
                video_hls_path=outcome.playlist_path,
                video_last_error="",
                video_error_kind="",
                video_retry_at=None,
                updated_at=now,
            )
        else:
            qs.update(
                video_status=Status.FAILED,
                video_last_error=outcome.reason[:ERROR_TEXT_LIMIT],
                video_error_kind=outcome.kind,
                video_retry_at=outcome.retry_at,
                updated_at=now,
            )
