"""Transcode-and-protect pipeline for a single lesson video.

One call to :meth:`LessonPipeline.run_attempt` is one attempt:

    preflight -> fresh output dir -> key material -> ffmpeg -> verify -> outcome

Stage failures are raised as :class:`~lessons.errors.LessonVideoError` and
converted here into a tagged :class:`AttemptResult`. The queue adapter
(``lessons.tasks``) only looks at ``AttemptResult.verdict``.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import partial
from pathlib import Path
from typing import Callable, ContextManager, Optional

from django.utils import timezone

from .cleanup import cleanup, remove_output_dir
from .config import PipelineConfig, RetrySettings
from .encoder import FFmpegTranscoder
from .errors import (
    ErrorKind,
    LessonBusyError,
    LessonNotFoundError,
    LessonVideoError,
    OutputDirectoryError,
    TranscodeExecutionError,
    TranscodeTimeoutError,
)
from .keys import generate_key_material, key_uri_for
from .locks import lesson_lock
from .preflight import check_source
from .state import DjangoStateTracker, Failure, StateTracker, Success
from .utils import hls_dir, playlist_rel_path, source_abs_path
from .verification import verify_output

logger = logging.getLogger(__name__)

LOCK_MARGIN_SECONDS = 300


class Progress:
    ENVIRONMENT_OK = 10
    DIRECTORIES_READY = 20
    KEYS_WRITTEN = 30
    ENCODER_STARTED = 40
    ENCODER_FINISHED = 85
    VERIFIED = 95


class Verdict:
    COMPLETED = "completed"
    RETRY = "retry"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class TranscodeJob:
    lesson_id: int
    source_path: Optional[Path]
    output_dir: Path
    attempt: int
    enqueued_at: datetime


@dataclass(frozen=True)
class AttemptResult:
    verdict: str
    lesson_id: int
    attempt: int
    error_kind: str = ""
    message: str = ""
    segment_count: int = 0
    retry_in: Optional[int] = None


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    backoff_seconds: int = 30
    deadline_seconds: int = 60 * 60 * 4

    @classmethod
    def from_settings(cls, retry: RetrySettings) -> "RetryPolicy":
        return cls(
            max_attempts=retry.max_attempts,
            backoff_seconds=retry.backoff_seconds,
            deadline_seconds=retry.deadline_seconds,
        )

    def deadline(self, enqueued_at: datetime) -> datetime:
        return enqueued_at + timedelta(seconds=self.deadline_seconds)

    def should_retry(self, *, retryable: bool, attempt: int, enqueued_at: datetime, now: datetime) -> bool:
        if not retryable:
            return False
        if attempt >= self.max_attempts:
            return False
        return now < self.deadline(enqueued_at)


def describe(exc: LessonVideoError) -> str:
    """Failure text for the lesson record, with the encoder stderr tail if any."""
    message = str(exc) or exc.__class__.__name__
    if isinstance(exc, (TranscodeExecutionError, TranscodeTimeoutError)) and exc.stderr:
        message = f"{message}\n{exc.stderr[-1000:]}"
    return message


class LessonPipeline:
    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        *,
        state: Optional[StateTracker] = None,
        transcoder=None,
        lock: Optional[Callable[[int], ContextManager]] = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.config = config or PipelineConfig.from_settings()
        self.state = state or DjangoStateTracker()
        self.transcoder = transcoder or FFmpegTranscoder(self.config.encoder)
        self.lock = lock or partial(
            lesson_lock,
            redis_url=self.config.lock_redis_url,
            timeout=int(self.config.encoder.timeout) + LOCK_MARGIN_SECONDS,
            blocking_timeout=self.config.lock_wait_seconds,
        )
        self.policy = RetryPolicy.from_settings(self.config.retry)
        self.clock = clock

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def run_attempt(self, lesson_id, attempt: int = 1, enqueued_at: Optional[datetime] = None) -> AttemptResult:
        try:
            with self.lock(lesson_id):
                return self._run_locked(lesson_id, attempt, enqueued_at)
        except LessonBusyError as exc:
            # another attempt owns the record; leave it untouched
            logger.warning("Lesson %s attempt %d: %s", lesson_id, attempt, exc)
            retry = self.policy.should_retry(
                retryable=True, attempt=attempt, enqueued_at=enqueued_at or self.clock(), now=self.clock()
            )
            return AttemptResult(
                verdict=Verdict.RETRY if retry else Verdict.FAILED,
                lesson_id=lesson_id,
                attempt=attempt,
                error_kind=exc.kind,
                message=str(exc),
                retry_in=self.policy.backoff_seconds if retry else None,
            )

    def _run_locked(self, lesson_id, attempt: int, enqueued_at: Optional[datetime]) -> AttemptResult:
        try:
            record = self.state.load(lesson_id)
        except LessonNotFoundError as exc:
            logger.error("Lesson %s attempt %d: %s", lesson_id, attempt, exc)
            return AttemptResult(
                verdict=Verdict.FAILED,
                lesson_id=lesson_id,
                attempt=attempt,
                error_kind=exc.kind,
                message=str(exc),
            )

        if enqueued_at and record.enqueued_at and enqueued_at != record.enqueued_at:
            # a newer enqueue owns the record; this chain is superseded
            logger.info("Lesson %s was re-enqueued; dropping stale attempt %d", lesson_id, attempt)
            return AttemptResult(verdict=Verdict.SKIPPED, lesson_id=lesson_id, attempt=attempt)
        enqueued_at = enqueued_at or record.enqueued_at or self.clock()

        if not self.state.begin_attempt(lesson_id, attempt):
            logger.info("Lesson %s already completed; skipping attempt %d", lesson_id, attempt)
            return AttemptResult(verdict=Verdict.SKIPPED, lesson_id=lesson_id, attempt=attempt)

        job = TranscodeJob(
            lesson_id=lesson_id,
            source_path=source_abs_path(self.config.storage_root, record.source_path) if record.source_path else None,
            output_dir=hls_dir(self.config.storage_root, lesson_id),
            attempt=attempt,
            enqueued_at=enqueued_at,
        )
        logger.info("Processing video for lesson %s (attempt %d/%d)", lesson_id, attempt, self.policy.max_attempts)

        try:
            segment_count, key = self._execute(job)
        except LessonVideoError as exc:
            previous_kind = record.error_kind if attempt > 1 else ""
            return self._handle_failure(job, exc, previous_kind)
        except Exception as exc:
            logger.exception("Unexpected error processing lesson %s (attempt %d)", lesson_id, attempt)
            self.state.record_outcome(lesson_id, Failure(reason=str(exc) or repr(exc), kind=ErrorKind.INTERNAL))
            cleanup(self.config.storage_root, lesson_id)
            raise

        self.state.record_outcome(
            lesson_id,
            Success(encryption_key=key, playlist_path=playlist_rel_path(lesson_id)),
        )
        logger.info("Video for lesson %s processed (%d segments)", lesson_id, segment_count)
        return AttemptResult(
            verdict=Verdict.COMPLETED,
            lesson_id=lesson_id,
            attempt=attempt,
            segment_count=segment_count,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    def _execute(self, job: TranscodeJob):
        progress = partial(self.state.record_progress, job.lesson_id)

        check_source(job.source_path)
        self.transcoder.ensure_available()
        progress(Progress.ENVIRONMENT_OK)

        self._prepare_output_dir(job.output_dir)
        progress(Progress.DIRECTORIES_READY)

        key_uri = key_uri_for(
            job.lesson_id,
            base_url=self.config.key_base_url,
            template=self.config.key_url_template,
        )
        material = generate_key_material(job.output_dir, key_uri)
        progress(Progress.KEYS_WRITTEN)

        progress(Progress.ENCODER_STARTED)
        self.transcoder.transcode(job.source_path, job.output_dir, material.key_info_path)
        progress(Progress.ENCODER_FINISHED)

        segment_count = verify_output(job.output_dir)
        progress(Progress.VERIFIED)
        return segment_count, material.key

    def _prepare_output_dir(self, output_dir: Path) -> None:
        # leftovers from an earlier attempt never mix with this one
        if not remove_output_dir(output_dir):
            raise OutputDirectoryError(f"Could not clear output directory: {output_dir}")
        try:
            output_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputDirectoryError(f"Failed to create output directory {output_dir}: {exc}") from exc

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------
    def _handle_failure(self, job: TranscodeJob, exc: LessonVideoError, previous_kind: str) -> AttemptResult:
        retryable = exc.retryable
        if exc.kind == ErrorKind.IO and previous_kind == ErrorKind.IO:
            retryable = False

        message = describe(exc)
        logger.error(
            "Video processing failed for lesson %s (attempt %d, %s): %s",
            job.lesson_id,
            job.attempt,
            exc.kind,
            message,
        )
        now = self.clock()
        retry = self.policy.should_retry(
            retryable=retryable,
            attempt=job.attempt,
            enqueued_at=job.enqueued_at,
            now=now,
        )
        retry_at = now + timedelta(seconds=self.policy.backoff_seconds) if retry else None
        self.state.record_outcome(job.lesson_id, Failure(reason=message, kind=exc.kind, retry_at=retry_at))

        if retry:
            logger.info(
                "Retrying lesson %s in %ds (attempt %d of %d)",
                job.lesson_id,
                self.policy.backoff_seconds,
                job.attempt + 1,
                self.policy.max_attempts,
            )
            return AttemptResult(
                verdict=Verdict.RETRY,
                lesson_id=job.lesson_id,
                attempt=job.attempt,
                error_kind=exc.kind,
                message=message,
                retry_in=self.policy.backoff_seconds,
            )

        cleanup(self.config.storage_root, job.lesson_id)
        logger.error("Video processing for lesson %s failed permanently after %d attempt(s)", job.lesson_id, job.attempt)
        return AttemptResult(
            verdict=Verdict.FAILED,
            lesson_id=job.lesson_id,
            attempt=job.attempt,
            error_kind=exc.kind,
            message=message,
        )
