from dataclasses import dataclass
from pathlib import Path

from django.conf import settings


@dataclass(frozen=True)
class EncoderProfile:
    binary: str = "ffmpeg"
    segment_seconds: int = 10
    crf: int = 28
    preset: str = "fast"
    maxrate: str = "1M"
    bufsize: str = "2M"
    height: int = 480
    audio_bitrate: str = "96k"
    audio_sample_rate: int = 44100
    timeout: float = 60 * 30


@dataclass(frozen=True)
class RetrySettings:
    max_attempts: int = 5
    backoff_seconds: int = 30
    deadline_seconds: int = 60 * 60 * 4


@dataclass(frozen=True)
class PipelineConfig:
    storage_root: Path
    encoder: EncoderProfile
    retry: RetrySettings
    key_base_url: str = "http://127.0.0.1:8000"
    key_url_template: str = ""
    lock_redis_url: str = ""
    lock_wait_seconds: int = 60
    queue: str = "video-processing"

    @classmethod
    def from_settings(cls) -> "PipelineConfig":
        """Snapshot the pipeline knobs from Django settings."""
        return cls(
            storage_root=Path(settings.PRIVATE_STORAGE_ROOT),
            encoder=EncoderProfile(
                binary=settings.FFMPEG_BINARY,
                segment_seconds=settings.HLS_SEGMENT_SECONDS,
                crf=settings.HLS_VIDEO_CRF,
                preset=settings.HLS_VIDEO_PRESET,
                maxrate=settings.HLS_VIDEO_MAXRATE,
                bufsize=settings.HLS_VIDEO_BUFSIZE,
                height=settings.HLS_VIDEO_HEIGHT,
                audio_bitrate=settings.HLS_AUDIO_BITRATE,
                audio_sample_rate=settings.HLS_AUDIO_SAMPLE_RATE,
                timeout=settings.TRANSCODE_TIMEOUT_SECONDS,
            ),
            retry=RetrySettings(
                max_attempts=settings.VIDEO_MAX_ATTEMPTS,
                backoff_seconds=settings.VIDEO_RETRY_BACKOFF_SECONDS,
                deadline_seconds=settings.VIDEO_RETRY_DEADLINE_SECONDS,
            ),
            key_base_url=settings.LESSON_KEY_BASE_URL,
            key_url_template=settings.LESSON_KEY_URL_TEMPLATE,
            lock_redis_url=settings.LESSON_LOCK_REDIS_URL,
            lock_wait_seconds=settings.LESSON_LOCK_WAIT_SECONDS,
            queue=settings.VIDEO_QUEUE,
        )
