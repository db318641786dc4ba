import threading
import time
from pathlib import Path

import pytest

from lessons.config import EncoderProfile, PipelineConfig, RetrySettings
from lessons.errors import TranscodeExecutionError
from lessons.models import Lesson
from lessons.state import Failure, LessonVideoRecord, Success
from lessons.utils import PLAYLIST_NAME


def write_hls(output_dir: Path, segments: int, marker: str = "a", pause: float = 0.0) -> None:
    """Write what a finished vod encode leaves behind (playlist last)."""
    output_dir = Path(output_dir)
    lines = ["#EXTM3U", "#EXT-X-VERSION:3", "#EXT-X-TARGETDURATION:10", "#EXT-X-PLAYLIST-TYPE:VOD"]
    for i in range(segments):
        name = f"segment_{i:03d}.ts"
        (output_dir / name).write_bytes(marker.encode() * 188)
        lines.append("#EXTINF:10.000000,")
        lines.append(name)
        if pause:
            time.sleep(pause)
    lines.append("#EXT-X-ENDLIST")
    (output_dir / PLAYLIST_NAME).write_text("\n".join(lines) + "\n")


class FakeTranscoder:
    def __init__(self, failures=0, segments=3, marker="a", pause=0.0, error=None):
        self.failures = failures
        self.segments = segments
        self.marker = marker
        self.pause = pause
        self.error = error
        self.calls = 0
        self.key_infos = []

    def ensure_available(self):
        return "ffmpeg version test"

    def transcode(self, source, output_dir, key_info_path):
        self.calls += 1
        self.key_infos.append(Path(key_info_path).read_text())
        if self.error is not None:
            raise self.error
        if self.calls <= self.failures:
            raise TranscodeExecutionError(
                "Encoder exited with code 1", returncode=1, stderr="Conversion failed!"
            )
        write_hls(output_dir, self.segments, self.marker, self.pause)


class MemoryStateTracker:
    """In-memory stand-in for the lesson store."""

    def __init__(self, source_path: str):
        self._guard = threading.Lock()
        self.source_path = source_path
        self.status = Lesson.VideoStatus.PENDING
        self.progress = 0
        self.attempts = 0
        self.error_kind = ""
        self.outcomes = []
        self.progress_log = []

    def load(self, lesson_id):
        return LessonVideoRecord(
            lesson_id=lesson_id,
            source_path=self.source_path,
            status=self.status,
            progress=self.progress,
            attempts=self.attempts,
            error_kind=self.error_kind,
        )

    def begin_attempt(self, lesson_id, attempt):
        with self._guard:
            if self.status == Lesson.VideoStatus.COMPLETED:
                return False
            self.status = Lesson.VideoStatus.PROCESSING
            self.progress = 0
            self.attempts = attempt
            return True

    def record_progress(self, lesson_id, percent):
        with self._guard:
            self.progress_log.append(percent)
            self.progress = max(self.progress, percent)

    def record_outcome(self, lesson_id, outcome):
        with self._guard:
            self.outcomes.append(outcome)
            if isinstance(outcome, Success):
                self.status = Lesson.VideoStatus.COMPLETED
                self.progress = 100
                self.error_kind = ""
            elif isinstance(outcome, Failure):
                self.status = Lesson.VideoStatus.FAILED
                self.error_kind = outcome.kind


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def pipeline_config(storage_root):
    return PipelineConfig(
        storage_root=storage_root,
        encoder=EncoderProfile(timeout=60),
        retry=RetrySettings(max_attempts=3, backoff_seconds=30, deadline_seconds=3600),
        key_base_url="https://courses.example.com",
    )


@pytest.fixture
def source_video(storage_root):
    path = storage_root / "lessons" / "lecture.mp4"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 1024)
    return path


@pytest.fixture
def lesson(db, source_video, storage_root):
    return Lesson.objects.create(
        title="Intro to thermodynamics",
        video_path=str(source_video.relative_to(storage_root)),
    )
