from pathlib import Path

HLS_ROOT = "private_videos/hls"
PLAYLIST_NAME = "index.m3u8"
SEGMENT_PATTERN = "segment_%03d.ts"
KEY_FILE_NAME = "enc.key"
KEY_INFO_FILE_NAME = "enc.keyinfo"


def hls_dir_rel(lesson_id) -> str:
    """Output directory of a lesson, relative to the private storage root."""
    return f"{HLS_ROOT}/lesson_{lesson_id}"


def hls_dir(storage_root: Path, lesson_id) -> Path:
    return Path(storage_root) / hls_dir_rel(lesson_id)


def playlist_rel_path(lesson_id) -> str:
    return f"{hls_dir_rel(lesson_id)}/{PLAYLIST_NAME}"


def source_abs_path(storage_root: Path, rel_path: str) -> Path:
    """Resolve a stored source path; absolute paths are kept as-is."""
    candidate = Path(rel_path)
    if candidate.is_absolute():
        return candidate
    return Path(storage_root) / candidate
