import logging
from pathlib import Path
from typing import List

from .errors import (
    EmptyPlaylistError,
    IncompletePlaylistError,
    KeyFileSizeError,
    MissingPlaylistError,
    MissingSegmentError,
    NoSegmentsError,
)
from .keys import KEY_BYTES
from .utils import KEY_FILE_NAME, PLAYLIST_NAME

logger = logging.getLogger(__name__)

ENDLIST_TAG = "#EXT-X-ENDLIST"


def segment_entries(playlist_text: str) -> List[str]:
    """URI lines of a media playlist (tags and blanks skipped)."""
    entries = []
    for line in playlist_text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        entries.append(line)
    return entries


def verify_output(output_dir: Path) -> int:
    """Check the produced HLS artifacts and return the segment count."""
    output_dir = Path(output_dir)
    playlist = output_dir / PLAYLIST_NAME

    if not playlist.is_file():
        raise MissingPlaylistError(f"Playlist was not created: {playlist}")
    if playlist.stat().st_size == 0:
        raise EmptyPlaylistError(f"Playlist is empty: {playlist}")

    text = playlist.read_text(encoding="utf-8", errors="replace")
    segments = segment_entries(text)
    if not segments:
        raise NoSegmentsError(f"Playlist references no segments: {playlist}")
    if ENDLIST_TAG not in text:
        raise IncompletePlaylistError(f"Playlist has no {ENDLIST_TAG} tag: {playlist}")

    missing = [s for s in segments if not (output_dir / s).is_file()]
    if missing:
        raise MissingSegmentError(
            f"{len(missing)} referenced segment(s) missing, first: {missing[0]}"
        )

    key_file = output_dir / KEY_FILE_NAME
    if not key_file.is_file() or key_file.stat().st_size != KEY_BYTES:
        raise KeyFileSizeError(f"Key file is missing or not {KEY_BYTES} bytes: {key_file}")

    logger.info("Verified HLS output in %s (%d segments)", output_dir, len(segments))
    return len(segments)
