import logging
import shutil
import subprocess
from pathlib import Path

from .errors import EmptySourceError, EncoderUnavailableError, MissingSourceError

logger = logging.getLogger(__name__)

VERSION_CHECK_TIMEOUT = 15


def check_source(source_path) -> int:
    """Return the source size in bytes; raise if missing or empty."""
    if not source_path:
        raise MissingSourceError("Lesson has no video path")
    path = Path(source_path)
    if not path.is_file():
        raise MissingSourceError(f"Video file not found: {path}")
    size = path.stat().st_size
    if size == 0:
        raise EmptySourceError(f"Video file is empty: {path}")
    return size


def check_encoder(binary: str = "ffmpeg") -> str:
    """Locate the encoder and run ``-version``; return the first banner line."""
    resolved = shutil.which(binary)
    if resolved is None:
        raise EncoderUnavailableError(f"Encoder binary not found on PATH: {binary}")

    try:
        proc = subprocess.run(
            [resolved, "-version"],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=VERSION_CHECK_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise EncoderUnavailableError(f"Encoder {resolved} could not be executed: {exc}") from exc

    if proc.returncode != 0:
        raise EncoderUnavailableError(
            f"Encoder {resolved} -version exited with code {proc.returncode}"
        )

    banner = proc.stdout.decode("utf-8", errors="ignore").strip().splitlines()
    version = banner[0] if banner else resolved
    logger.info("Encoder available: %s", version)
    return version
