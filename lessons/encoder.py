import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .config import EncoderProfile
from .errors import EncoderUnavailableError, TranscodeExecutionError, TranscodeTimeoutError
from .preflight import check_encoder
from .utils import PLAYLIST_NAME, SEGMENT_PATTERN

logger = logging.getLogger(__name__)

OUTPUT_TAIL_CHARS = 4000


def _decode_tail(data) -> str:
    if not data:
        return ""
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="ignore")
    return data[-OUTPUT_TAIL_CHARS:]


@dataclass(frozen=True)
class TranscodeResult:
    playlist_path: Path
    elapsed: float
    stderr: str = ""


class FFmpegTranscoder:
    """Encrypted single-rendition HLS encode via an ffmpeg child process."""

    def __init__(self, profile: EncoderProfile):
        self.profile = profile

    def ensure_available(self) -> str:
        return check_encoder(self.profile.binary)

    def build_command(self, source: Path, output_dir: Path, key_info_path: Path) -> List[str]:
        p = self.profile
        output_dir = Path(output_dir)
        return [
            p.binary,
            "-hide_banner",
            "-nostats",
            "-y",
            "-i", str(source),
            "-c:v", "libx264",
            "-preset", p.preset,
            "-crf", str(p.crf),
            "-maxrate", p.maxrate,
            "-bufsize", p.bufsize,
            "-vf", f"scale=-2:{p.height}",
            "-c:a", "aac",
            "-b:a", p.audio_bitrate,
            "-ar", str(p.audio_sample_rate),
            "-f", "hls",
            "-hls_time", str(p.segment_seconds),
            "-hls_list_size", "0",
            # vod: ENDLIST is only written once encoding finishes
            "-hls_playlist_type", "vod",
            "-hls_segment_filename", str(output_dir / SEGMENT_PATTERN),
            "-hls_key_info_file", str(key_info_path),
            str(output_dir / PLAYLIST_NAME),
        ]

    def transcode(self, source: Path, output_dir: Path, key_info_path: Path) -> TranscodeResult:
        cmd = self.build_command(source, output_dir, key_info_path)
        timeout = self.profile.timeout
        logger.info("Running encoder: %s", " ".join(cmd))

        started = time.monotonic()
        try:
            # subprocess.run kills the child when the timeout expires
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            stderr = _decode_tail(exc.stderr)
            raise TranscodeTimeoutError(
                f"Encoder exceeded {timeout:.0f}s limit", timeout=timeout, stderr=stderr
            ) from exc
        except FileNotFoundError as exc:
            raise EncoderUnavailableError(f"Encoder binary not found: {cmd[0]}") from exc
        elapsed = time.monotonic() - started

        stdout = _decode_tail(proc.stdout)
        stderr = _decode_tail(proc.stderr)
        if proc.returncode != 0:
            raise TranscodeExecutionError(
                f"Encoder exited with code {proc.returncode}",
                returncode=proc.returncode,
                stdout=stdout,
                stderr=stderr,
            )

        logger.info("Encoder finished in %.2fs", elapsed)
        return TranscodeResult(
            playlist_path=Path(output_dir) / PLAYLIST_NAME,
            elapsed=elapsed,
            stderr=stderr,
        )
