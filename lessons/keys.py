import logging
import secrets
from dataclasses import dataclass
from pathlib import Path

from django.urls import reverse

from .errors import KeyWriteError
from .utils import KEY_FILE_NAME, KEY_INFO_FILE_NAME

logger = logging.getLogger(__name__)

KEY_BYTES = 16
IV_BYTES = 16


@dataclass(frozen=True)
class KeyMaterial:
    key: bytes
    iv_hex: str
    key_uri: str
    key_path: Path
    key_info_path: Path


def key_uri_for(lesson_id, *, base_url: str, template: str = "") -> str:
    """
    URI the player fetches the key from at playback time.
    Must match the key-delivery route (name "lesson-key").
    """
    if template:
        return template.format(lesson_id=lesson_id)
    return f"{base_url.rstrip('/')}{reverse('lesson-key', kwargs={'lesson_id': lesson_id})}"


def render_key_info(key_uri: str, key_path: Path, iv_hex: str) -> str:
    # ffmpeg key info file: URI, key file path, IV (hex)
    return f"{key_uri}\n{key_path}\n{iv_hex}\n"


def generate_key_material(output_dir: Path, key_uri: str) -> KeyMaterial:
    """Write a fresh AES-128 key and the key-info descriptor into ``output_dir``."""
    key = secrets.token_bytes(KEY_BYTES)
    iv_hex = secrets.token_bytes(IV_BYTES).hex()

    key_path = Path(output_dir) / KEY_FILE_NAME
    key_info_path = Path(output_dir) / KEY_INFO_FILE_NAME

    try:
        key_path.write_bytes(key)
    except OSError as exc:
        raise KeyWriteError(f"Failed to write key file {key_path}: {exc}") from exc

    try:
        key_info_path.write_text(render_key_info(key_uri, key_path, iv_hex), encoding="utf-8")
    except OSError as exc:
        raise KeyWriteError(f"Failed to write key info file {key_info_path}: {exc}") from exc

    logger.debug("Wrote key material to %s", output_dir)
    return KeyMaterial(
        key=key,
        iv_hex=iv_hex,
        key_uri=key_uri,
        key_path=key_path,
        key_info_path=key_info_path,
    )
