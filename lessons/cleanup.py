import logging
import shutil
from pathlib import Path

from .utils import hls_dir

logger = logging.getLogger(__name__)


def remove_output_dir(output_dir: Path) -> bool:
    """Recursively delete ``output_dir``. Absent directories are not an error."""
    output_dir = Path(output_dir)
    if not output_dir.exists():
        return True
    try:
        shutil.rmtree(output_dir)
    except FileNotFoundError:
        return True
    except OSError as exc:
        logger.error("Failed to remove %s: %s", output_dir, exc)
        return False
    logger.info("Removed HLS output %s", output_dir)
    return True


def cleanup(storage_root: Path, lesson_id) -> bool:
    return remove_output_dir(hls_dir(storage_root, lesson_id))
