"""Scratch storage: per-request file names and best-effort cleanup."""
import logging
import re
import time
import uuid
from pathlib import Path
from typing import Optional, Union

from tconvert.config import SCRATCH_DIR

logger = logging.getLogger("tconvert.scratch")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def ensure_scratch_dir(directory: Optional[Path] = None) -> Path:
    """Create the scratch directory if missing. Safe to call repeatedly."""
    directory = Path(directory or SCRATCH_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def scratch_path(
    user_id: Union[str, int],
    extension: str = "",
    role: str = "input",
    directory: Optional[Path] = None,
) -> Path:
    """Unique path for one request: <role>_<user>_<ms timestamp>_<uuid8><ext>."""
    directory = Path(directory or SCRATCH_DIR)
    user = _UNSAFE_CHARS.sub("", str(user_id))[:64] or "anon"
    ext = extension.lower().lstrip(".")
    ext = f".{ext}" if ext and not _UNSAFE_CHARS.search(ext) else ".tmp"
    timestamp = int(time.time() * 1000)
    return directory / f"{role}_{user}_{timestamp}_{uuid.uuid4().hex[:8]}{ext}"


def output_path_for(input_path: Union[str, Path], target_format: str, unique: bool = False) -> Path:
    """Artifact path beside the input: <stem>_converted[_<uuid8>].<target>."""
    input_path = Path(input_path)
    suffix = f"_{uuid.uuid4().hex[:8]}" if unique else ""
    return input_path.with_name(f"{input_path.stem}_converted{suffix}.{target_format}")


def remove_file(path: Optional[Union[str, Path]]) -> None:
    """Remove a scratch file. Never raises; missing files are ignored."""
    if not path:
        return
    try:
        Path(path).unlink(missing_ok=True)
    except (OSError, ValueError) as e:
        logger.warning("Could not remove %s: %s", path, e)
