"""Pre-conversion checks: size ceiling, dangerous file types, allowed conversions."""
import logging
import os
from pathlib import Path
from typing import Optional, Union

from tconvert.config import MAX_FILE_SIZE_BYTES
from tconvert.conversion.catalog import ALLOWED_TARGETS, categorize, normalize_format, normalize_mime
from tconvert.conversion.errors import FileTooLargeError, FileUnreadableError

logger = logging.getLogger("tconvert.validation")

DANGEROUS_EXTENSIONS = frozenset({
    ".exe", ".sh", ".bat", ".cmd", ".com", ".scr", ".vbs", ".js", ".jar",
    ".app", ".deb", ".rpm", ".msi", ".ps1", ".dll",
})

DANGEROUS_MIMES = frozenset({
    "application/x-executable",
    "application/x-sh",
    "application/x-shellscript",
    "application/x-bat",
    "application/x-msdownload",
    "application/x-msdos-program",
    "application/java-archive",
    "application/javascript",
    "text/javascript",
})


def check_size(path: Union[str, Path], limit: Optional[int] = None) -> int:
    """Return the file size in bytes; raise if it is over the limit or unreadable."""
    limit = MAX_FILE_SIZE_BYTES if limit is None else limit
    try:
        size = os.stat(path).st_size
    except OSError as e:
        raise FileUnreadableError(f"Failed to read file {path}: {e.strerror or e}") from e
    if size > limit:
        raise FileTooLargeError(size, limit)
    return size


def check_safety(mime: Optional[str], path: Union[str, Path]) -> bool:
    """False if the extension or the declared MIME names an executable or script."""
    ext = Path(path).suffix.lower()
    if ext in DANGEROUS_EXTENSIONS:
        logger.warning("Rejected dangerous extension %s for %s", ext, path)
        return False
    mime = normalize_mime(mime)
    if mime in DANGEROUS_MIMES:
        logger.warning("Rejected dangerous MIME %s for %s", mime, path)
        return False
    return True


def is_allowed(mime: Optional[str], target_format: Optional[str]) -> bool:
    category = categorize(mime)
    if category is None:
        return False
    return normalize_format(target_format) in ALLOWED_TARGETS[category]
