"""Document conversion through LibreOffice (headless)."""
import asyncio
import logging
import os
import platform
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from tconvert.config import BACKEND_TIMEOUT_SECONDS, LIBREOFFICE_BINARY
from tconvert.conversion.backends import DocumentBackend, backend_error_message, run_process
from tconvert.conversion.catalog import format_for_mime, normalize_format
from tconvert.conversion.errors import (
    BackendError,
    ConversionTimeoutError,
    FileUnreadableError,
    UnsupportedFormatError,
)
from tconvert.conversion.scratch import output_path_for, remove_file

logger = logging.getLogger("tconvert.documents")

DOCUMENT_TARGETS = ("pdf",)

_SEARCH_PATHS = {
    "Linux": [
        "/usr/bin/soffice",
        "/usr/bin/libreoffice",
        "/usr/local/bin/soffice",
        "/usr/local/bin/libreoffice",
        "/snap/bin/libreoffice",
    ],
    "Darwin": [
        "/Applications/LibreOffice.app/Contents/MacOS/soffice",
        "/usr/local/bin/soffice",
    ],
    "Windows": [
        r"C:\Program Files\LibreOffice\program\soffice.exe",
        r"C:\Program Files (x86)\LibreOffice\program\soffice.exe",
    ],
}


def find_libreoffice() -> Optional[str]:
    """Locate the LibreOffice executable: known install paths, then PATH."""
    for path in _SEARCH_PATHS.get(platform.system(), []):
        if os.path.isfile(path):
            return path
    for executable in ("soffice", "libreoffice"):
        path = shutil.which(executable)
        if path:
            return path
    return None


class LibreOfficeBackend(DocumentBackend):
    """
    Runs `soffice --headless --convert-to` in a private temporary directory.

    Each call gets its own user profile; LibreOffice refuses to run two
    instances against one profile.
    """

    name = "libreoffice"

    def __init__(self, binary: Optional[str] = LIBREOFFICE_BINARY):
        self.binary = binary

    async def convert(self, data: bytes, target_format: str, suffix: str) -> bytes:
        binary = self.binary or find_libreoffice()
        if not binary:
            raise BackendError("LibreOffice is not installed or not found")

        with tempfile.TemporaryDirectory(prefix="tconvert-office-") as workdir:
            work = Path(workdir)
            source = work / f"source{suffix}"
            source.write_bytes(data)
            out_dir = work / "out"
            cmd = [
                binary,
                f"-env:UserInstallation={(work / 'profile').as_uri()}",
                "--headless",
                "--norestore",
                "--nologo",
                "--convert-to", target_format,
                "--outdir", str(out_dir),
                str(source),
            ]
            logger.info("Running LibreOffice conversion to %s (%d bytes)", target_format, len(data))
            returncode, stdout, stderr = await run_process(cmd, None, operation="document conversion", cwd=work)
            if returncode != 0:
                raise BackendError(backend_error_message(self.name, returncode, stderr, stdout))
            result = out_dir / f"source.{target_format}"
            if not result.is_file():
                # soffice exits 0 even when a filter fails; the reason is on stderr
                raise BackendError(f"LibreOffice produced no output: {(stderr or stdout).strip()[-500:]}")
            return result.read_bytes()


async def convert_document(
    src: Union[str, Path],
    mime: str,
    target_format: str,
    backend: Optional[DocumentBackend] = None,
    timeout: Optional[float] = None,
    output_path: Optional[Union[str, Path]] = None,
) -> Path:
    """Convert a document in one backend call; whichever of result or timeout comes first wins."""
    src = Path(src)
    target = normalize_format(target_format)
    if target not in DOCUMENT_TARGETS:
        raise UnsupportedFormatError(f"Unsupported format: {target}")
    backend = backend or LibreOfficeBackend()
    timeout = BACKEND_TIMEOUT_SECONDS if timeout is None else timeout
    out_path = Path(output_path) if output_path else output_path_for(src, target)
    source_format = format_for_mime(mime) or src.suffix.lstrip(".") or "txt"

    try:
        data = src.read_bytes()
    except OSError as e:
        raise FileUnreadableError(f"Failed to read file {src}: {e.strerror or e}") from e

    logger.info("Converting document %s (%s) -> %s", src.name, mime, target)
    try:
        result = await asyncio.wait_for(backend.convert(data, target, f".{source_format}"), timeout)
        out_path.write_bytes(result)
    except asyncio.TimeoutError:
        remove_file(out_path)
        raise ConversionTimeoutError(timeout, "document conversion") from None
    except (Exception, asyncio.CancelledError):
        remove_file(out_path)
        raise
    logger.info("Converted document %s -> %s", src.name, out_path.name)
    return out_path
