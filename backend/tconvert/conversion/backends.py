"""External conversion backends (ffmpeg, LibreOffice) behind small interfaces.

Backends run as child processes in their own process group so that a timeout
or cancellation kills the whole tree, not just the launcher.
"""
import asyncio
import logging
import os
import signal
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from tconvert.conversion.errors import BackendError, ConversionError, ConversionTimeoutError
from tconvert.conversion.scratch import remove_file

logger = logging.getLogger("tconvert.backends")

# Keep the end of backend output; ffmpeg puts the actual error last.
MAX_ERROR_OUTPUT = 2000


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            if hasattr(os, "killpg"):
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


async def run_process(
    cmd: Sequence[str],
    timeout: Optional[float],
    operation: str = "conversion",
    cwd: Optional[Path] = None,
) -> tuple[int, str, str]:
    """
    Run a command, returning (returncode, stdout, stderr).

    The timer starts once the process is launched. On timeout the process
    group is killed and ConversionTimeoutError raised; on cancellation it is
    killed and the cancellation propagates.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            start_new_session=True,
        )
    except FileNotFoundError as e:
        raise BackendError(f"{cmd[0]} not installed") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        logger.warning("%s exceeded %ss, killing pid %s", operation, timeout, process.pid)
        await _terminate(process)
        raise ConversionTimeoutError(timeout, operation) from None
    except asyncio.CancelledError:
        await _terminate(process)
        raise
    return (
        process.returncode,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


def backend_error_message(name: str, returncode: int, stderr: str, stdout: str = "") -> str:
    output = (stderr or stdout or "").strip()[-MAX_ERROR_OUTPUT:]
    return f"{name} failed with exit code {returncode}: {output}" if output else f"{name} failed with exit code {returncode}"


class MediaBackend(ABC):
    """Transcodes one file on disk into another under a hard timeout."""

    name = "media backend"

    @abstractmethod
    async def transcode(
        self,
        input_path: Path,
        output_path: Path,
        params: Sequence[str],
        timeout: float,
    ) -> Path:
        """Return output_path, or raise ConversionTimeoutError / BackendError."""


class DocumentBackend(ABC):
    """Converts a whole document held in memory. Timeouts are applied by the caller."""

    name = "document backend"

    @abstractmethod
    async def convert(self, data: bytes, target_format: str, suffix: str) -> bytes:
        """Return the converted bytes, or raise BackendError."""


class ProcessBackend(MediaBackend):
    """A MediaBackend driving one command line per conversion."""

    name = "process"

    @abstractmethod
    def build_command(self, input_path: Path, output_path: Path, params: Sequence[str]) -> list[str]:
        pass

    async def transcode(
        self,
        input_path: Path,
        output_path: Path,
        params: Sequence[str],
        timeout: float,
    ) -> Path:
        cmd = self.build_command(Path(input_path), Path(output_path), params)
        logger.info("Running %s: %s", self.name, " ".join(cmd))
        try:
            returncode, stdout, stderr = await run_process(cmd, timeout, operation=f"{self.name} conversion")
        except (ConversionError, asyncio.CancelledError):
            remove_file(output_path)
            raise
        if returncode != 0:
            remove_file(output_path)
            raise BackendError(backend_error_message(self.name, returncode, stderr, stdout))
        if not Path(output_path).is_file():
            raise BackendError(f"{self.name} finished but produced no output")
        return Path(output_path)
