"""Audio/video conversion through ffmpeg."""
import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from tconvert.config import (
    BACKEND_TIMEOUT_SECONDS,
    FFMPEG_BINARY,
    GIF_FPS,
    GIF_MAX_DURATION_SECONDS,
    GIF_WIDTH,
    MP3_BITRATE,
    MP3_CHANNELS,
    MP3_SAMPLE_RATE,
    MP4_AUDIO_CODEC,
    MP4_CRF,
    MP4_PRESET,
    MP4_VIDEO_CODEC,
)
from tconvert.conversion.backends import MediaBackend, ProcessBackend
from tconvert.conversion.catalog import categorize, normalize_format
from tconvert.conversion.errors import UnsupportedFormatError
from tconvert.conversion.models import MediaCategory
from tconvert.conversion.scratch import output_path_for, remove_file

logger = logging.getLogger("tconvert.media")

MEDIA_TARGETS = ("mp3", "gif", "mp4")


def ffmpeg_params(target: str, category: Optional[MediaCategory] = None) -> list[str]:
    """Output options for one target token."""
    if target == "mp3":
        params = ["-vn"] if category == MediaCategory.VIDEO else []
        return params + [
            "-c:a", "libmp3lame",
            "-b:a", MP3_BITRATE,
            "-ac", str(MP3_CHANNELS),
            "-ar", str(MP3_SAMPLE_RATE),
            "-f", "mp3",
        ]
    if target == "gif":
        # -t as an output option trims longer inputs instead of rejecting them
        return [
            "-t", str(GIF_MAX_DURATION_SECONDS),
            "-vf", f"fps={GIF_FPS},scale={GIF_WIDTH}:-1:flags=lanczos",
            "-loop", "0",
            "-an",
            "-f", "gif",
        ]
    if target == "mp4":
        return [
            "-c:v", MP4_VIDEO_CODEC,
            "-preset", MP4_PRESET,
            "-crf", str(MP4_CRF),
            "-movflags", "+faststart",
            "-c:a", MP4_AUDIO_CODEC,
            "-f", "mp4",
        ]
    raise UnsupportedFormatError(f"Unsupported format: {target}")


class FFmpegBackend(ProcessBackend):
    name = "ffmpeg"

    def __init__(self, binary: str = FFMPEG_BINARY):
        self.binary = binary

    def build_command(self, input_path: Path, output_path: Path, params: Sequence[str]) -> list[str]:
        return [
            self.binary, "-hide_banner", "-nostdin", "-loglevel", "error", "-y",
            "-i", str(input_path),
            *params,
            str(output_path),
        ]


async def convert_media(
    src: Union[str, Path],
    mime: str,
    target_format: str,
    backend: Optional[MediaBackend] = None,
    timeout: Optional[float] = None,
    output_path: Optional[Union[str, Path]] = None,
) -> Path:
    src = Path(src)
    target = normalize_format(target_format)
    if target not in MEDIA_TARGETS:
        raise UnsupportedFormatError(f"Unsupported format: {target}")
    params = ffmpeg_params(target, categorize(mime))
    backend = backend or FFmpegBackend()
    timeout = BACKEND_TIMEOUT_SECONDS if timeout is None else timeout
    out_path = Path(output_path) if output_path else output_path_for(src, target)

    logger.info("Converting media %s (%s) -> %s", src.name, mime, target)
    try:
        result = await backend.transcode(src, out_path, params, timeout)
    except (Exception, asyncio.CancelledError):
        remove_file(out_path)
        raise
    logger.info("Converted media %s -> %s", src.name, result.name)
    return result
