"""API routes: upload a file, get the converted artifact back."""
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import FileResponse

from tconvert.config import (
    BACKEND_TIMEOUT_SECONDS,
    GIF_FPS,
    GIF_MAX_DURATION_SECONDS,
    GIF_WIDTH,
    IMAGE_TIMEOUT_SECONDS,
    MAX_FILE_SIZE_BYTES,
    MAX_IMAGE_DIMENSION,
    MP3_BITRATE,
    MP3_CHANNELS,
    MP3_SAMPLE_RATE,
)
from tconvert.conversion.catalog import ALLOWED_TARGETS, MIME_TO_FORMAT, normalize_format, targets_for
from tconvert.conversion.models import USER_MESSAGES, ConversionRequest, ErrorKind, PendingInput
from tconvert.conversion.scratch import remove_file, scratch_path
from tconvert.conversion.service import get_conversion_service

logger = logging.getLogger("tconvert.api")
router = APIRouter(prefix="/api", tags=["converter"])

STATUS_BY_KIND = {
    ErrorKind.FILE_TOO_LARGE: 413,
    ErrorKind.FILE_UNREADABLE: 400,
    ErrorKind.UNSAFE_FILE_TYPE: 415,
    ErrorKind.UNSUPPORTED_FORMAT: 422,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.BACKEND_FAILURE: 502,
    ErrorKind.UNKNOWN: 500,
}


def get_user_id(request: Request) -> str:
    """Caller identity from X-User-ID; only used to namespace scratch files."""
    return (request.headers.get("X-User-ID") or "").strip() or "anon"


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/limits")
def get_limits():
    """Return conversion limits for the client."""
    return {
        "max_file_size_mb": MAX_FILE_SIZE_BYTES // (1024 * 1024),
        "max_file_size_bytes": MAX_FILE_SIZE_BYTES,
        "image_timeout_seconds": IMAGE_TIMEOUT_SECONDS,
        "backend_timeout_seconds": BACKEND_TIMEOUT_SECONDS,
        "max_image_dimension": MAX_IMAGE_DIMENSION,
        "gif_max_duration_seconds": GIF_MAX_DURATION_SECONDS,
        "gif_fps": GIF_FPS,
        "gif_width": GIF_WIDTH,
        "mp3_bitrate": MP3_BITRATE,
        "mp3_sample_rate": MP3_SAMPLE_RATE,
        "mp3_channels": MP3_CHANNELS,
    }


@router.get("/formats")
def get_formats(mime: Optional[str] = Query(None, description="Source MIME type to list targets for")):
    if mime:
        targets = targets_for(mime)
        if not targets:
            raise HTTPException(400, f"Unsupported source type: {mime}")
        return {"mime": mime, "targets": list(targets)}
    return {
        "mime_to_format": MIME_TO_FORMAT,
        "targets": {category.value: list(targets) for category, targets in ALLOWED_TARGETS.items()},
    }


@router.post("/convert")
async def convert_file(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    target: str = Query(..., description="Target format, e.g. jpg, png, pdf, mp3"),
    quality: Optional[int] = Query(None, ge=1, le=100),
    user_id: str = Depends(get_user_id),
):
    """Stage the upload, convert it, and stream the artifact back. Scratch files are removed afterwards."""
    svc = get_conversion_service()
    dest = scratch_path(user_id, Path(file.filename or "").suffix, directory=svc.scratch_dir)
    max_mb = MAX_FILE_SIZE_BYTES // (1024 * 1024)
    try:
        total = 0
        with open(dest, "wb") as f:
            while chunk := await file.read(1024 * 1024):
                total += len(chunk)
                if total > MAX_FILE_SIZE_BYTES:
                    raise HTTPException(413, f"{USER_MESSAGES[ErrorKind.FILE_TOO_LARGE]} (max {max_mb} MB)")
                f.write(chunk)
    except HTTPException:
        remove_file(dest)
        raise
    except Exception as e:
        logger.exception("Upload failed: %s", e)
        remove_file(dest)
        raise HTTPException(500, "Upload failed")

    pending = PendingInput(
        path=dest,
        mime=file.content_type or "application/octet-stream",
        file_name=file.filename,
        file_size=total,
    )
    outcome = await svc.convert_request(ConversionRequest(pending, target, quality))
    if not outcome.ok:
        remove_file(dest)
        raise HTTPException(STATUS_BY_KIND[outcome.error_kind], outcome.user_message)

    token = normalize_format(target)
    download_name = f"{Path(file.filename or 'file').stem}.{token}"
    background_tasks.add_task(svc.cleanup, dest, outcome.output_path)
    return FileResponse(outcome.output_path, filename=download_name)
