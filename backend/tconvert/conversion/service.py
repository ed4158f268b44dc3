"""Conversion entry point: validate, dispatch by media category, classify failures."""
import asyncio
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Optional, Union

from tconvert.config import BACKEND_TIMEOUT_SECONDS, IMAGE_TIMEOUT_SECONDS, MAX_WORKERS
from tconvert.conversion.backends import DocumentBackend, MediaBackend
from tconvert.conversion.catalog import categorize, normalize_format
from tconvert.conversion.documents import LibreOfficeBackend, convert_document
from tconvert.conversion.errors import (
    ConversionError,
    ConversionTimeoutError,
    UnsafeFileTypeError,
    UnsupportedFormatError,
)
from tconvert.conversion.images import convert_image
from tconvert.conversion.media import FFmpegBackend, convert_media
from tconvert.conversion.models import (
    ConversionOutcome,
    ConversionRequest,
    ConversionState,
    ErrorKind,
    MediaCategory,
    PendingInput,
)
from tconvert.conversion.scratch import ensure_scratch_dir, output_path_for, remove_file
from tconvert.conversion.validation import check_safety, check_size, is_allowed

logger = logging.getLogger("tconvert.service")


def _discard_abandoned(output_path: Path, future: Future) -> None:
    """Remove an image result that finished after its caller gave up on it."""
    if not future.cancelled() and future.exception() is None:
        logger.info("Discarding late image result %s", output_path.name)
        remove_file(output_path)


class ConversionService:
    """
    Converts one staged file per call. Each call is a single attempt: no retries.

    Image work runs on a thread pool and is bounded by an absolute wait;
    media and document backends are child processes killed on timeout.
    """

    def __init__(
        self,
        media_backend: Optional[MediaBackend] = None,
        document_backend: Optional[DocumentBackend] = None,
        scratch_dir: Optional[Path] = None,
        image_timeout: float = IMAGE_TIMEOUT_SECONDS,
        backend_timeout: float = BACKEND_TIMEOUT_SECONDS,
        max_workers: int = MAX_WORKERS,
    ):
        self.scratch_dir = ensure_scratch_dir(scratch_dir)
        self.media_backend = media_backend or FFmpegBackend()
        self.document_backend = document_backend or LibreOfficeBackend()
        self.image_timeout = image_timeout
        self.backend_timeout = backend_timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        logger.info(
            "ConversionService initialized (scratch=%s, image_timeout=%ss, backend_timeout=%ss, max_workers=%s)",
            self.scratch_dir, image_timeout, backend_timeout, max_workers,
        )

    async def convert(
        self,
        input_path: Union[str, Path],
        source_mime: str,
        requested_format: str,
        quality: Optional[int] = None,
    ) -> ConversionOutcome:
        pending = PendingInput(path=Path(input_path), mime=source_mime)
        return await self.convert_request(ConversionRequest(pending, requested_format, quality))

    async def convert_request(self, request: ConversionRequest) -> ConversionOutcome:
        started = time.monotonic()
        pending = request.pending
        target = normalize_format(request.target_format)
        state = ConversionState.VALIDATING
        try:
            self._validate(pending, target)
            state = ConversionState.DISPATCHING
            category = categorize(pending.mime)
            state = ConversionState.CONVERTING
            output = await self._dispatch(category, pending, target, request.quality)
        except ConversionError as e:
            elapsed = time.monotonic() - started
            logger.warning(
                "Conversion of %s (%s -> %s) failed while %s: [%s] %s",
                pending.path.name, pending.mime, target, state.value, e.kind.value, e.detail,
            )
            return ConversionOutcome.failure(e.kind, e.detail, elapsed)
        except Exception as e:
            elapsed = time.monotonic() - started
            logger.exception("Conversion error for %s (%s -> %s): %s", pending.path, pending.mime, target, e)
            return ConversionOutcome.failure(ErrorKind.UNKNOWN, "Conversion failed", elapsed)

        elapsed = time.monotonic() - started
        logger.info("Converted %s -> %s in %.2fs", pending.path.name, output.name, elapsed)
        return ConversionOutcome.success(output, elapsed)

    @staticmethod
    def _validate(pending: PendingInput, target: str) -> None:
        check_size(pending.path)
        if not check_safety(pending.mime, pending.path):
            raise UnsafeFileTypeError("File type not allowed")
        if not is_allowed(pending.mime, target):
            raise UnsupportedFormatError(f"Unsupported format combination: {pending.mime} -> {target}")

    async def _dispatch(
        self,
        category: Optional[MediaCategory],
        pending: PendingInput,
        target: str,
        quality: Optional[int],
    ) -> Path:
        # Each request writes its own artifact, even when the same input is converted twice.
        out_path = output_path_for(pending.path, target, unique=True)
        if category == MediaCategory.IMAGE:
            return await self._convert_image(pending.path, target, quality, out_path)
        if category in (MediaCategory.VIDEO, MediaCategory.AUDIO):
            return await convert_media(
                pending.path, pending.mime, target,
                backend=self.media_backend, timeout=self.backend_timeout, output_path=out_path,
            )
        if category == MediaCategory.DOCUMENT:
            return await convert_document(
                pending.path, pending.mime, target,
                backend=self.document_backend, timeout=self.backend_timeout, output_path=out_path,
            )
        raise UnsupportedFormatError("Unsupported format")

    async def _convert_image(self, src: Path, target: str, quality: Optional[int], out_path: Path) -> Path:
        # The wait is abandoned on timeout; the transform itself cannot be interrupted.
        future = self._executor.submit(convert_image, src, target, quality, out_path)
        wrapped = asyncio.wrap_future(future)
        done, _ = await asyncio.wait({wrapped}, timeout=self.image_timeout)
        if not done:
            wrapped.cancel()
            future.add_done_callback(partial(_discard_abandoned, out_path))
            remove_file(out_path)
            raise ConversionTimeoutError(self.image_timeout, "image conversion")
        return wrapped.result()

    def cleanup(self, *paths: Optional[Union[str, Path]]) -> None:
        """Remove staged inputs and produced outputs. Never raises."""
        for path in paths:
            remove_file(path)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


# Singleton
_conversion_service: Optional[ConversionService] = None


def get_conversion_service() -> ConversionService:
    global _conversion_service
    if _conversion_service is None:
        _conversion_service = ConversionService()
    return _conversion_service
