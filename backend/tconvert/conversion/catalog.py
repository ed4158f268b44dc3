"""Format catalog: MIME -> short token, source categories and reachable targets.

Every target listed under a category must be handled by that category's
pipeline (images.py, media.py, documents.py).
"""
from typing import Optional

from tconvert.conversion.models import MediaCategory

MIME_TO_FORMAT = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
    "application/pdf": "pdf",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
    "video/mp4": "mp4",
    "video/mpeg": "mpeg",
    "video/quicktime": "mov",
    "video/x-msvideo": "avi",
    "video/webm": "webm",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/msword": "doc",
    "application/vnd.oasis.opendocument.text": "odt",
    "application/rtf": "rtf",
    "text/rtf": "rtf",
    "text/plain": "txt",
}

DOCUMENT_MIMES = frozenset({
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
    "application/vnd.oasis.opendocument.text",
    "application/rtf",
    "text/rtf",
    "text/plain",
})

ALLOWED_TARGETS = {
    MediaCategory.IMAGE: ("jpg", "jpeg", "png", "webp", "gif", "pdf"),
    MediaCategory.VIDEO: ("mp3", "mp4", "gif"),
    MediaCategory.AUDIO: ("mp3",),
    MediaCategory.DOCUMENT: ("pdf",),
}

# Targets offered to a user picking an output, per category.
OFFERED_TARGETS = {
    MediaCategory.IMAGE: ("jpg", "png", "webp", "pdf"),
    MediaCategory.VIDEO: ("mp3", "gif", "mp4"),
    MediaCategory.AUDIO: ("mp3",),
    MediaCategory.DOCUMENT: ("pdf",),
}


def normalize_mime(mime: Optional[str]) -> str:
    """Lower-case the MIME type and drop parameters such as charset."""
    return (mime or "").split(";", 1)[0].strip().lower()


def normalize_format(token: Optional[str]) -> str:
    return (token or "").strip().lower().lstrip(".")


def categorize(mime: Optional[str]) -> Optional[MediaCategory]:
    mime = normalize_mime(mime)
    if mime.startswith("image/"):
        return MediaCategory.IMAGE
    if mime.startswith("video/"):
        return MediaCategory.VIDEO
    if mime.startswith("audio/"):
        return MediaCategory.AUDIO
    if mime in DOCUMENT_MIMES:
        return MediaCategory.DOCUMENT
    return None


def format_for_mime(mime: Optional[str]) -> Optional[str]:
    return MIME_TO_FORMAT.get(normalize_mime(mime))


def targets_for(mime: Optional[str]) -> tuple[str, ...]:
    category = categorize(mime)
    if category is None:
        return ()
    return OFFERED_TARGETS[category]
