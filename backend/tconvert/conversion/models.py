"""Conversion request/outcome models."""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class ConversionState(str, Enum):
    VALIDATING = "validating"
    DISPATCHING = "dispatching"
    CONVERTING = "converting"
    DONE = "done"
    FAILED = "failed"


class MediaCategory(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"


class ErrorKind(str, Enum):
    FILE_TOO_LARGE = "file_too_large"
    FILE_UNREADABLE = "file_unreadable"
    UNSAFE_FILE_TYPE = "unsafe_file_type"
    UNSUPPORTED_FORMAT = "unsupported_format"
    TIMEOUT = "timeout"
    BACKEND_FAILURE = "backend_failure"
    UNKNOWN = "unknown"


# Short user-facing text per error kind. Details stay in logs.
USER_MESSAGES = {
    ErrorKind.FILE_TOO_LARGE: "File is too large",
    ErrorKind.FILE_UNREADABLE: "File not found",
    ErrorKind.UNSAFE_FILE_TYPE: "File type not allowed",
    ErrorKind.UNSUPPORTED_FORMAT: "Unsupported format",
    ErrorKind.TIMEOUT: "Conversion timed out",
    ErrorKind.BACKEND_FAILURE: "Conversion failed",
    ErrorKind.UNKNOWN: "Conversion failed",
}


@dataclass(frozen=True)
class PendingInput:
    """An uploaded file staged in scratch storage, owned by the caller."""

    path: Path
    mime: str
    file_name: Optional[str] = None
    file_size: Optional[int] = None


@dataclass(frozen=True)
class ConversionRequest:
    pending: PendingInput
    target_format: str
    quality: Optional[int] = None


@dataclass(frozen=True)
class ConversionOutcome:
    """Either one produced artifact or one classified failure."""

    state: ConversionState
    output_path: Optional[Path] = None
    error_kind: Optional[ErrorKind] = None
    detail: str = ""
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state == ConversionState.DONE and self.output_path is not None

    @property
    def user_message(self) -> Optional[str]:
        if self.error_kind is None:
            return None
        return USER_MESSAGES[self.error_kind]

    @classmethod
    def success(cls, output_path: Path, elapsed: float = 0.0) -> "ConversionOutcome":
        return cls(state=ConversionState.DONE, output_path=output_path, elapsed=elapsed)

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str, elapsed: float = 0.0) -> "ConversionOutcome":
        return cls(state=ConversionState.FAILED, error_kind=kind, detail=detail, elapsed=elapsed)
