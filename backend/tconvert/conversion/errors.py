"""Typed conversion failures. Each carries the ErrorKind callers branch on."""
from tconvert.conversion.models import ErrorKind


class ConversionError(Exception):
    kind = ErrorKind.UNKNOWN

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail


class FileTooLargeError(ConversionError):
    kind = ErrorKind.FILE_TOO_LARGE

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"File size {size / 1024 / 1024:.2f}MB exceeds {limit // (1024 * 1024)}MB limit"
        )
        self.size = size
        self.limit = limit


class FileUnreadableError(ConversionError):
    kind = ErrorKind.FILE_UNREADABLE


class UnsafeFileTypeError(ConversionError):
    kind = ErrorKind.UNSAFE_FILE_TYPE


class UnsupportedFormatError(ConversionError):
    kind = ErrorKind.UNSUPPORTED_FORMAT


class ConversionTimeoutError(ConversionError):
    kind = ErrorKind.TIMEOUT

    def __init__(self, seconds: float, operation: str = "conversion"):
        super().__init__(f"{operation.capitalize()} timed out after {seconds:g}s")
        self.seconds = seconds


class BackendError(ConversionError):
    """The external backend reported an error; detail keeps its message."""

    kind = ErrorKind.BACKEND_FAILURE
