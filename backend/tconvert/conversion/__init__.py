from .service import ConversionService, get_conversion_service
from .models import ConversionOutcome, ConversionRequest, ErrorKind, PendingInput
from .scratch import remove_file

__all__ = [
    "ConversionService",
    "get_conversion_service",
    "ConversionOutcome",
    "ConversionRequest",
    "ErrorKind",
    "PendingInput",
    "remove_file",
]
