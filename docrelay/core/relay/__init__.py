"""
Document relay domain: stored objects, transfer accounting, range reads.
"""

from .errors import (
    InternalError,
    ObjectNotFound,
    PayloadTooLarge,
    RangeNotSatisfiable,
    RelayError,
    ValidationError,
)
from .filenames import content_disposition, guess_mime_type, sanitize_filename
from .models import ByteRange, StoredObject, TransferProgress, TransferStat
from .ranges import RangeResponse, RangeServer, parse_range, resolve_range
from .sweeper import ExpirySweeper
from .tracker import TransferTracker

__all__ = [
    "ByteRange",
    "ExpirySweeper",
    "InternalError",
    "ObjectNotFound",
    "PayloadTooLarge",
    "RangeNotSatisfiable",
    "RangeResponse",
    "RangeServer",
    "RelayError",
    "StoredObject",
    "TransferProgress",
    "TransferStat",
    "TransferTracker",
    "ValidationError",
    "content_disposition",
    "guess_mime_type",
    "parse_range",
    "resolve_range",
    "sanitize_filename",
]
