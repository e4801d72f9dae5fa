"""
Domain errors for the document relay.

Each error carries the HTTP status it maps to and a short machine-readable
code. The API layer renders them as ``{"error": code, ...}`` so clients
never see stack traces or internal state.
"""

from typing import Any


class RelayError(Exception):
    """Base class for every failure surfaced to a client."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = "", **extra: Any) -> None:
        super().__init__(message or self.code)
        self.extra = extra

    def to_body(self) -> dict[str, Any]:
        return {"error": self.code, **self.extra}

    def response_headers(self) -> dict[str, str]:
        return {}


class ValidationError(RelayError):
    """The upload request carried no file part."""

    status_code = 400
    code = "file_required"


class PayloadTooLarge(RelayError):
    """Payload exceeds the configured byte ceiling."""

    status_code = 413
    code = "file_too_large"

    def __init__(self, size: int, max_bytes: int) -> None:
        # Whole megabytes when the ceiling is a round number, which it is
        # whenever it came from MAX_FILE_MB.
        max_mb = max_bytes / (1024 * 1024)
        if max_mb.is_integer():
            max_mb = int(max_mb)
        super().__init__(
            f"Payload of {size} bytes exceeds limit of {max_bytes} bytes",
            maxMb=max_mb,
        )
        self.size = size
        self.max_bytes = max_bytes


class ObjectNotFound(RelayError):
    """
    Unknown or expired identifier.

    Both cases share one signal on purpose, so a client cannot tell
    "never existed" apart from "expired".
    """

    status_code = 404
    code = "not_found"

    def __init__(self, object_id: str) -> None:
        super().__init__(f"Object not found or expired: {object_id}")
        self.object_id = object_id


class RangeNotSatisfiable(RelayError):
    """A parsed byte range falls outside the object."""

    status_code = 416
    code = "range_not_satisfiable"

    def __init__(self, start: int, end: int, size: int) -> None:
        super().__init__(f"Range {start}-{end} not satisfiable for size {size}")
        self.start = start
        self.end = end
        self.size = size

    def response_headers(self) -> dict[str, str]:
        # RFC 9110: a 416 names the current length.
        return {"Content-Range": f"bytes */{self.size}"}


class InternalError(RelayError):
    """Unexpected failure while handling an upload."""

    status_code = 500
    code = "internal_error"
