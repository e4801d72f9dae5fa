"""
Range server: full and partial reads over stored objects.

Office Online fetches documents with HTTP byte-range requests, often
several in a row. This module turns an object id plus an optional
``Range`` header into response metadata and a body slice, and reports
each delivery to the transfer tracker.

Kept free of FastAPI so the slicing rules can be tested directly; the API
route only copies ``RangeResponse`` onto a Starlette response.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Protocol

from .errors import ObjectNotFound, RangeNotSatisfiable
from .filenames import content_disposition
from .models import ByteRange, StoredObject
from .tracker import TransferTracker

logger = logging.getLogger(__name__)

# First "bytes=<start>-<end?>" in the header. Suffix ranges ("bytes=-500")
# and other units don't match and fall back to a full-body response.
_RANGE_PATTERN = re.compile(r"bytes=(\d+)-(\d+)?")


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ObjectSource(Protocol):
    """
    What the range server needs from storage.

    Lookups must already apply expiry: a None result covers both unknown
    and expired ids.
    """

    def get(self, object_id: str) -> Optional[StoredObject]:
        ...


@dataclass
class RangeResponse:
    """Everything the HTTP layer needs to answer a read."""
    status_code: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def is_partial(self) -> bool:
        return self.status_code == 206


def parse_range(header: Optional[str]) -> Optional[tuple[int, Optional[int]]]:
    """
    Extract ``(start, end)`` from a Range header.

    ``end`` is None when the header leaves it open ("bytes=100-"). Returns
    None for an absent or unparseable header; callers treat that as "no
    usable range" rather than an error.
    """
    if not header:
        return None
    match = _RANGE_PATTERN.search(header)
    if match is None:
        return None
    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) is not None else None
    return start, end


def resolve_range(start: int, end: Optional[int], size: int) -> ByteRange:
    """
    Bound a parsed range against an object of ``size`` bytes.

    Raises RangeNotSatisfiable unless ``0 <= start <= end < size``.
    """
    if end is None:
        end = size - 1
    if start < 0 or start > end or end >= size:
        raise RangeNotSatisfiable(start, end, size)
    return ByteRange(start=start, end=end)


class RangeServer:
    """
    Serves stored objects, whole or in part.

    Holds explicit handles to the store and tracker rather than reaching
    for module globals; the app wires one instance at startup.
    """

    def __init__(self, store: ObjectSource, tracker: TransferTracker) -> None:
        self._store = store
        self._tracker = tracker

    def serve(
        self,
        object_id: str,
        range_header: Optional[str] = None,
        *,
        include_body: bool = True,
    ) -> RangeResponse:
        """
        Answer a read for ``object_id``.

        The payload slice is taken from the object resolved here, so an
        object expiring while the response is being written does not affect
        this response, only later lookups.

        With ``include_body=False`` (HEAD) the status and headers are the
        same but no body is returned and nothing is recorded.

        Raises:
            ObjectNotFound: unknown or expired id
            RangeNotSatisfiable: parsed range outside the object
        """
        stored = self._store.get(object_id)
        if stored is None:
            # Progress polls after expiry must miss too.
            self._tracker.evict(object_id)
            raise ObjectNotFound(object_id)

        headers = self._base_headers(stored)
        parsed = parse_range(range_header)

        if parsed is None:
            if range_header:
                logger.debug(
                    "Ignoring unparseable Range header",
                    extra={"object_id": object_id, "range": range_header},
                )
            return self._full(stored, headers, include_body)

        start, end = parsed
        try:
            byte_range = resolve_range(start, end, stored.size)
        except RangeNotSatisfiable:
            logger.info(
                "Range not satisfiable",
                extra={
                    "object_id": object_id,
                    "range": range_header,
                    "size_bytes": stored.size,
                },
            )
            raise

        return self._partial(stored, byte_range, headers, include_body)

    def _full(
        self,
        stored: StoredObject,
        headers: dict[str, str],
        include_body: bool,
    ) -> RangeResponse:
        headers["Content-Length"] = str(stored.size)
        if not include_body:
            return RangeResponse(status_code=200, body=b"", headers=headers)

        self._tracker.record_delivery(stored.id, stored.size, size=stored.size)
        return RangeResponse(status_code=200, body=stored.payload, headers=headers)

    def _partial(
        self,
        stored: StoredObject,
        byte_range: ByteRange,
        headers: dict[str, str],
        include_body: bool,
    ) -> RangeResponse:
        headers["Content-Range"] = byte_range.content_range(stored.size)
        headers["Content-Length"] = str(byte_range.length)
        if not include_body:
            return RangeResponse(status_code=206, body=b"", headers=headers)

        chunk = stored.payload[byte_range.start:byte_range.end + 1]
        self._tracker.record_delivery(stored.id, len(chunk), size=stored.size)

        logger.debug(
            "Served partial content",
            extra={
                "object_id": stored.id,
                "start": byte_range.start,
                "end": byte_range.end,
                "size_bytes": stored.size,
            },
        )
        return RangeResponse(status_code=206, body=chunk, headers=headers)

    @staticmethod
    def _base_headers(stored: StoredObject) -> dict[str, str]:
        return {
            "Accept-Ranges": "bytes",
            "Cache-Control": "no-store",
            "Content-Type": stored.mime_type,
            "Content-Disposition": content_disposition(stored.display_name),
        }
