"""
Domain models for the document relay.

These are plain dataclasses with no framework dependencies. The store owns
``StoredObject`` instances and the tracker owns ``TransferStat`` instances;
the two are correlated only by identifier.
"""

import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StoredObject:
    """
    An uploaded document held in memory.

    Frozen because nothing about a stored object changes after upload.
    Times are epoch seconds.
    """
    id: str
    payload: bytes
    mime_type: str
    display_name: str
    created_at: float
    expires_at: float

    @property
    def size(self) -> int:
        return len(self.payload)

    @property
    def expires_at_ms(self) -> int:
        """Expiry as epoch milliseconds, the unit browsers compare against."""
        return int(self.expires_at * 1000)

    def is_expired(self, now: float) -> bool:
        # The expiry instant itself is already expired.
        return now >= self.expires_at


@dataclass
class TransferStat:
    """Delivery counters for one stored object."""
    size: int
    bytes_sent: int = 0
    started_at: Optional[float] = None
    completed_at: Optional[float] = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None


@dataclass(frozen=True)
class TransferProgress:
    """Point-in-time progress report computed from a ``TransferStat``."""
    size: int
    bytes_sent: int
    eta_seconds: Optional[int]
    elapsed_seconds: float

    @classmethod
    def from_stat(cls, stat: TransferStat, now: float) -> "TransferProgress":
        elapsed = now - stat.started_at if stat.started_at is not None else 0.0
        elapsed = max(elapsed, 0.0)
        remaining = max(stat.size - stat.bytes_sent, 0)

        eta: Optional[int] = None
        if elapsed > 0:
            rate = stat.bytes_sent / elapsed  # bytes per second
            if rate > 0:
                eta = math.ceil(remaining / rate)

        return cls(
            size=stat.size,
            bytes_sent=stat.bytes_sent,
            eta_seconds=eta,
            elapsed_seconds=elapsed,
        )


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte range within an object."""
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.end}/{size}"
