"""
Transfer tracker: per-object delivery counters.

The viewer fetches a document in several range requests. Summing what each
request delivered gives the front end a progress bar and an ETA without
the store having to know anything about transfers.
"""

import logging
import threading
import time
from typing import Callable, Iterable, Optional

from .models import TransferProgress, TransferStat

logger = logging.getLogger(__name__)


class TransferTracker:
    """
    Thread-safe map of object id to ``TransferStat``.

    The lock is held for a single map operation at a time, which is what
    makes increments atomic per id: concurrent deliveries against the same
    object can land in any order but none are lost.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._stats: dict[str, TransferStat] = {}
        self._lock = threading.Lock()

    def init(self, object_id: str, size: int) -> None:
        """Create a zeroed stat. Paired with the store's ``put``."""
        with self._lock:
            self._stats[object_id] = TransferStat(size=size)

    def record_delivery(
        self,
        object_id: str,
        byte_count: int,
        size: Optional[int] = None,
    ) -> None:
        """
        Add ``byte_count`` delivered bytes to an object's counter.

        ``size`` recreates a missing stat, which only happens when a read
        races the upload pairing or an eviction. Without it, a missing stat
        means the object is gone and there is nothing to record.
        """
        if byte_count < 0:
            raise ValueError("byte_count cannot be negative")

        now = self._clock()
        with self._lock:
            stat = self._stats.get(object_id)
            if stat is None:
                if size is None:
                    return
                stat = TransferStat(size=size)
                self._stats[object_id] = stat

            if stat.started_at is None:
                stat.started_at = now
            stat.bytes_sent += byte_count
            completed = stat.completed_at is None and stat.bytes_sent >= stat.size
            if completed:
                stat.completed_at = now
            total = stat.size

        if completed:
            logger.debug(
                "Transfer completed",
                extra={"object_id": object_id, "size": total},
            )

    def progress(self, object_id: str) -> Optional[TransferProgress]:
        """Progress snapshot, or None when the id has no stat."""
        now = self._clock()
        with self._lock:
            stat = self._stats.get(object_id)
            if stat is None:
                return None
            return TransferProgress.from_stat(stat, now)

    def get(self, object_id: str) -> Optional[TransferStat]:
        """Copy of the raw stat, for callers that need the timestamps."""
        with self._lock:
            stat = self._stats.get(object_id)
            if stat is None:
                return None
            return TransferStat(
                size=stat.size,
                bytes_sent=stat.bytes_sent,
                started_at=stat.started_at,
                completed_at=stat.completed_at,
            )

    def evict(self, object_id: str) -> bool:
        """Remove a stat. Removing an absent id is a no-op."""
        with self._lock:
            return self._stats.pop(object_id, None) is not None

    def retain(self, live_ids: Iterable[str]) -> list[str]:
        """Drop every stat whose object is no longer live. Returns dropped ids."""
        live = set(live_ids)
        with self._lock:
            orphans = [object_id for object_id in self._stats if object_id not in live]
            for object_id in orphans:
                del self._stats[object_id]
        return orphans

    def __len__(self) -> int:
        with self._lock:
            return len(self._stats)

    def __contains__(self, object_id: object) -> bool:
        with self._lock:
            return object_id in self._stats
