"""
In-memory object storage for relayed documents.

Documents live only in process memory and only for a bounded TTL. Nothing
touches disk; a restart drops every object, which is the point: the relay
exists to hand a file to an external viewer for a few minutes.

Two independent mechanisms remove expired objects:
- each ``put`` schedules a one-shot expiry for its own object
- a periodic sweep (see ``core.relay.sweeper``) removes anything expired

Both go through ``evict``, which tolerates the key already being gone.
``get`` additionally checks expiry on every read, so a stale object is never
returned even if neither timer has fired yet.
"""

import asyncio
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Union

from ...core.relay.errors import PayloadTooLarge
from ...core.relay.models import StoredObject

logger = logging.getLogger(__name__)

ExpiryHandle = Union[asyncio.TimerHandle, threading.Timer]
EvictionListener = Callable[[str], None]


@dataclass
class StorageConfig:
    """
    Limits for the in-memory store.

    ``max_bytes`` is checked before anything is stored; ``ttl_seconds`` is
    the default lifetime for objects that don't ask for their own.
    """
    max_bytes: int
    ttl_seconds: float

    def __post_init__(self) -> None:
        if self.max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")


class InMemoryObjectStore:
    """
    Dictionary-backed store guarded by a single lock.

    The lock is held for one map operation at a time (insert, lookup,
    check-and-delete, delete). Eviction listeners and timer cancellation run
    after the lock is released.
    """

    def __init__(
        self,
        config: StorageConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._clock = clock
        self._objects: dict[str, StoredObject] = {}
        self._timers: dict[str, ExpiryHandle] = {}
        self._listeners: list[EvictionListener] = []
        self._lock = threading.Lock()

        logger.info(
            "Initialized in-memory object store",
            extra={
                "max_bytes": config.max_bytes,
                "ttl_seconds": config.ttl_seconds,
            }
        )

    def add_eviction_listener(self, listener: EvictionListener) -> None:
        """Call ``listener(object_id)`` whenever an object is removed."""
        self._listeners.append(listener)

    def put(
        self,
        payload: bytes,
        mime_type: str,
        display_name: str,
        ttl_seconds: Optional[float] = None,
    ) -> str:
        """Store a payload and schedule its expiry. Returns the identifier."""
        return self.put_object(payload, mime_type, display_name, ttl_seconds).id

    def put_object(
        self,
        payload: bytes,
        mime_type: str,
        display_name: str,
        ttl_seconds: Optional[float] = None,
    ) -> StoredObject:
        """
        Like ``put`` but returns the stored object, expiry included.

        Raises PayloadTooLarge before allocating anything if the payload is
        over the configured ceiling.
        """
        size = len(payload)
        if size > self._config.max_bytes:
            logger.warning(
                "Rejected oversized payload",
                extra={"size_bytes": size, "max_bytes": self._config.max_bytes},
            )
            raise PayloadTooLarge(size, self._config.max_bytes)

        ttl = self._config.ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")

        # uuid4 carries 122 random bits
        object_id = uuid.uuid4().hex
        now = self._clock()
        stored = StoredObject(
            id=object_id,
            payload=bytes(payload),
            mime_type=mime_type,
            display_name=display_name,
            created_at=now,
            expires_at=now + ttl,
        )

        with self._lock:
            self._objects[object_id] = stored

        self._schedule_expiry(object_id, ttl)

        logger.info(
            "Stored object",
            extra={
                "object_id": object_id,
                "size_bytes": size,
                "mime_type": mime_type,
                "ttl_seconds": ttl,
            }
        )

        return stored

    def get(self, object_id: str) -> Optional[StoredObject]:
        """
        Look up an object, evicting it if it has expired.

        Check and delete happen under one lock acquisition so a concurrent
        sweep can't observe a half-expired entry.
        """
        now = self._clock()
        with self._lock:
            stored = self._objects.get(object_id)
            if stored is None:
                return None
            if not stored.is_expired(now):
                return stored
            removed, handle = self._remove_locked(object_id)

        self._after_removal(object_id, removed, handle, reason="expired_on_read")
        return None

    def evict(self, object_id: str, reason: str = "evicted") -> bool:
        """Remove an object. Removing an absent id is a no-op."""
        with self._lock:
            removed, handle = self._remove_locked(object_id)
        return self._after_removal(object_id, removed, handle, reason=reason)

    def sweep(self, now: Optional[float] = None) -> list[str]:
        """Remove every object expired at ``now`` (defaults to the clock)."""
        now = self._clock() if now is None else now
        removals = []
        with self._lock:
            expired = [
                object_id for object_id, stored in self._objects.items()
                if stored.is_expired(now)
            ]
            for object_id in expired:
                removals.append((object_id, *self._remove_locked(object_id)))

        for object_id, removed, handle in removals:
            self._after_removal(object_id, removed, handle, reason="swept")

        return [object_id for object_id, _, _ in removals]

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._objects)

    def close(self) -> None:
        """Cancel pending expiry timers and drop every object."""
        with self._lock:
            handles = list(self._timers.values())
            self._timers.clear()
            count = len(self._objects)
            self._objects.clear()

        for handle in handles:
            handle.cancel()

        logger.info("Closed in-memory object store", extra={"dropped": count})

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)

    def __contains__(self, object_id: object) -> bool:
        # Presence only; expiry is not checked here.
        with self._lock:
            return object_id in self._objects

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _remove_locked(
        self, object_id: str
    ) -> tuple[Optional[StoredObject], Optional[ExpiryHandle]]:
        """Pop an object and its timer. Caller holds the lock."""
        return self._objects.pop(object_id, None), self._timers.pop(object_id, None)

    def _after_removal(
        self,
        object_id: str,
        removed: Optional[StoredObject],
        handle: Optional[ExpiryHandle],
        reason: str,
    ) -> bool:
        if handle is not None:
            handle.cancel()
        if removed is None:
            return False

        logger.info(
            "Evicted object",
            extra={"object_id": object_id, "reason": reason, "size_bytes": removed.size},
        )
        for listener in self._listeners:
            listener(object_id)
        return True

    def _schedule_expiry(self, object_id: str, delay: float) -> None:
        """
        Arrange for ``object_id`` to be evicted after ``delay`` seconds.

        Inside the server the running event loop owns the timer. Outside
        a loop (scripts, sync tests) a daemon thread does.
        """
        handle: ExpiryHandle
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            handle = threading.Timer(delay, self._expire, args=(object_id,))
            handle.daemon = True
            handle.start()
        else:
            handle = loop.call_later(delay, self._expire, object_id)

        with self._lock:
            still_present = object_id in self._objects
            if still_present:
                self._timers[object_id] = handle

        # Already evicted by a read or sweep before the timer was registered.
        if not still_present:
            handle.cancel()

    def _expire(self, object_id: str) -> None:
        self.evict(object_id, reason="ttl_elapsed")


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_object_store(
    config: StorageConfig,
    clock: Callable[[], float] = time.time,
) -> InMemoryObjectStore:
    """
    Create the object store.

    There is exactly one backend today; the factory keeps construction in
    one place so the app and the tests build stores the same way.
    """
    return InMemoryObjectStore(config, clock=clock)
