"""
Periodic expiry sweep.

Each upload schedules its own expiry, and reads evict lazily, but neither
catches everything: a timer can be lost with its event loop, and an object
nobody reads again never gets a lazy check. The sweep reconciles both maps
against the clock on a fixed interval, redundantly with the other two
mechanisms.
"""

import asyncio
import logging
from typing import Optional, Protocol

from .tracker import TransferTracker

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 120.0


class SweepableStore(Protocol):
    def sweep(self, now: Optional[float] = None) -> list[str]:
        ...

    def ids(self) -> list[str]:
        ...


class ExpirySweeper:
    """Runs ``sweep_once`` every ``interval_seconds`` until cancelled."""

    def __init__(
        self,
        store: SweepableStore,
        tracker: TransferTracker,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._store = store
        self._tracker = tracker
        self._interval = interval_seconds

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def sweep_once(self, now: Optional[float] = None) -> int:
        """
        Evict expired objects, then drop tracker stats with no object.

        Returns the number of objects evicted.
        """
        evicted = self._store.sweep(now)
        orphans = self._tracker.retain(self._store.ids())

        if evicted or orphans:
            logger.info(
                "Expiry sweep finished",
                extra={"evicted": len(evicted), "orphaned_stats": len(orphans)},
            )
        return len(evicted)

    async def run(self) -> None:
        logger.info("Expiry sweeper started", extra={"interval_seconds": self._interval})
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep_once()
            except Exception as e:
                # One bad pass must not stop future sweeps.
                logger.error(
                    "Expiry sweep failed",
                    extra={"error": str(e)},
                    exc_info=e,
                )
