"""
Advertisement timing for a router node.

The scheduler owns the timers only; the routing state and the sends belong to
the node it drives.
"""

from __future__ import annotations

from typing import List, Optional, Protocol
import asyncio
import logging

from routing import RecomputeResult

logger = logging.getLogger(__name__)


class Advertiser(Protocol):
    """Contract: what the scheduler needs from the node it drives."""

    def announce(self) -> None:
        """Send the one-shot router announcement to every neighbour."""
        ...

    def broadcast_table(self, reason: str) -> None:
        """Send the current table to every neighbour."""
        ...

    def check_liveness(self) -> None:
        """Re-evaluate neighbour liveness, recomputing if any expired."""
        ...

    def log_table(self) -> None:
        """Render the current table to the log."""
        ...


class AdvertisementScheduler:
    """
    Startup announcement, periodic and triggered table broadcasts, and
    periodic liveness checks.
    """

    def __init__(
        self,
        node: Advertiser,
        advert_interval: float,
        liveness_check_interval: float,
        table_log_interval: float = 0.0,
    ) -> None:
        self._node = node
        self._advert_interval = advert_interval
        self._liveness_check_interval = liveness_check_interval
        self._table_log_interval = table_log_interval
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        """
        Announce once and start the periodic loops on the running event loop.
        """
        if self.running:
            return
        self._node.announce()
        self._tasks = [
            asyncio.ensure_future(self._every(self._advert_interval, self._periodic_advert)),
            asyncio.ensure_future(self._every(self._liveness_check_interval, self._node.check_liveness)),
        ]
        if self._table_log_interval > 0:
            self._tasks.append(
                asyncio.ensure_future(self._every(self._table_log_interval, self._node.log_table))
            )

    async def stop(self) -> None:
        """Cancel every pending timer and wait for the loops to unwind."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def triggered(self, result: Optional[RecomputeResult]) -> bool:
        """
        Broadcast immediately when a recomputation changed the table.
        """
        if result is None or not result.changed:
            return False
        self._node.broadcast_table("triggered")
        return True

    def _periodic_advert(self) -> None:
        self._node.broadcast_table("periodic")

    @staticmethod
    async def _every(interval: float, action) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                action()
            except Exception:
                logger.exception("periodic %s failed", getattr(action, "__name__", action))
