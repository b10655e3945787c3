"""System scheduler for background maintenance.

Runs the retention sweep once at startup and then on a fixed interval until
stopped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from c64bot.services.retention_sweeper import RetentionSweeper

logger = logging.getLogger(__name__)


class SystemScheduler:
    """Scheduler for the periodic retention sweep."""

    def __init__(
        self,
        sweeper: "RetentionSweeper",
        *,
        interval_seconds: float = 24 * 60 * 60,
    ) -> None:
        """Initialize the system scheduler.

        Args:
            sweeper: RetentionSweeper to run on each tick.
            interval_seconds: Seconds between sweeps.
        """
        self.sweeper = sweeper
        self.interval_seconds = interval_seconds
        self._running = False
        self._sweep_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self.runs = 0

        logger.info("SystemScheduler initialized")

    async def start(self) -> None:
        """Start the sweep loop; the first sweep runs immediately."""
        if self._running:
            logger.warning("SystemScheduler is already running")
            return

        self._running = True
        self._stop_event.clear()
        self._sweep_task = asyncio.create_task(self._run_sweep_loop())

        logger.info(
            "SystemScheduler started, retention sweep every %d seconds",
            self.interval_seconds,
        )

    async def stop(self) -> None:
        """Stop the system scheduler gracefully."""
        if not self._running:
            logger.warning("SystemScheduler is not running")
            return

        logger.info("Stopping SystemScheduler...")
        self._running = False
        self._stop_event.set()

        if self._sweep_task:
            try:
                await asyncio.wait_for(self._sweep_task, timeout=10.0)
            except TimeoutError:
                logger.warning("SystemScheduler task did not stop gracefully, cancelling")
                self._sweep_task.cancel()
                try:
                    await self._sweep_task
                except asyncio.CancelledError:
                    pass
            except asyncio.CancelledError:
                pass
            finally:
                self._sweep_task = None

        logger.info("SystemScheduler stopped")

    async def _run_sweep_loop(self) -> None:
        logger.info("Retention sweep loop started")

        while self._running:
            await self._execute_sweep()

            # Wait for the interval or until stop is signaled
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
                break
            except TimeoutError:
                continue

        logger.info("Retention sweep loop ended")

    async def _execute_sweep(self) -> None:
        from c64bot.scheduler.retention_task import retention_sweep_task

        try:
            await retention_sweep_task(self.sweeper)
        except Exception as e:
            logger.error("Retention sweep failed: %s", e)
        finally:
            self.runs += 1

    @property
    def is_running(self) -> bool:
        """True if the scheduler is currently running."""
        return self._running
