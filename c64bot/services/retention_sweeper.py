"""Count-and-age eviction of stored programs.

A sweep keeps at most ``max_count`` programs (newest first) and, of those,
drops any older than ``max_age_days``. Sweeping twice in a row deletes
nothing the second time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import TYPE_CHECKING

from c64bot.errors import StorageError
from c64bot.models.domain import RetentionPolicy, StoredObject
from c64bot.services.storage_service import SCREENSHOT_PREFIX

if TYPE_CHECKING:
    from c64bot.services.storage_service import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    listed: int = 0
    deleted_by_count: int = 0
    deleted_by_age: int = 0
    failed: int = 0
    screenshots_deleted: int = 0

    @property
    def deleted(self) -> int:
        return self.deleted_by_count + self.deleted_by_age


def select_evictions(
    objects: list[StoredObject], policy: RetentionPolicy, *, now: datetime
) -> tuple[list[StoredObject], list[StoredObject]]:
    """Split ``objects`` into (over-count, over-age) eviction lists.

    Over-count objects are everything past the newest ``max_count``. Over-age
    objects are survivors of the count rule older than ``max_age_days``.
    """
    ordered = sorted(objects, key=lambda o: o.last_modified, reverse=True)
    survivors = ordered[: policy.max_count]
    by_count = ordered[policy.max_count :]

    cutoff = now - timedelta(days=policy.max_age_days)
    by_age = [o for o in survivors if o.last_modified < cutoff]
    return by_count, by_age


class RetentionSweeper:
    def __init__(
        self,
        store: "ObjectStore",
        policy: RetentionPolicy,
        *,
        extensions: tuple[str, ...] = (".prg", ".d64"),
        sweep_screenshots: bool = True,
    ) -> None:
        self._store = store
        self.policy = policy
        self._extensions = tuple(e.lower() for e in extensions)
        self._sweep_screenshots = sweep_screenshots

    def _is_program(self, key: str) -> bool:
        return not key.startswith(SCREENSHOT_PREFIX) and key.lower().endswith(self._extensions)

    async def sweep(self, *, now: datetime | None = None) -> SweepReport:
        """Apply the retention policy once.

        Individual delete failures are logged and counted; a listing failure
        yields an empty report.
        """
        now = now or datetime.now(UTC)
        report = SweepReport()

        logger.info(
            "Starting retention sweep (max %d files, max age %d days)",
            self.policy.max_count,
            self.policy.max_age_days,
        )

        try:
            objects = await self._store.list_objects()
        except StorageError as e:
            logger.error("Retention sweep could not list objects: %s", e)
            return report

        programs = [o for o in objects if self._is_program(o.key)]
        report.listed = len(programs)

        by_count, by_age = select_evictions(programs, self.policy, now=now)
        report.deleted_by_count, failed = await self._delete_all(by_count)
        report.failed += failed
        report.deleted_by_age, failed = await self._delete_all(by_age)
        report.failed += failed

        if self._sweep_screenshots:
            screenshots = [o for o in objects if o.key.startswith(SCREENSHOT_PREFIX)]
            shot_count, shot_age = select_evictions(screenshots, self.policy, now=now)
            report.screenshots_deleted, failed = await self._delete_all(shot_count + shot_age)
            report.failed += failed

        logger.info(
            "Retention sweep done: %d listed, %d deleted by count, %d by age, "
            "%d screenshots, %d failed",
            report.listed,
            report.deleted_by_count,
            report.deleted_by_age,
            report.screenshots_deleted,
            report.failed,
        )
        return report

    async def _delete_all(self, objects: list[StoredObject]) -> tuple[int, int]:
        deleted = failed = 0
        for obj in objects:
            try:
                await self._store.delete_object(obj.key)
                deleted += 1
            except StorageError as e:
                logger.error("Error deleting %s: %s", obj.key, e)
                failed += 1
        return deleted, failed
