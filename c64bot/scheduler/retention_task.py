"""Retention sweep task for scheduled execution."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from c64bot.services.retention_sweeper import RetentionSweeper, SweepReport

logger = logging.getLogger(__name__)


async def retention_sweep_task(sweeper: "RetentionSweeper") -> "SweepReport":
    """Run one retention sweep.

    Args:
        sweeper: RetentionSweeper bound to the object store and policy.

    Returns:
        The sweep report.
    """
    logger.info(
        "Starting retention sweep task (keep %d newest, max age %d days)",
        sweeper.policy.max_count,
        sweeper.policy.max_age_days,
    )

    try:
        report = await sweeper.sweep()
    except Exception as e:
        logger.error("Retention sweep task failed: %s", e)
        raise

    logger.info("Retention sweep completed: deleted %d files", report.deleted)
    return report
