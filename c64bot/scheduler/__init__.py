"""Scheduler module for background maintenance.

This module provides the SystemScheduler and the retention sweep task it runs.
"""

from c64bot.scheduler.retention_task import retention_sweep_task
from c64bot.scheduler.system_scheduler import SystemScheduler

__all__ = ["SystemScheduler", "retention_sweep_task"]
