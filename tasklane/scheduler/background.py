"""
Background Scheduler using APScheduler

Process-wide scheduler shared by the API's timer registry.
Jobs run on the scheduler's thread pool.
"""

import logging
from datetime import timezone
from typing import Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger("tasklane.scheduler")

# Global scheduler instance
_scheduler: Optional[BackgroundScheduler] = None

DEFAULT_MAX_WORKERS = 10


def get_scheduler() -> BackgroundScheduler:
    """Get or create the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(DEFAULT_MAX_WORKERS)},
            timezone=timezone.utc,
        )
    return _scheduler


def start_scheduler():
    """Start the background scheduler."""
    scheduler = get_scheduler()
    if not scheduler.running:
        scheduler.start()
        logger.info("Background scheduler started")


def stop_scheduler():
    """Stop the background scheduler and forget it, so a later start gets a fresh one."""
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
    _scheduler = None
