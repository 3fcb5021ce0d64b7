"""
Interval scheduling for collection and retention runs.

Each subscription key owns at most one timer. Starting a key that is already
running replaces its timer, so repeated starts never stack runs.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class CollectionScheduler:
    """Keyed interval timers on an APScheduler background thread."""

    def __init__(self, scheduler: Optional[BackgroundScheduler] = None):
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self._jobs: Dict[str, Job] = {}

    def _ensure_running(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def start(
        self,
        key: str,
        interval_seconds: float,
        func: Callable[..., Any],
        *args: Any,
        run_immediately: bool = False,
        **kwargs: Any,
    ) -> Job:
        """
        Run ``func(*args, **kwargs)`` every ``interval_seconds`` under ``key``.

        A previous timer for the same key is replaced. Overlapping fires of
        one key are coalesced into a single run.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._ensure_running()
        options: Dict[str, Any] = {}
        if run_immediately:
            options["next_run_time"] = datetime.now(timezone.utc)
        job = self.scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=key,
            name=key,
            args=list(args),
            kwargs=kwargs,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **options,
        )
        self._jobs[key] = job
        logger.info(f"⏱️ Scheduled '{key}' every {interval_seconds:g}s")
        return job

    def stop(self, key: str) -> bool:
        """Cancel the timer for ``key``; False when nothing was scheduled."""
        job = self._jobs.pop(key, None)
        if job is None:
            return False
        try:
            self.scheduler.remove_job(key)
        except JobLookupError:
            logger.debug(f"Job '{key}' already gone from the scheduler")
        logger.info(f"Stopped '{key}'")
        return True

    def stop_all(self) -> int:
        keys = list(self._jobs)
        for key in keys:
            self.stop(key)
        return len(keys)

    def is_running(self, key: str) -> bool:
        return key in self._jobs

    def active_keys(self) -> List[str]:
        return sorted(self._jobs)

    def shutdown(self, wait: bool = False) -> None:
        self.stop_all()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler stopped")

