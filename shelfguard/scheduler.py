# Overview: Background scheduler that runs the expiry sweep on a cron schedule.

from __future__ import annotations

import logging
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .services.expiry_sweep import SweepResult, run_expiry_sweep

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "expiry_notification_sweep"


class ExpiryNotificationScheduler:
    """
    Owns one BackgroundScheduler with a single cron job.

    A tick that finds a sweep already running in this process is skipped and
    logged. APScheduler's max_instances=1 and coalesce=True add the same
    guarantee at the job level; the unique constraint on notification logs
    covers sweeps running in other processes.
    """

    def __init__(self, app, notifier, cron: str):
        self.app = app
        self.notifier = notifier
        self.cron = cron
        self._lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            return

        trigger = CronTrigger.from_crontab(self.cron)
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self.run_once,
            trigger=trigger,
            id=SWEEP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Notification scheduler initialized with cron: %s", self.cron)

    def shutdown(self, wait: bool = False) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("Notification scheduler stopped")

    def run_once(self, today=None) -> SweepResult | None:
        """Run one sweep now. Returns None when another sweep holds the lock."""
        if not self._lock.acquire(blocking=False):
            logger.warning("Expiry sweep already running; skipping this tick")
            return None
        try:
            with self.app.app_context():
                return run_expiry_sweep(self.notifier, today=today)
        finally:
            self._lock.release()
