"""
Content scheduler - periodic background refresh of installed content

Every N hours each configured instance is re-listed, unidentified files are
matched against the catalogs and identified files are checked for updates.
Runs are sequential; stopping the scheduler cancels the run in progress
between items.
"""

import logging
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

log = logging.getLogger(__name__)


class ContentScheduler:
    def __init__(self, service):
        self.service = service
        self.scheduler = None
        self.cancel = threading.Event()

    def start_scheduler(self, interval_hours=6):
        """Start background refresh every ``interval_hours`` (clamped to 1-24)"""
        if self.scheduler is not None and self.scheduler.running:
            log.warning("[SCHEDULER] Scheduler already running")
            return False

        interval_hours = max(1, min(24, int(interval_hours)))
        hour_expr = "0" if interval_hours >= 24 else f"*/{interval_hours}"

        self.cancel.clear()
        self.scheduler = BackgroundScheduler()
        self.scheduler.add_job(
            self.refresh_content,
            CronTrigger(hour=hour_expr, minute="5"),
            id="content_refresh",
            name=f"Refresh installed content (every {interval_hours}h)",
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        log.info(f"[SCHEDULER] Scheduler started - content refresh every {interval_hours}h")
        return True

    def stop_scheduler(self):
        """Stop the scheduler and cancel a refresh that is still running"""
        self.cancel.set()
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            log.info("[SCHEDULER] Scheduler stopped")
            return True
        return False

    def refresh_content(self):
        """Scheduled task: refresh every configured instance"""
        log.info("[SCHEDULER] Running content refresh...")
        try:
            self.service.refresh_all(cancel=self.cancel)
            self.service.cache.purge_expired()
            log.info("[SCHEDULER] Content refresh finished")
        except Exception as e:
            log.error(f"[SCHEDULER] Content refresh failed: {e}")
