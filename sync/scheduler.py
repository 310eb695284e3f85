# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Background Scheduler for automatic booking imports
"""
import logging
import threading
import time
from threading import Lock
from typing import Callable

import schedule

import config
from config import SyncConfig
from sync.trigger import ALREADY_RUNNING
from utils.timezone import format_local_time, get_local_time

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Manages background sync scheduling"""

    def __init__(self, trigger, interval_minutes: int = config.SYNC_INTERVAL_MIN,
                 config_factory: Callable[[], SyncConfig] = SyncConfig.from_env,
                 poll_seconds: int = 30, startup_delay: int = 0):
        self.trigger = trigger
        self.interval_minutes = interval_minutes
        self.config_factory = config_factory
        self.poll_seconds = poll_seconds
        self.startup_delay = startup_delay
        self.jobs = schedule.Scheduler()
        self.scheduler_lock = Lock()
        self.scheduler_running = False
        self.scheduler_thread = None

    def start(self):
        """Start the scheduler"""
        with self.scheduler_lock:
            if self.scheduler_thread is None or not self.scheduler_thread.is_alive():
                logger.info(f"Starting scheduler thread at {format_local_time(get_local_time())}...")
                self.scheduler_running = True
                self.scheduler_thread = threading.Thread(target=self._run_scheduler, daemon=True)
                self.scheduler_thread.start()
            else:
                logger.info("Scheduler already running")

    def stop(self):
        """Stop the scheduler"""
        with self.scheduler_lock:
            self.scheduler_running = False

        logger.info(f"Stopping scheduler at {format_local_time(get_local_time())}...")

    def is_running(self):
        """Check if scheduler is running"""
        with self.scheduler_lock:
            return bool(self.scheduler_running and self.scheduler_thread and self.scheduler_thread.is_alive())

    def register_jobs(self):
        self.jobs.clear()
        return self.jobs.every(self.interval_minutes).minutes.do(self._scheduled_sync)

    def _run_scheduler(self):
        """Run the scheduler loop"""
        self.register_jobs()
        logger.info(f"Scheduler started - import every {self.interval_minutes} minutes")

        if self.startup_delay:
            logger.info(f"⏳ Waiting {self.startup_delay}s before the first scheduled import...")
            time.sleep(self.startup_delay)

        while True:
            with self.scheduler_lock:
                if not self.scheduler_running:
                    break

            self.jobs.run_pending()
            time.sleep(self.poll_seconds)

        self.jobs.clear()
        logger.info(f"Scheduler stopped at {format_local_time(get_local_time())}")

    def _scheduled_sync(self):
        """Function called by scheduler"""
        try:
            sync_config = self.config_factory()
            if not sync_config.feed_url:
                logger.warning("⚠️ Scheduled import skipped - CALENDAR_FEED_URL is not set")
                return

            result = self.trigger.start_sync(sync_config)
            if result.get('status') == ALREADY_RUNNING:
                logger.info("⏭️ Scheduled import skipped - previous run still in progress")
            else:
                logger.info(f"Scheduled import started at {format_local_time(get_local_time())}")

        except Exception as e:
            # Don't let sync errors crash the scheduler
            logger.error(f"❌ Scheduled import failed at {format_local_time(get_local_time())}: {e}")
