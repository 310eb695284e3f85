# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Sync Trigger - Starts engine runs in the background behind the single-flight guard
"""
import logging
import threading
from typing import Dict, List, Optional

from config import SyncConfig
from sync.engine import ReconciliationEngine
from sync.guard import SingleFlightGuard
from sync.history import SyncLog

logger = logging.getLogger(__name__)

ACCEPTED = 'accepted'
ALREADY_RUNNING = 'already_running'


class SyncTrigger:
    """Entry point shared by the HTTP routes and the scheduler"""

    def __init__(self, engine: ReconciliationEngine, guard: SingleFlightGuard, sync_log: SyncLog):
        self.engine = engine
        self.guard = guard
        self.sync_log = sync_log
        self.last_thread: Optional[threading.Thread] = None
        self.last_result: Optional[Dict] = None

    def start_sync(self, sync_config: SyncConfig) -> Dict[str, str]:
        """
        Start a run unless one is already active for this configuration.

        Returns immediately with {"status": "accepted"} or
        {"status": "already_running"}.
        """
        key = sync_config.identity
        token = self.guard.acquire(key)
        if token is None:
            logger.info("⏳ Sync already in progress, request ignored")
            return {"status": ALREADY_RUNNING}

        try:
            thread = threading.Thread(
                target=self._run,
                args=(sync_config, key, token),
                name='studio-sync',
                daemon=True
            )
            thread.start()
        except Exception:
            self.guard.release(key, token)
            raise

        self.last_thread = thread
        logger.info("Background sync started")
        return {"status": ACCEPTED}

    def _run(self, sync_config: SyncConfig, key, token) -> None:
        try:
            report = self.engine.run(sync_config)
            self.last_result = report.to_dict()
        except Exception as e:
            logger.exception(f"Background sync failed: {e}")
            self.last_result = {"success": False, "error": str(e)}
        finally:
            self.guard.release(key, token)

    def is_running(self, sync_config: SyncConfig) -> bool:
        return self.guard.is_running(sync_config.identity)

    def recent_logs(self, limit: int = 50) -> List[Dict]:
        return self.sync_log.recent(limit)
