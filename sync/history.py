# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Sync History - Persistent sync log and statistics over time
"""
import logging
import statistics
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pytz

from storage.repository import BookingStore

logger = logging.getLogger(__name__)

STATUS_RUNNING = 'running'
STATUS_SUCCESS = 'success'
STATUS_FAILED = 'failed'


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timestamps back without tzinfo
    if value is None or value.tzinfo is not None:
        return value
    return pytz.UTC.localize(value)


class SyncLog:
    """One row per sync run; written by the engine, read by operators"""

    def __init__(self, store: BookingStore):
        self.store = store

    def start(self, sync_type: str = 'import') -> int:
        log_id = self.store.create_sync_log(sync_type)
        logger.debug(f"Sync log {log_id} started ({sync_type})")
        return log_id

    def finish(self, log_id: int, status: str, counters: Optional[Dict[str, int]] = None,
               error: Optional[str] = None) -> None:
        self.store.update_sync_log(log_id, status, counters, error)
        logger.debug(f"Sync log {log_id} finished: {status}")

    def recent(self, limit: int = 50) -> List[Dict]:
        """Newest entries first"""
        return [entry.to_dict() for entry in self.store.recent_sync_logs(limit)]

    def get_statistics(self, hours: int = 24, now: Optional[datetime] = None) -> Dict:
        """Calculate statistics for the given time period"""
        now = _as_utc(now) if now else datetime.now(pytz.UTC)
        cutoff_time = now - timedelta(hours=hours)

        recent_entries = [
            entry for entry in self.store.recent_sync_logs(limit=10000)
            if _as_utc(entry.sync_started_at) > cutoff_time
        ]
        # Oldest first, like the in-memory history used to be kept
        recent_entries.reverse()

        if not recent_entries:
            return {
                'period_hours': hours,
                'total_syncs': 0,
                'successful_syncs': 0,
                'failed_syncs': 0,
                'running_syncs': 0,
                'success_rate': 0,
                'average_duration': 0,
                'total_operations': {
                    'processed': 0,
                    'created': 0,
                    'deleted': 0,
                    'conflicts': 0
                },
                'last_sync': None,
                'last_successful_sync': None
            }

        successful_syncs = [e for e in recent_entries if e.status == STATUS_SUCCESS]
        failed_syncs = [e for e in recent_entries if e.status == STATUS_FAILED]
        running_syncs = [e for e in recent_entries if e.status == STATUS_RUNNING]

        durations = [
            (_as_utc(e.sync_completed_at) - _as_utc(e.sync_started_at)).total_seconds()
            for e in successful_syncs if e.sync_completed_at
        ]
        avg_duration = statistics.mean(durations) if durations else 0

        total_operations = defaultdict(int)
        for entry in recent_entries:
            total_operations['processed'] += entry.events_processed or 0
            total_operations['created'] += entry.events_created or 0
            total_operations['deleted'] += entry.events_deleted or 0
            total_operations['conflicts'] += entry.conflicts_detected or 0

        last_sync = recent_entries[-1]
        last_successful = next((e for e in reversed(recent_entries) if e.status == STATUS_SUCCESS), None)
        finished = len(successful_syncs) + len(failed_syncs)

        return {
            'period_hours': hours,
            'total_syncs': len(recent_entries),
            'successful_syncs': len(successful_syncs),
            'failed_syncs': len(failed_syncs),
            'running_syncs': len(running_syncs),
            'success_rate': len(successful_syncs) / finished * 100 if finished else 0,
            'average_duration': avg_duration,
            'total_operations': dict(total_operations),
            'last_sync': _as_utc(last_sync.sync_started_at).isoformat(),
            'last_successful_sync': _as_utc(last_successful.sync_started_at).isoformat() if last_successful else None,
            'last_error': next((e.error_message for e in reversed(failed_syncs)), None)
        }

    def get_recent_failures(self, limit: int = 10) -> List[Dict]:
        """Get recent failed syncs"""
        failures = [
            {
                'id': entry.id,
                'timestamp': _as_utc(entry.sync_started_at).isoformat(),
                'error': entry.error_message or 'Unknown error'
            }
            for entry in self.store.recent_sync_logs(limit=10000)
            if entry.status == STATUS_FAILED
        ]
        return failures[:limit]
