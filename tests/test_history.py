"""
Sync log tests - persisted run history and statistics
"""
from datetime import datetime, timedelta

import pytest
import pytz

from storage.models import SyncLogEntry
from sync.history import SyncLog


@pytest.fixture
def sync_log(store):
    return SyncLog(store)


def _backdate(store, log_id, hours):
    with store.session_scope() as session:
        entry = session.get(SyncLogEntry, log_id)
        entry.sync_started_at = datetime.now(pytz.UTC) - timedelta(hours=hours)


class TestSyncLog:

    @pytest.mark.integration
    def test_start_creates_running_entry(self, sync_log):
        log_id = sync_log.start()

        entry = sync_log.recent(limit=1)[0]
        assert entry['id'] == log_id
        assert entry['status'] == 'running'
        assert entry['sync_type'] == 'import'
        assert entry['sync_completed_at'] is None

    @pytest.mark.integration
    def test_finish_records_counters(self, sync_log):
        log_id = sync_log.start()
        sync_log.finish(log_id, 'success', {
            'events_processed': 5,
            'events_created': 7,
            'events_deleted': 3,
            'conflicts_detected': 1,
        })

        entry = sync_log.recent(limit=1)[0]
        assert entry['status'] == 'success'
        assert entry['events_processed'] == 5
        assert entry['events_created'] == 7
        assert entry['events_updated'] == 0
        assert entry['events_deleted'] == 3
        assert entry['conflicts_detected'] == 1
        assert entry['error_message'] is None
        assert entry['sync_completed_at'] is not None

    @pytest.mark.integration
    def test_finish_unknown_entry(self, sync_log):
        with pytest.raises(KeyError):
            sync_log.finish(999, 'success')

    @pytest.mark.integration
    def test_recent_is_newest_first_and_limited(self, sync_log):
        ids = [sync_log.start() for _ in range(5)]

        recent = sync_log.recent(limit=3)

        assert [entry['id'] for entry in recent] == list(reversed(ids))[:3]


class TestStatistics:

    @pytest.mark.integration
    def test_empty_statistics(self, sync_log):
        stats = sync_log.get_statistics(hours=24)
        assert stats['total_syncs'] == 0
        assert stats['last_sync'] is None

    @pytest.mark.integration
    def test_statistics_summarize_recent_runs(self, sync_log):
        ok = sync_log.start()
        sync_log.finish(ok, 'success', {'events_created': 7, 'events_deleted': 2, 'events_processed': 5})
        failed = sync_log.start()
        sync_log.finish(failed, 'failed', error='feed down')
        old = sync_log.start()
        sync_log.finish(old, 'success', {'events_created': 100})
        _backdate(sync_log.store, old, hours=48)

        stats = sync_log.get_statistics(hours=24)

        assert stats['total_syncs'] == 2
        assert stats['successful_syncs'] == 1
        assert stats['failed_syncs'] == 1
        assert stats['success_rate'] == 50
        assert stats['total_operations']['created'] == 7
        assert stats['total_operations']['deleted'] == 2
        assert stats['last_error'] == 'feed down'
        assert stats['last_successful_sync'] is not None

    @pytest.mark.integration
    def test_recent_failures(self, sync_log):
        failed = sync_log.start()
        sync_log.finish(failed, 'failed', error='feed down')
        ok = sync_log.start()
        sync_log.finish(ok, 'success')

        failures = sync_log.get_recent_failures()

        assert [f['id'] for f in failures] == [failed]
        assert failures[0]['error'] == 'feed down'
