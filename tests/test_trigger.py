"""
Trigger and scheduler tests - background runs behind the single-flight guard
"""
import itertools
import threading
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from sync.guard import SingleFlightGuard
from sync.models import SyncReport
from sync.scheduler import SyncScheduler
from sync.trigger import ACCEPTED, ALREADY_RUNNING, SyncTrigger


@pytest.fixture
def blocking_engine():
    """Engine whose run blocks until the test releases it"""
    release = threading.Event()
    engine = MagicMock()

    def run(sync_config):
        release.wait(timeout=5)
        return SyncReport(log_id=1, created=3, success=True)

    engine.run.side_effect = run
    engine.release = release
    return engine


@pytest.fixture
def trigger(blocking_engine):
    return SyncTrigger(blocking_engine, SingleFlightGuard(timeout=600), MagicMock())


class TestSyncTrigger:

    @pytest.mark.unit
    def test_overlapping_requests(self, trigger, blocking_engine, sync_config):
        assert trigger.start_sync(sync_config) == {"status": ACCEPTED}
        assert trigger.is_running(sync_config)
        assert trigger.start_sync(sync_config) == {"status": ALREADY_RUNNING}

        blocking_engine.release.set()
        trigger.last_thread.join(timeout=5)

        assert not trigger.is_running(sync_config)
        assert trigger.last_result['events_created'] == 3
        assert trigger.start_sync(sync_config) == {"status": ACCEPTED}
        trigger.last_thread.join(timeout=5)
        assert blocking_engine.run.call_count == 2

    @pytest.mark.unit
    def test_different_calendars_run_concurrently(self, trigger, blocking_engine, sync_config):
        other = replace(sync_config, calendar_id='other-calendar')

        assert trigger.start_sync(sync_config)["status"] == ACCEPTED
        assert trigger.start_sync(other)["status"] == ACCEPTED

        blocking_engine.release.set()

    @pytest.mark.unit
    def test_guard_released_after_failure(self, sync_config):
        engine = MagicMock()
        engine.run.side_effect = RuntimeError("database unavailable")
        trigger = SyncTrigger(engine, SingleFlightGuard(timeout=600), MagicMock())

        assert trigger.start_sync(sync_config)["status"] == ACCEPTED
        trigger.last_thread.join(timeout=5)

        assert not trigger.is_running(sync_config)
        assert trigger.last_result == {"success": False, "error": "database unavailable"}

    @pytest.mark.unit
    def test_stale_run_finishing_late_does_not_free_the_new_run(self, sync_config):
        now = [0.0]
        gates = [threading.Event(), threading.Event()]
        entered = [threading.Event(), threading.Event()]
        calls = itertools.count()

        def run(config):
            n = next(calls)
            entered[n].set()
            gates[n].wait(timeout=5)
            return SyncReport(success=True)

        engine = MagicMock()
        engine.run.side_effect = run
        trigger = SyncTrigger(engine, SingleFlightGuard(timeout=600, clock=lambda: now[0]), MagicMock())

        assert trigger.start_sync(sync_config)["status"] == ACCEPTED
        stale_thread = trigger.last_thread
        assert entered[0].wait(timeout=5)

        now[0] += 601
        assert trigger.start_sync(sync_config)["status"] == ACCEPTED
        current_thread = trigger.last_thread
        assert entered[1].wait(timeout=5)

        gates[0].set()
        stale_thread.join(timeout=5)

        assert trigger.is_running(sync_config)
        assert trigger.start_sync(sync_config)["status"] == ALREADY_RUNNING

        gates[1].set()
        current_thread.join(timeout=5)
        assert not trigger.is_running(sync_config)

    @pytest.mark.unit
    def test_recent_logs_delegates_to_sync_log(self):
        sync_log = MagicMock()
        sync_log.recent.return_value = [{'id': 1}]
        trigger = SyncTrigger(MagicMock(), SingleFlightGuard(), sync_log)

        assert trigger.recent_logs(10) == [{'id': 1}]
        sync_log.recent.assert_called_once_with(10)


class TestSyncScheduler:

    @pytest.mark.unit
    def test_registers_job_at_interval(self):
        scheduler = SyncScheduler(MagicMock(), interval_minutes=10)
        job = scheduler.register_jobs()

        assert job.interval == 10
        assert job.unit == 'minutes'
        assert len(scheduler.jobs.get_jobs()) == 1

    @pytest.mark.unit
    def test_scheduled_tick_starts_sync(self, sync_config):
        trigger = MagicMock()
        trigger.start_sync.return_value = {"status": ACCEPTED}
        scheduler = SyncScheduler(trigger, config_factory=lambda: sync_config)

        scheduler._scheduled_sync()

        trigger.start_sync.assert_called_once_with(sync_config)

    @pytest.mark.unit
    def test_tick_without_feed_url_does_nothing(self, sync_config):
        trigger = MagicMock()
        scheduler = SyncScheduler(trigger, config_factory=lambda: replace(sync_config, feed_url=''))

        scheduler._scheduled_sync()

        trigger.start_sync.assert_not_called()

    @pytest.mark.unit
    def test_tick_errors_do_not_escape(self, sync_config):
        trigger = MagicMock()
        trigger.start_sync.side_effect = RuntimeError("boom")
        scheduler = SyncScheduler(trigger, config_factory=lambda: sync_config)

        scheduler._scheduled_sync()

    @pytest.mark.unit
    def test_start_and_stop(self):
        scheduler = SyncScheduler(MagicMock(), poll_seconds=0.01)

        scheduler.start()
        assert scheduler.is_running()

        scheduler.stop()
        scheduler.scheduler_thread.join(timeout=5)
        assert not scheduler.is_running()
