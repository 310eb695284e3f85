"""
Single-flight guard tests
"""
import pytest

from sync.guard import SingleFlightGuard

KEY = ('https://calendar.example.test/studio.ics', 'studio-calendar')


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def guard(clock):
    return SingleFlightGuard(timeout=600, clock=clock)


class TestSingleFlightGuard:

    @pytest.mark.unit
    def test_second_acquire_is_refused(self, guard):
        assert guard.acquire(KEY) is not None
        assert guard.acquire(KEY) is None
        assert guard.is_running(KEY)

    @pytest.mark.unit
    def test_release_allows_next_run(self, guard):
        token = guard.acquire(KEY)

        assert guard.release(KEY, token)
        assert not guard.is_running(KEY)
        assert guard.acquire(KEY) is not None

    @pytest.mark.unit
    def test_keys_are_independent(self, guard):
        assert guard.acquire(KEY) is not None
        assert guard.acquire(('https://other.example.test/feed.ics', 'other')) is not None

    @pytest.mark.unit
    def test_stale_entry_is_taken_over(self, guard, clock):
        guard.acquire(KEY)

        clock.now += 599
        assert guard.acquire(KEY) is None

        clock.now += 2
        assert not guard.is_running(KEY)
        assert guard.acquire(KEY) is not None
        assert guard.is_running(KEY)

    @pytest.mark.unit
    def test_late_release_from_stale_run_keeps_new_owner(self, guard, clock):
        stale_token = guard.acquire(KEY)
        clock.now += 601
        current_token = guard.acquire(KEY)

        assert not guard.release(KEY, stale_token)

        assert guard.is_running(KEY)
        assert guard.acquire(KEY) is None
        assert guard.release(KEY, current_token)
        assert not guard.is_running(KEY)

    @pytest.mark.unit
    def test_release_unknown_key_is_noop(self, guard):
        assert not guard.release(KEY, object())
        assert not guard.is_running(KEY)
