import os
import sys
from unittest.mock import MagicMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import SyncConfig
from feed.reader import FeedClient
from storage.repository import BookingStore
from helpers import CALENDAR_ID, FEED_URL, scenario_feed


@pytest.fixture
def store(tmp_path):
    """Fresh SQLite database per test"""
    booking_store = BookingStore(f"sqlite:///{tmp_path / 'bookings.db'}")
    booking_store.init_db()
    yield booking_store
    booking_store.engine.dispose()


@pytest.fixture
def sync_config():
    return SyncConfig(
        feed_url=FEED_URL,
        calendar_id=CALENDAR_ID,
        timezone='Asia/Jerusalem',
        horizon_days=180,
        max_occurrences=500,
        guard_timeout_seconds=600,
        include_neutral=True,
        fetch_before_delete=False,
        request_timeout=5,
        max_retries=0,
        retry_base_delay=0,
    )


@pytest.fixture
def feed_client():
    """Feed client that serves the standard scenario feed"""
    client = MagicMock(spec=FeedClient)
    client.fetch.return_value = scenario_feed()
    return client
