# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Environment-based configuration for the studio booking sync
"""
import os
from dataclasses import dataclass
from typing import Tuple

# Environment Detection
ENVIRONMENT = os.environ.get('ENVIRONMENT', 'production')
DEBUG = ENVIRONMENT == 'development'

# Calendar Feed
CALENDAR_FEED_URL = os.environ.get('CALENDAR_FEED_URL', '')
CALENDAR_ID = os.environ.get('CALENDAR_ID', '')
FEED_TIMEOUT_SECONDS = int(os.environ.get('FEED_TIMEOUT_SECONDS', 30))

# Civil timezone every booking date/time is expressed in
OPERATING_TIMEZONE = os.environ.get('OPERATING_TIMEZONE', 'Asia/Jerusalem')

# Expansion Settings
SYNC_HORIZON_DAYS = int(os.environ.get('SYNC_HORIZON_DAYS', 180))  # ~6 months
SYNC_MAX_OCCURRENCES = int(os.environ.get('SYNC_MAX_OCCURRENCES', 500))

# Sync Settings
SYNC_GUARD_TIMEOUT_SECONDS = int(os.environ.get('SYNC_GUARD_TIMEOUT_SECONDS', 600))
SYNC_INCLUDE_NEUTRAL = os.environ.get('SYNC_INCLUDE_NEUTRAL', 'True').lower() == 'true'
SYNC_FETCH_BEFORE_DELETE = os.environ.get('SYNC_FETCH_BEFORE_DELETE', 'False').lower() == 'true'

# Retry Settings
MAX_RETRIES = int(os.environ.get('MAX_RETRIES', 3))
BASE_DELAY = float(os.environ.get('BASE_DELAY', 1.0))

# Database
DATABASE_URL = os.environ.get('DATABASE_URL', 'sqlite:///studio_bookings.db')

# Scheduler (in minutes)
SCHEDULER_ENABLED = os.environ.get('SCHEDULER_ENABLED', 'True').lower() == 'true'
SYNC_INTERVAL_MIN = int(os.environ.get('SYNC_INTERVAL_MIN', 10))

# Application Settings
PORT = int(os.environ.get('PORT', 5000))

# Logging
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
STRUCTURED_LOGGING = os.environ.get('STRUCTURED_LOGGING', 'True').lower() == 'true'

# Development Settings
if DEBUG:
    LOG_LEVEL = 'DEBUG'
    SYNC_INTERVAL_MIN = 1  # Faster syncs for development


@dataclass(frozen=True)
class SyncConfig:
    """Settings for one sync run. Built once and passed into the engine."""
    feed_url: str
    calendar_id: str = ''
    timezone: str = OPERATING_TIMEZONE
    horizon_days: int = SYNC_HORIZON_DAYS
    max_occurrences: int = SYNC_MAX_OCCURRENCES
    guard_timeout_seconds: int = SYNC_GUARD_TIMEOUT_SECONDS
    include_neutral: bool = SYNC_INCLUDE_NEUTRAL
    fetch_before_delete: bool = SYNC_FETCH_BEFORE_DELETE
    request_timeout: int = FEED_TIMEOUT_SECONDS
    max_retries: int = MAX_RETRIES
    retry_base_delay: float = BASE_DELAY

    @property
    def source_calendar_id(self) -> str:
        """Calendar identifier stored on every event mapping"""
        return self.calendar_id or self.feed_url

    @property
    def identity(self) -> Tuple[str, str]:
        """Key for the single-flight guard"""
        return (self.feed_url, self.source_calendar_id)

    @classmethod
    def from_env(cls) -> 'SyncConfig':
        return cls(feed_url=CALENDAR_FEED_URL, calendar_id=CALENDAR_ID)
