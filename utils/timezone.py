# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Timezone utilities for converting feed instants to the operating civil timezone
"""
from datetime import date, datetime, time
from typing import Optional, Tuple, Union

import pytz

import config

DateLike = Union[datetime, date]


class TimezoneNormalizer:
    """Converts instants to (YYYY-MM-DD, HH:MM:SS) in one fixed timezone.

    Nothing here reads the host's local timezone: aware values are converted
    with pytz, naive values are taken as floating wall-clock times in the
    operating zone and bare dates as midnight in that zone.
    """

    def __init__(self, timezone_name: str = config.OPERATING_TIMEZONE):
        self.timezone_name = timezone_name
        self.tz = pytz.timezone(timezone_name)

    def localize(self, value: DateLike) -> datetime:
        """Return an aware datetime in the operating timezone"""
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return self.tz.localize(value)
            return value.astimezone(self.tz)
        return self.tz.localize(datetime.combine(value, time.min))

    def to_local_naive(self, value: DateLike) -> datetime:
        """Wall-clock time in the operating timezone, without tzinfo"""
        return self.localize(value).replace(tzinfo=None)

    def to_civil(self, value: DateLike) -> Tuple[str, str]:
        local = self.localize(value)
        return local.strftime('%Y-%m-%d'), local.strftime('%H:%M:%S')

    def civil_date(self, value: DateLike) -> str:
        return self.to_civil(value)[0]

    def today(self, now: Optional[datetime] = None) -> str:
        """Civil date of `now` (defaults to the current UTC instant)"""
        if now is None:
            now = datetime.now(pytz.UTC)
        elif now.tzinfo is None:
            # A naive "now" is UTC, never host-local
            now = pytz.UTC.localize(now)
        return self.civil_date(now)

    def now(self) -> datetime:
        return datetime.now(self.tz)


def get_local_time(timezone_name: str = config.OPERATING_TIMEZONE) -> datetime:
    """Get current time in the operating timezone"""
    return datetime.now(pytz.timezone(timezone_name))


def format_local_time(dt: Optional[datetime], timezone_name: str = config.OPERATING_TIMEZONE) -> str:
    """Format datetime in the operating timezone for display"""
    if dt is None:
        return "Never"

    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    local_dt = dt.astimezone(pytz.timezone(timezone_name))
    return local_dt.strftime('%b %d, %Y at %H:%M %Z')
