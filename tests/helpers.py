"""
Shared test data: a fixed clock and a small iCalendar feed builder.
"""
from datetime import datetime

import pytz

# Monday 2025-03-10, 12:00 in Jerusalem (UTC+2, before the March DST switch)
NOW = datetime(2025, 3, 10, 10, 0, tzinfo=pytz.UTC)
TODAY = '2025-03-10'

FEED_URL = 'https://calendar.example.test/studio.ics'
CALENDAR_ID = 'studio-calendar'


def vevent(uid, summary, *lines):
    """One VEVENT block; extra property lines are passed verbatim."""
    block = ['BEGIN:VEVENT']
    if uid is not None:
        block.append(f'UID:{uid}')
    if summary is not None:
        block.append(f'SUMMARY:{summary}')
    block.extend(lines)
    block.append('END:VEVENT')
    return '\r\n'.join(block)


def build_feed(*events) -> bytes:
    lines = [
        'BEGIN:VCALENDAR',
        'VERSION:2.0',
        'PRODID:-//Studio Sync Tests//EN',
        *events,
        'END:VCALENDAR',
        '',
    ]
    return '\r\n'.join(lines).encode('utf-8')


def scenario_feed() -> bytes:
    """
    Six items:
      single studio-A booking, weekly studio-B show with one exception,
      a past booking, a cancelled booking, a neutral booking and an
      all-day studio-G booking.
    """
    return build_feed(
        vevent('single-1@test', "אולפן א' - חדשות",
               'DTSTART:20250312T080000Z', 'DTEND:20250312T090000Z'),
        vevent('weekly-1@test', 'Studio-B Show X',
               'DTSTART:20250305T080000Z', 'DTEND:20250305T090000Z',
               'RRULE:FREQ=WEEKLY;COUNT=6',
               'EXDATE:20250319T080000Z'),
        vevent('past-1@test', 'Studio A archive',
               'DTSTART:20250301T080000Z', 'DTEND:20250301T090000Z'),
        vevent('cancelled-1@test', 'Studio A cancelled',
               'DTSTART:20250313T080000Z', 'DTEND:20250313T090000Z',
               'STATUS:CANCELLED'),
        vevent('neutral-1@test', 'Staff meeting',
               'DTSTART:20250311T120000Z', 'DTEND:20250311T130000Z'),
        vevent('allday-1@test', 'Studio G maintenance',
               'DTSTART;VALUE=DATE:20250314', 'DTEND;VALUE=DATE:20250315'),
    )
