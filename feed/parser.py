# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Feed Parser - Turns an iCalendar document into CalendarItems
"""
import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import List, Union

from icalendar import Calendar

from sync.errors import ItemParseError, MalformedFeed
from sync.models import CalendarItem, Ok, ParsedFeed, Skip

logger = logging.getLogger(__name__)


class FeedParser:
    """Parses VEVENTs. Bad items are dropped one by one; only an unreadable document is fatal."""

    def parse(self, raw: Union[bytes, str]) -> ParsedFeed:
        """
        Parse a raw feed document.

        Args:
            raw: iCalendar document body

        Returns:
            ParsedFeed with the kept items in document order and skip counts

        Raises:
            MalformedFeed: if the document cannot be parsed at all
        """
        try:
            calendar = Calendar.from_ical(raw)
        except (ValueError, IndexError, KeyError, TypeError) as e:
            raise MalformedFeed(f"Calendar feed could not be parsed: {e}") from e

        if getattr(calendar, 'name', None) != 'VCALENDAR':
            raise MalformedFeed("Calendar feed does not contain a VCALENDAR")

        items: List[CalendarItem] = []
        skipped: Counter = Counter()

        for component in calendar.walk('VEVENT'):
            outcome = self.classify(component)
            if isinstance(outcome, Ok):
                items.append(outcome.value)
            else:
                skipped[outcome.reason] += 1

        logger.info(
            f"Parsed {len(items)} calendar items from feed "
            f"(skipped: {dict(skipped) if skipped else 'none'})"
        )
        return ParsedFeed(items=items, skipped=skipped)

    def classify(self, component) -> Union[Ok, Skip]:
        """Decide whether one VEVENT becomes a CalendarItem"""
        try:
            item = self._build_item(component)
        except ItemParseError as e:
            logger.warning(f"Skipping unparsable calendar item: {e}")
            return Skip('parse_error')

        if item.cancelled:
            return Skip('cancelled')

        # Per-instance overrides are not reconstructed; the instance is simply absent
        if item.recurrence_of:
            return Skip('override')

        if not item.title:
            return Skip('no_title')

        return Ok(item)

    def _build_item(self, component) -> CalendarItem:
        uid = str(component.get('UID', '') or '').strip()
        if not uid:
            raise ItemParseError("item has no UID")

        if component.get('DTSTART') is None:
            raise ItemParseError(f"{uid}: item has no DTSTART")

        try:
            start = component.decoded('DTSTART')
            end = self._decode_end(component, start)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ItemParseError(f"{uid}: invalid date value ({e})") from e

        if not isinstance(start, (datetime, date)):
            raise ItemParseError(f"{uid}: DTSTART is not a date")

        recurrence_id = component.get('RECURRENCE-ID')

        return CalendarItem(
            external_id=uid,
            title=str(component.get('SUMMARY', '') or '').strip(),
            description=str(component.get('DESCRIPTION', '') or '').strip(),
            start=start,
            end=end,
            all_day=not isinstance(start, datetime),
            cancelled=str(component.get('STATUS', '') or '').upper() == 'CANCELLED',
            recurrence_rule=self._rule_string(component),
            exception_dates=self._exception_dates(component),
            recurrence_of=uid if recurrence_id is not None else None,
        )

    def _decode_end(self, component, start):
        if component.get('DTEND') is not None:
            return component.decoded('DTEND')
        if component.get('DURATION') is not None:
            return start + component.decoded('DURATION')
        # RFC 5545: a date-only event without DTEND lasts one day
        if not isinstance(start, datetime):
            return start + timedelta(days=1)
        return start

    def _rule_string(self, component):
        rule = component.get('RRULE')
        if rule is None:
            return None
        if isinstance(rule, list):
            if len(rule) > 1:
                logger.warning(
                    f"{component.get('UID')}: {len(rule)} RRULE properties, only the first is used"
                )
            rule = rule[0]
        text = rule.to_ical()
        if isinstance(text, bytes):
            text = text.decode('utf-8')
        return text or None

    def _exception_dates(self, component) -> list:
        raw = component.get('EXDATE')
        if raw is None:
            return []
        props = raw if isinstance(raw, list) else [raw]

        dates = []
        for prop in props:
            for value in getattr(prop, 'dts', []):
                dates.append(value.dt)
        return dates
