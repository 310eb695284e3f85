# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Recurrence Expander - Turns RRULE + EXDATE into concrete civil dates
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

import pytz
from dateutil.rrule import rrulestr

import config
from sync.errors import RuleParseError
from sync.models import CalendarItem
from utils.timezone import TimezoneNormalizer

logger = logging.getLogger(__name__)

# Upper bound on raw rule instances walked per kept occurrence (sub-daily rules)
INSTANCES_PER_OCCURRENCE = 100


class RecurrenceExpander:
    """
    Expands recurring items inside a bounded window.

    Rules are evaluated in the operating timezone's wall-clock time, so every
    occurrence keeps the original item's time of day across DST changes.
    """

    def __init__(self, normalizer: TimezoneNormalizer,
                 horizon_days: int = config.SYNC_HORIZON_DAYS,
                 max_occurrences: int = config.SYNC_MAX_OCCURRENCES):
        self.normalizer = normalizer
        self.horizon_days = horizon_days
        self.max_occurrences = max_occurrences

    def horizon_end(self, today: str) -> str:
        return (date.fromisoformat(today) + timedelta(days=self.horizon_days)).isoformat()

    def expand(self, item: CalendarItem, today: str) -> List[str]:
        """
        Expand a recurring item into civil dates.

        Args:
            item: Item carrying a recurrence rule
            today: Civil date of the run (YYYY-MM-DD)

        Returns:
            Ordered YYYY-MM-DD dates from max(today, rule start) to the horizon,
            without exception dates, at most `max_occurrences` long

        Raises:
            RuleParseError: if the rule cannot be parsed
        """
        dtstart = self.normalizer.to_local_naive(item.start)
        rule_text, until = self._localize_rule(item.recurrence_rule)

        # A series that ended before today contributes nothing at all
        if until is not None and until.strftime('%Y-%m-%d') < today:
            logger.info(f"Skipping ended recurring item '{item.title}' (UNTIL: {until.date().isoformat()})")
            return []

        try:
            rule = rrulestr(rule_text, dtstart=dtstart)
        except (ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
            raise RuleParseError(f"{item.external_id}: cannot parse rule '{item.recurrence_rule}': {e}") from e

        exceptions = {self.normalizer.civil_date(value) for value in item.exception_dates}

        first_day = max(today, dtstart.strftime('%Y-%m-%d'))
        window_start = datetime.combine(date.fromisoformat(first_day), time.min)
        window_end = datetime.combine(date.fromisoformat(self.horizon_end(today)), time.max)

        dates: List[str] = []
        excluded = 0
        truncated = False
        instance_limit = self.max_occurrences * INSTANCES_PER_OCCURRENCE

        for iterated, occurrence in enumerate(rule, start=1):
            if iterated > instance_limit:
                logger.warning(
                    f"Stopping expansion of '{item.title}' after {instance_limit} rule instances "
                    f"({len(dates)} dates kept)"
                )
                break
            if occurrence > window_end:
                break
            if occurrence < window_start:
                continue

            civil = occurrence.strftime('%Y-%m-%d')
            if civil in exceptions:
                excluded += 1
                continue
            # Sub-daily rules collapse to one booking per day
            if dates and dates[-1] == civil:
                continue
            if len(dates) >= self.max_occurrences:
                truncated = True
                break

            dates.append(civil)

        if excluded:
            logger.info(f"Filtered out {excluded} EXDATE occurrences from recurring item '{item.title}'")
        if truncated:
            logger.warning(
                f"Limiting recurring item '{item.title}' to first {self.max_occurrences} occurrences"
            )

        logger.debug(f"Expanded '{item.title}' from {first_day}: {len(dates)} occurrences")
        return dates

    def _localize_rule(self, rule_text: Optional[str]) -> Tuple[str, Optional[datetime]]:
        """Rewrite UNTIL as a naive wall-clock value in the operating timezone"""
        if not rule_text or not rule_text.strip():
            raise RuleParseError("empty recurrence rule")

        text = rule_text.strip()
        if text.upper().startswith('RRULE:'):
            text = text[len('RRULE:'):]

        parts = []
        until = None
        for part in text.split(';'):
            if not part:
                continue
            key, _, value = part.partition('=')
            if key.strip().upper() == 'UNTIL':
                until = self._parse_until(value.strip())
                part = f"UNTIL={until.strftime('%Y%m%dT%H%M%S')}"
            parts.append(part)

        return ';'.join(parts), until

    def _parse_until(self, value: str) -> datetime:
        try:
            if len(value) == 8:
                # Date-only UNTIL includes the whole day
                return datetime.combine(datetime.strptime(value, '%Y%m%d').date(), time(23, 59, 59))
            if value.upper().endswith('Z'):
                utc_value = pytz.UTC.localize(datetime.strptime(value[:-1], '%Y%m%dT%H%M%S'))
                return self.normalizer.to_local_naive(utc_value)
            return datetime.strptime(value, '%Y%m%dT%H%M%S')
        except ValueError as e:
            raise RuleParseError(f"invalid UNTIL value '{value}'") from e
