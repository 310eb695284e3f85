# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Sync Engine - Destroy-and-rebuild import of the studio calendar feed
"""
import logging
import time
from collections import Counter
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union

from config import SyncConfig
from feed.parser import FeedParser
from feed.reader import FeedClient
from storage.repository import BookingStore
from sync.errors import FetchFailure, InsertConflict, RuleParseError, SyncTimeout
from sync.expander import RecurrenceExpander
from sync.history import STATUS_FAILED, STATUS_SUCCESS, SyncLog
from sync.models import CalendarItem, Occurrence, Ok, Skip, SyncReport
from sync.studios import resolve_studio
from utils.logger import StructuredLogger
from utils.retry import RetryContext
from utils.timezone import TimezoneNormalizer

logger = logging.getLogger(__name__)

DEFAULT_NOTES = 'Imported from calendar feed'
DEFAULT_RECURRING_NOTES = 'Imported from calendar feed (Recurring)'

ALL_DAY_START = '00:00:00'
END_OF_DAY = '23:59:59'


class ReconciliationEngine:
    """Core engine for booking synchronization"""

    def __init__(self, store: BookingStore, client: FeedClient = None, parser: FeedParser = None,
                 sync_log: SyncLog = None, clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.store = store
        self.client = client
        self.parser = parser or FeedParser()
        self.sync_log = sync_log or SyncLog(store)
        self.clock = clock
        self.sleep = sleep
        self.structured_logger = StructuredLogger(__name__)

    def run(self, sync_config: SyncConfig, now: Optional[datetime] = None) -> SyncReport:
        """
        Replace every previously imported booking with the feed's current content.

        Steps: start the log entry, delete imported bookings, fetch and expand
        the feed, drop keys that already exist, insert each occurrence in its
        own transaction, finish the log entry.

        Args:
            sync_config: Settings for this run
            now: Instant the run is evaluated at (defaults to the current time)

        Returns:
            SyncReport with the run's counters

        Raises:
            FetchFailure, MalformedFeed, SyncTimeout or a storage error. The
            log entry is marked failed before any of these propagates.
        """
        started = self.clock()
        deadline = started + sync_config.guard_timeout_seconds
        report = SyncReport()
        report.log_id = self.sync_log.start('import')

        logger.info("🚀 Starting studio booking import")
        self.structured_logger.log_sync_event('sync_started', {
            'log_id': report.log_id,
            'feed_url': sync_config.feed_url,
            'calendar_id': sync_config.source_calendar_id,
            'fetch_before_delete': sync_config.fetch_before_delete
        })

        try:
            if not sync_config.fetch_before_delete:
                report.deleted = self.store.delete_synced_bookings()

            occurrences = self._prepare(sync_config, now, report, deadline)

            if sync_config.fetch_before_delete:
                report.deleted = self.store.delete_synced_bookings()

            existing = self.store.existing_external_ids(o.external_id for o in occurrences)
            if existing:
                logger.info(f"⏭️ {len(existing)} occurrences already imported, skipping")
                report.skipped['duplicate'] += len(existing)

            for occurrence in occurrences:
                if occurrence.external_id in existing:
                    continue
                if self.clock() > deadline:
                    raise SyncTimeout(
                        f"Sync exceeded {sync_config.guard_timeout_seconds}s after "
                        f"{report.created} inserts"
                    )
                try:
                    self.store.insert_occurrence(occurrence, sync_config.source_calendar_id)
                    report.created += 1
                except InsertConflict as e:
                    report.conflicts += 1
                    report.errors.append(str(e))
                    logger.warning(f"⚠️ Could not insert {e.external_id}: {e}")

        except Exception as e:
            report.duration = self.clock() - started
            report.errors.append(str(e))
            logger.error(f"❌ Sync failed: {e}")
            self.structured_logger.log_sync_event('sync_failed', {
                'log_id': report.log_id,
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': report.duration,
                **report.counters()
            })
            try:
                self.sync_log.finish(report.log_id, STATUS_FAILED, report.counters(), str(e))
            except Exception:
                logger.exception(f"Could not mark sync log {report.log_id} as failed")
            raise

        report.duration = self.clock() - started
        report.success = True
        self.sync_log.finish(report.log_id, STATUS_SUCCESS, report.counters())

        logger.info(
            f"✅ Sync completed in {report.duration:.2f}s: {report.created} created, "
            f"{report.deleted} deleted, {report.conflicts} conflicts, "
            f"{sum(report.skipped.values())} skipped"
        )
        self.structured_logger.log_sync_event('sync_completed', report.to_dict())
        self.structured_logger.log_performance(
            'studio_booking_import', report.duration, item_count=report.created, success=True
        )
        return report

    def plan(self, sync_config: SyncConfig, now: Optional[datetime] = None) -> Tuple[List[Occurrence], Counter]:
        """Fetch and expand the feed without touching storage"""
        report = SyncReport()
        occurrences = self._prepare(sync_config, now, report)
        return occurrences, report.skipped

    def _prepare(self, sync_config: SyncConfig, now: Optional[datetime], report: SyncReport,
                 deadline: Optional[float] = None) -> List[Occurrence]:
        """Fetch, parse and expand the feed into de-duplicated occurrences"""
        normalizer = TimezoneNormalizer(sync_config.timezone)
        expander = RecurrenceExpander(normalizer, sync_config.horizon_days, sync_config.max_occurrences)
        today = normalizer.today(now)

        raw = self._fetch(sync_config)
        parsed = self.parser.parse(raw)
        report.processed = len(parsed.items)
        report.skipped.update(parsed.skipped)

        logger.info(
            f"📊 Feed has {parsed.total} items: {len(parsed.items)} usable "
            f"(today {today}, horizon {expander.horizon_end(today)})"
        )

        occurrences: List[Occurrence] = []
        seen = set()
        for item in parsed.items:
            if deadline is not None and self.clock() > deadline:
                raise SyncTimeout(
                    f"Sync exceeded {sync_config.guard_timeout_seconds}s while expanding the feed"
                )
            result = self._item_occurrences(item, sync_config, normalizer, expander, today)
            if isinstance(result, Skip):
                report.skipped[result.reason] += 1
                continue
            for occurrence in result.value:
                if occurrence.external_id in seen:
                    report.skipped['duplicate'] += 1
                    continue
                seen.add(occurrence.external_id)
                occurrences.append(occurrence)

        logger.info(f"📅 {len(occurrences)} occurrences to import")
        return occurrences

    def _fetch(self, sync_config: SyncConfig) -> bytes:
        client = self.client or FeedClient(timeout=sync_config.request_timeout)
        retry = RetryContext(
            max_retries=sync_config.max_retries,
            base_delay=sync_config.retry_base_delay,
            sleep=self.sleep
        )
        while True:
            try:
                return client.fetch(sync_config.feed_url)
            except FetchFailure as e:
                retry.record_failure(e)

    def _item_occurrences(self, item: CalendarItem, sync_config: SyncConfig,
                          normalizer: TimezoneNormalizer, expander: RecurrenceExpander,
                          today: str) -> Union[Ok, Skip]:
        studio_id, title = resolve_studio(item.title)
        if studio_id is None and not sync_config.include_neutral:
            logger.debug(f"No studio in '{item.title}', skipping")
            return Skip('no_studio')

        start_date, start_time, end_time = self._civil_times(item, normalizer)

        if item.is_recurring:
            try:
                dates = expander.expand(item, today)
            except RuleParseError as e:
                logger.warning(f"⚠️ {e}; importing '{item.title}' as a single booking")
            else:
                if not dates:
                    return Skip('no_occurrences')
                notes = item.description or DEFAULT_RECURRING_NOTES
                return Ok([
                    Occurrence(
                        external_id=f"{item.external_id}_{booking_date}",
                        studio_id=studio_id,
                        title=title,
                        notes=notes,
                        booking_date=booking_date,
                        start_time=start_time,
                        end_time=end_time,
                        from_recurring=True,
                    )
                    for booking_date in dates
                ])

        if start_date < today:
            return Skip('past')

        return Ok([Occurrence(
            external_id=item.external_id,
            studio_id=studio_id,
            title=title,
            notes=item.description or DEFAULT_NOTES,
            booking_date=start_date,
            start_time=start_time,
            end_time=end_time,
        )])

    def _civil_times(self, item: CalendarItem, normalizer: TimezoneNormalizer) -> Tuple[str, str, str]:
        """(start date, start time, end time) in the operating timezone"""
        start_date, start_time = normalizer.to_civil(item.start)
        if item.all_day:
            return start_date, ALL_DAY_START, END_OF_DAY

        end_date, end_time = normalizer.to_civil(item.end)
        # A booking never runs past the day it starts on
        if end_date > start_date:
            end_time = END_OF_DAY
        return start_date, start_time, end_time
