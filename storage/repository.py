# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Booking Store - All SQL the sync engine issues
"""
import logging
from contextlib import contextmanager
from datetime import date, datetime, time
from typing import Dict, Iterable, Iterator, List, Optional, Set

import pytz
from sqlalchemy import create_engine, select
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session, sessionmaker

import config
from storage.models import Base, CalendarEventMapping, StudioBooking, SyncLogEntry
from sync.errors import InsertConflict
from sync.models import Occurrence

logger = logging.getLogger(__name__)

LOOKUP_CHUNK_SIZE = 500


class BookingStore:
    """Storage gateway for bookings, event mappings and sync logs."""

    def __init__(self, database_url: str = config.DATABASE_URL, engine=None):
        """
        Initialize database engine and session factory.

        Args:
            database_url: SQLAlchemy URL of the bookings database
            engine: Pre-built engine (tests)
        """
        if engine is None:
            connect_args = {'check_same_thread': False} if database_url.startswith('sqlite') else {}
            engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
        self.engine = engine
        self.SessionLocal = sessionmaker(autoflush=False, bind=self.engine, expire_on_commit=False)

    def init_db(self) -> None:
        """Create tables that do not exist yet"""
        Base.metadata.create_all(bind=self.engine)

    def get_session(self) -> Session:
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """One transaction: commit on success, roll back on any error"""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    def delete_synced_bookings(self) -> int:
        """
        Delete every booking that has an event mapping, then every mapping.
        Runs as a single transaction. Bookings without a mapping are untouched.

        Returns:
            Number of bookings deleted
        """
        with self.session_scope() as session:
            synced_ids = select(CalendarEventMapping.studio_booking_id)
            deleted = session.query(StudioBooking).filter(
                StudioBooking.id.in_(synced_ids)
            ).delete(synchronize_session=False)
            orphans = session.query(CalendarEventMapping).delete(synchronize_session=False)

        logger.info(f"Deleted {deleted} previously imported bookings ({orphans} mappings)")
        return deleted

    def existing_external_ids(self, external_ids: Iterable[str]) -> Set[str]:
        """Return the subset of ids that already have a mapping, in batched lookups"""
        ids = list(dict.fromkeys(external_ids))
        found: Set[str] = set()
        if not ids:
            return found

        with self.session_scope() as session:
            for offset in range(0, len(ids), LOOKUP_CHUNK_SIZE):
                chunk = ids[offset:offset + LOOKUP_CHUNK_SIZE]
                rows = session.query(CalendarEventMapping.external_event_id).filter(
                    CalendarEventMapping.external_event_id.in_(chunk)
                ).all()
                found.update(row[0] for row in rows)
        return found

    def insert_occurrence(self, occurrence: Occurrence, calendar_id: str) -> int:
        """
        Insert one imported booking and its mapping in their own transaction.

        Returns:
            The new booking id

        Raises:
            InsertConflict: if storage rejects the row itself
            sqlalchemy.exc.DBAPIError: connection or schema failures propagate
        """
        try:
            with self.session_scope() as session:
                booking = StudioBooking(
                    studio_id=occurrence.studio_id,
                    booking_date=date.fromisoformat(occurrence.booking_date),
                    start_time=time.fromisoformat(occurrence.start_time),
                    end_time=time.fromisoformat(occurrence.end_time),
                    title=occurrence.title,
                    notes=occurrence.notes,
                    status='approved',
                    is_recurring=False,
                    recurrence_rule=None,
                )
                session.add(booking)
                session.flush()

                session.add(CalendarEventMapping(
                    studio_booking_id=booking.id,
                    external_event_id=occurrence.external_id,
                    calendar_id=calendar_id,
                    sync_status='synced',
                ))
                booking_id = booking.id
        except (IntegrityError, DataError, ValueError) as e:
            raise InsertConflict(occurrence.external_id, str(e)) from e

        return booking_id

    def list_bookings(self, synced_only: bool = False) -> List[StudioBooking]:
        with self.session_scope() as session:
            query = session.query(StudioBooking)
            if synced_only:
                query = query.join(CalendarEventMapping)
            return query.order_by(
                StudioBooking.booking_date, StudioBooking.start_time, StudioBooking.id
            ).all()

    def list_mappings(self) -> List[CalendarEventMapping]:
        with self.session_scope() as session:
            return session.query(CalendarEventMapping).order_by(CalendarEventMapping.id).all()

    # ------------------------------------------------------------------
    # Sync logs
    # ------------------------------------------------------------------

    def create_sync_log(self, sync_type: str) -> int:
        with self.session_scope() as session:
            entry = SyncLogEntry(sync_type=sync_type, status='running')
            session.add(entry)
            session.flush()
            return entry.id

    def update_sync_log(self, log_id: int, status: str, counters: Optional[Dict[str, int]] = None,
                        error_message: Optional[str] = None) -> None:
        counters = counters or {}
        with self.session_scope() as session:
            entry = session.get(SyncLogEntry, log_id)
            if entry is None:
                raise KeyError(f"sync log {log_id} not found")
            entry.status = status
            entry.sync_completed_at = datetime.now(pytz.UTC)
            for field in ('events_processed', 'events_created', 'events_updated',
                          'events_deleted', 'conflicts_detected'):
                setattr(entry, field, counters.get(field, 0))
            entry.error_message = error_message

    def recent_sync_logs(self, limit: int = 50) -> List[SyncLogEntry]:
        with self.session_scope() as session:
            return session.query(SyncLogEntry).order_by(
                SyncLogEntry.sync_started_at.desc(), SyncLogEntry.id.desc()
            ).limit(limit).all()
