# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""
Database models for bookings, event mappings and sync logs
"""
from datetime import datetime

import pytz
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, Time
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow():
    return datetime.now(pytz.UTC)


class StudioBooking(Base):
    """A studio reservation. Rows with an event mapping belong to the sync engine."""

    __tablename__ = 'studio_bookings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    studio_id = Column(Integer, nullable=True)  # NULL = neutral booking
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    title = Column(String(500), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default='pending')  # 'pending', 'approved', 'denied'
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_rule = Column(Text, nullable=True)
    user_id = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    event_mapping = relationship("CalendarEventMapping", back_populates="booking", uselist=False)

    __table_args__ = (
        Index('idx_studio_bookings_date', 'booking_date'),
        Index('idx_studio_bookings_studio_date', 'studio_id', 'booking_date'),
    )

    def content(self) -> tuple:
        """Booking fields that a sync run is responsible for"""
        return (
            self.studio_id,
            self.booking_date.isoformat(),
            self.start_time.strftime('%H:%M:%S'),
            self.end_time.strftime('%H:%M:%S'),
            self.title,
            self.notes,
            self.status,
            self.is_recurring,
        )


class CalendarEventMapping(Base):
    """Links an imported booking to the external occurrence it came from."""

    __tablename__ = 'calendar_event_mappings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    studio_booking_id = Column(
        Integer, ForeignKey('studio_bookings.id', ondelete='CASCADE'), nullable=False, unique=True
    )
    external_event_id = Column(String(512), nullable=False, unique=True)
    calendar_id = Column(String(512), nullable=False)
    sync_status = Column(String(20), nullable=False, default='synced')
    last_synced_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    booking = relationship("StudioBooking", back_populates="event_mapping")

    __table_args__ = (
        Index('idx_event_mapping_calendar', 'calendar_id'),
    )


class SyncLogEntry(Base):
    """One row per sync run."""

    __tablename__ = 'sync_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    sync_type = Column(String(20), nullable=False, default='import')
    status = Column(String(20), nullable=False, default='running')  # 'running', 'success', 'failed'
    sync_started_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    sync_completed_at = Column(DateTime(timezone=True), nullable=True)

    events_processed = Column(Integer, nullable=False, default=0)
    events_created = Column(Integer, nullable=False, default=0)
    events_updated = Column(Integer, nullable=False, default=0)
    events_deleted = Column(Integer, nullable=False, default=0)
    conflicts_detected = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index('idx_sync_logs_started', 'sync_started_at'),
        Index('idx_sync_logs_status', 'status'),
    )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'sync_type': self.sync_type,
            'status': self.status,
            'sync_started_at': self.sync_started_at.isoformat() if self.sync_started_at else None,
            'sync_completed_at': self.sync_completed_at.isoformat() if self.sync_completed_at else None,
            'events_processed': self.events_processed,
            'events_created': self.events_created,
            'events_updated': self.events_updated,
            'events_deleted': self.events_deleted,
            'conflicts_detected': self.conflicts_detected,
            'error_message': self.error_message,
        }
