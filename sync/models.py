# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

"""Data models for the sync pipeline."""
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Generic, List, Optional, TypeVar, Union

T = TypeVar('T')

DateLike = Union[datetime, date]


@dataclass
class CalendarItem:
    """One VEVENT from the feed."""
    external_id: str
    title: str
    description: str
    start: DateLike
    end: DateLike
    all_day: bool = False
    cancelled: bool = False
    recurrence_rule: Optional[str] = None
    exception_dates: List[DateLike] = field(default_factory=list)
    recurrence_of: Optional[str] = None

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence_rule)


@dataclass(frozen=True)
class Occurrence:
    """A concrete, dated booking derived from a calendar item."""
    external_id: str
    studio_id: Optional[int]
    title: str
    notes: str
    booking_date: str
    start_time: str
    end_time: str
    from_recurring: bool = False


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Skip:
    reason: str


@dataclass
class ParsedFeed:
    """Items kept by the parser plus why the others were dropped."""
    items: List[CalendarItem]
    skipped: Counter = field(default_factory=Counter)

    @property
    def total(self) -> int:
        return len(self.items) + sum(self.skipped.values())


@dataclass
class SyncReport:
    """Outcome of one reconciliation run."""
    log_id: Optional[int] = None
    processed: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    conflicts: int = 0
    skipped: Counter = field(default_factory=Counter)
    errors: List[str] = field(default_factory=list)
    success: bool = False
    duration: float = 0.0

    def counters(self) -> dict:
        return {
            'events_processed': self.processed,
            'events_created': self.created,
            'events_updated': self.updated,
            'events_deleted': self.deleted,
            'conflicts_detected': self.conflicts,
        }

    def to_dict(self) -> dict:
        return {
            'log_id': self.log_id,
            'success': self.success,
            'duration': round(self.duration, 2),
            'skipped': dict(self.skipped),
            'errors': list(self.errors),
            **self.counters(),
        }
