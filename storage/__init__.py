from storage.models import Base, CalendarEventMapping, StudioBooking, SyncLogEntry
from storage.repository import BookingStore

__all__ = ['Base', 'BookingStore', 'CalendarEventMapping', 'StudioBooking', 'SyncLogEntry']
