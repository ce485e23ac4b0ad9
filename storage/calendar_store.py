"""Interface the sync pipeline expects from a calendar store."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from processor.models import CalendarEvent, Venue


class CalendarStore(ABC):
    """
    Persistent store of calendar events and venues.

    Lookups raise ``StoreReadError`` and write methods raise
    ``StoreWriteError`` when the backend rejects the operation. Records
    are independent: there are no multi-record transactions.
    """

    @abstractmethod
    def find_event_by_external_id(self, external_id: str) -> Optional[CalendarEvent]:
        """Return the system-managed event with this external id, if any."""

    @abstractmethod
    def upsert_event(self, external_id: str, title: str, start: datetime,
                     venue_id: Optional[str], source_tag: str,
                     detail_url: str = '') -> CalendarEvent:
        """Create or overwrite the event keyed by external id."""

    @abstractmethod
    def find_venue_by_canonical_key(self, key: str) -> Optional[Venue]:
        """Return a venue carrying this canonical key, if any."""

    @abstractmethod
    def create_venue(self, display_name: str, canonical_key: str) -> Venue:
        """Create a venue."""

    @abstractmethod
    def set_venue_canonical_key(self, venue_id: str, canonical_key: str) -> None:
        """Record a recomputed canonical key on an existing venue."""

    @abstractmethod
    def reassign_events_venue(self, from_venue_id: str, to_venue_id: str) -> int:
        """Point every event at from_venue_id to to_venue_id; return the count."""

    @abstractmethod
    def delete_venue(self, venue_id: str) -> bool:
        """Delete a venue; return True if it existed."""

    @abstractmethod
    def delete_event(self, event_id: str) -> bool:
        """Delete an event; return True if it existed."""

    @abstractmethod
    def list_events_older_than(self, instant: datetime, managed_only: bool = True) -> List[CalendarEvent]:
        """List events starting strictly before instant."""

    @abstractmethod
    def list_all_venues(self) -> List[Venue]:
        """List every venue."""
