"""Maintenance pass merging venues that share a canonical key."""
import logging
from typing import Dict, Optional

from processor.errors import StoreReadError, StoreWriteError
from processor.venues import VenueNormalizer
from storage.calendar_store import CalendarStore

logger = logging.getLogger(__name__)


class VenueDeduplicator:
    """Merges duplicate venues into the earliest-created one per key."""

    def __init__(self, store: CalendarStore, normalizer: Optional[VenueNormalizer] = None):
        self.store = store
        self.normalizer = normalizer or VenueNormalizer()

    def deduplicate(self) -> Dict[str, int]:
        """
        Scan all venues once and merge duplicates.

        Venues are visited oldest first (ties broken by id), so the first
        venue created for a key is the one kept. Each later venue with the
        same key has its events reassigned to the kept venue and is deleted.

        Returns:
            Dict with 'merged' (venues deleted) and 'reassigned_events'
        """
        venues = sorted(
            self.store.list_all_venues(),
            key=lambda venue: (venue.created_at, venue.id)
        )
        representatives: Dict[str, str] = {}
        merged = 0
        reassigned = 0

        for venue in venues:
            key = self.normalizer.canonical_key(venue.display_name)
            primary_id = representatives.get(key)

            if primary_id is None:
                representatives[key] = venue.id
                if venue.canonical_key != key:
                    self._refresh_key(venue.id, key)
                continue

            try:
                moved = self.store.reassign_events_venue(venue.id, primary_id)
            except (StoreReadError, StoreWriteError) as e:
                logger.error(f"Could not reassign events from venue {venue.id}: {e}")
                continue

            reassigned += moved
            if self.store.delete_venue(venue.id):
                merged += 1
                logger.info(
                    f"Merged venue '{venue.display_name}' into {primary_id} "
                    f"({moved} events)"
                )

        logger.info(f"Venue dedup: {merged} merged, {reassigned} events reassigned")
        return {'merged': merged, 'reassigned_events': reassigned}

    def _refresh_key(self, venue_id: str, key: str) -> None:
        try:
            self.store.set_venue_canonical_key(venue_id, key)
        except StoreWriteError as e:
            logger.warning(f"Could not refresh canonical key on venue {venue_id}: {e}")
