"""Reconciliation of canonical events against the calendar store."""
import logging
from typing import Optional, Sequence

from processor.errors import StoreReadError, StoreWriteError
from processor.models import CanonicalEvent, PreviewEntry, SyncResult
from storage.calendar_store import CalendarStore

logger = logging.getLogger(__name__)


class SyncEngine:
    """Upserts canonical events into a calendar store, keyed by external id."""

    PREVIEW_LIMIT = 10

    def __init__(self, store: CalendarStore):
        self.store = store

    def sync(self, events: Sequence[CanonicalEvent], category_tag: str,
             dropped: int = 0) -> SyncResult:
        """
        Upsert events in input order.

        Values are rewritten unconditionally, so re-running the same input
        reports updates but never new inserts.

        Args:
            events: Canonical events, already window-filtered
            category_tag: Grouping tag written on every synced event
            dropped: Records rejected before sync (e.g. unparseable dates),
                reported as fetched and skipped

        Returns:
            SyncResult with fetched/inserted/updated/skipped counts and a
            preview of the first accepted events
        """
        fetched = skipped = dropped
        inserted = updated = 0
        preview = []

        for event in events:
            fetched += 1

            if not event.external_id or event.start is None:
                logger.warning(f"Skipping event without id or start: '{event.title}'")
                skipped += 1
                continue

            try:
                venue_id = self._resolve_venue(event)
                existing = self.store.find_event_by_external_id(event.external_id)
            except StoreReadError as e:
                logger.error(f"Could not look up event {event.external_id}: {e}")
                skipped += 1
                continue

            try:
                self.store.upsert_event(
                    external_id=event.external_id,
                    title=event.title,
                    start=event.start,
                    venue_id=venue_id,
                    source_tag=category_tag,
                    detail_url=event.detail_url
                )
            except StoreWriteError as e:
                logger.error(f"Could not store event {event.external_id}: {e}")
                skipped += 1
                continue

            if existing:
                updated += 1
            else:
                inserted += 1

            if len(preview) < self.PREVIEW_LIMIT:
                preview.append(PreviewEntry(
                    title=event.title,
                    start=event.start_local,
                    venue_raw_name=event.venue_raw_name,
                    detail_url=event.detail_url
                ))

        logger.info(
            f"Sync complete for '{category_tag}': {fetched} fetched, "
            f"{inserted} inserted, {updated} updated, {skipped} skipped"
        )
        return SyncResult(
            fetched=fetched,
            inserted=inserted,
            updated=updated,
            skipped=skipped,
            preview=tuple(preview)
        )

    def _resolve_venue(self, event: CanonicalEvent) -> Optional[str]:
        """
        Find or create the venue for an event's canonical key.

        Returns:
            Venue id, or None when the event has no venue or creation failed
        """
        if not event.venue_key:
            return None

        venue = self.store.find_venue_by_canonical_key(event.venue_key)
        if venue:
            return venue.id

        try:
            venue = self.store.create_venue(event.venue_raw_name, event.venue_key)
        except StoreWriteError as e:
            logger.error(f"Failed to create venue '{event.venue_raw_name}': {e}")
            return None

        logger.info(f"Created venue '{event.venue_raw_name}' ({event.venue_key})")
        return venue.id
