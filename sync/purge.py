"""Removal of system-managed events that fell out of the rolling window."""
import logging
from datetime import datetime

from processor.models import MAX_PAST_DAYS
from processor.window import window_start
from storage.calendar_store import CalendarStore

logger = logging.getLogger(__name__)


def purge(store: CalendarStore, now: datetime, max_past_days: int = MAX_PAST_DAYS) -> int:
    """
    Delete managed events starting strictly before now - max_past_days.

    Events without an external id were authored by hand and are never
    touched. Deletion is permanent.

    Args:
        store: Calendar store
        now: Current instant (timezone-aware)
        max_past_days: Size of the look-back window in days

    Returns:
        Number of events deleted
    """
    cutoff = window_start(now, max_past_days)
    stale = store.list_events_older_than(cutoff, managed_only=True)

    deleted = 0
    for event in stale:
        if not event.external_id:
            continue
        if store.delete_event(event.id):
            deleted += 1
        else:
            logger.warning(f"Failed to delete stale event {event.id}")

    logger.info(f"Purged {deleted} events older than {cutoff.isoformat()}")
    return deleted
