"""Rolling time window applied before sync and purge."""
from datetime import datetime, timedelta
from typing import List, Sequence

from processor.models import CanonicalEvent, MAX_PAST_DAYS


def window_start(now: datetime, max_past_days: int = MAX_PAST_DAYS) -> datetime:
    """Earliest start still inside the rolling window."""
    return now - timedelta(days=max_past_days)


def retain(events: Sequence[CanonicalEvent], now: datetime,
           max_past_days: int = MAX_PAST_DAYS) -> List[CanonicalEvent]:
    """
    Keep events starting at or after now - max_past_days.

    There is no upper bound: future events are always kept.

    Args:
        events: Canonical events with timezone-aware starts
        now: Current instant (timezone-aware)
        max_past_days: Size of the look-back window in days

    Returns:
        Events inside the window, in input order
    """
    cutoff = window_start(now, max_past_days)
    return [event for event in events if event.start >= cutoff]
