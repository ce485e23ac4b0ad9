"""Conversion of raw upstream records into canonical events."""
import logging
from typing import Iterable, List, Optional, Tuple

from processor.datetimes import REFERENCE_TIMEZONE, parse_event_datetime, to_timezone
from processor.errors import DateError
from processor.models import CanonicalEvent, RawEventRecord
from processor.venues import VenueNormalizer

logger = logging.getLogger(__name__)


class Canonicalizer:
    """Normalizes raw records to the canonical event schema."""

    MAX_TITLE_LENGTH = 200
    DEFAULT_TITLE = 'Meeting'

    def __init__(self, timezone: str = 'America/Chicago',
                 reference_timezone: str = REFERENCE_TIMEZONE,
                 normalizer: Optional[VenueNormalizer] = None):
        """
        Initialize the canonicalizer.

        Args:
            timezone: IANA name of the display timezone
            reference_timezone: Zone the upstream instants are tagged with
            normalizer: Venue key normalizer (default: VenueNormalizer())
        """
        self.timezone = timezone
        self.reference_timezone = reference_timezone
        self.normalizer = normalizer or VenueNormalizer()

    def canonicalize(self, raw: RawEventRecord, source: str) -> Optional[CanonicalEvent]:
        """
        Convert one raw record.

        Args:
            raw: Record produced by a source adapter
            source: Source identifier the record came from

        Returns:
            CanonicalEvent, or None if the date is missing or unparseable
        """
        try:
            instant = parse_event_datetime(raw.date, raw.time)
        except DateError as e:
            logger.warning(f"Skipping {source} record '{raw.external_id}': {e}")
            return None

        start = to_timezone(
            instant.replace(tzinfo=None),
            self.timezone,
            reference=self.reference_timezone
        )

        title = (raw.title or '').strip()[:self.MAX_TITLE_LENGTH] or self.DEFAULT_TITLE
        location = (raw.location or '').strip()

        return CanonicalEvent(
            external_id=str(raw.external_id or '').strip(),
            source=source,
            title=title,
            start=start,
            venue_key=self.normalizer.canonical_key(location),
            venue_raw_name=location,
            detail_url=raw.detail_url or ''
        )

    def canonicalize_all(self, records: Iterable[RawEventRecord],
                         source: str) -> Tuple[List[CanonicalEvent], int]:
        """
        Convert a batch of raw records, dropping the ones without a usable date.

        Returns:
            Tuple of (canonical events, number of dropped records)
        """
        events = []
        dropped = 0
        for raw in records:
            event = self.canonicalize(raw, source)
            if event is None:
                dropped += 1
                continue
            events.append(event)

        logger.info(
            f"Canonicalized {len(events)} {source} events, dropped {dropped}"
        )
        return events, dropped
