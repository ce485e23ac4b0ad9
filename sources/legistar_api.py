"""Adapter for the Legistar Web API (JSON first, XML fallback)."""
import logging
from typing import Dict, List, Optional, Tuple

from processor.models import MAX_PAST_DAYS, RawEventRecord
from processor.window import window_start
from sources.base import SourceAdapter, SourceDefinition
from sources.formats import ParseContext, parse_payload

logger = logging.getLogger(__name__)


class LegistarApiAdapter(SourceAdapter):
    """Fetches a Legistar client's events from webapi.legistar.com."""

    BASE_URL = 'https://webapi.legistar.com/v1/{client}/events'

    def __init__(self, definition: SourceDefinition, max_past_days: int = MAX_PAST_DAYS, **kwargs):
        super().__init__(definition, **kwargs)
        self.max_past_days = max_past_days
        self.context = ParseContext(
            source_id=definition.source_id,
            client=definition.client,
            rich_records=definition.rich_records
        )

    def request_target(self) -> Tuple[str, Optional[Dict[str, str]]]:
        """Events ordered by date, filtered to the rolling window server-side."""
        cutoff = window_start(self.clock(), self.max_past_days)
        url = self.definition.url or self.BASE_URL.format(client=self.definition.client)
        params = {
            '$orderby': 'EventDate',
            '$filter': f"EventDate ge datetime'{cutoff.strftime('%Y-%m-%dT%H:%M:%S')}'"
        }
        return url, params

    def parse(self, body: str) -> List[RawEventRecord]:
        return parse_payload(body, self.context)
