"""Shared behaviour for upstream source adapters."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

import requests

from processor.errors import FetchError, ParseError
from processor.models import FetchResult, RawEventRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceDefinition:
    """Static description of one upstream source."""
    source_id: str
    kind: str
    url: str
    category_tag: str
    client: str = ''
    id_prefix: str = ''
    rich_records: bool = False
    cache_ttl: int = 900


class SourceAdapter(ABC):
    """Fetches one upstream source and parses it into raw event records."""

    USER_AGENT = 'LegistarCalendarSync/1.0'
    ACCEPT = 'application/json'
    MAX_REDIRECTS = 2

    def __init__(self, definition: SourceDefinition, timeout: int = 30,
                 session: Optional[requests.Session] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the adapter.

        Args:
            definition: Source description
            timeout: HTTP request timeout in seconds (default: 30)
            session: Optional requests session to reuse
            clock: Returns the current aware datetime (default: UTC now)
        """
        self.definition = definition
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.max_redirects = self.MAX_REDIRECTS
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def source_id(self) -> str:
        return self.definition.source_id

    def fetch(self, debug: bool = False) -> FetchResult:
        """
        Fetch and parse the source.

        Ordinary upstream failures never raise: they produce an empty
        result carrying the reason in ``error``.

        Args:
            debug: Return the raw upstream payload instead of parsed events

        Returns:
            FetchResult for this source
        """
        url, params = self.request_target()
        try:
            body, final_url = self._get(url, params)
        except FetchError as e:
            logger.error(f"Fetch failed for {self.source_id}: {e}")
            return FetchResult(source_id=self.source_id, error=str(e), url=url)

        if debug:
            logger.info(f"Returning raw payload for {self.source_id} ({len(body)} bytes)")
            return FetchResult(source_id=self.source_id, raw_diagnostic=body, url=final_url)

        try:
            events = self.parse(body)
        except ParseError as e:
            logger.warning(f"Could not parse {self.source_id} payload: {e}")
            return FetchResult(source_id=self.source_id, error=str(e), url=final_url)

        logger.info(f"Fetched {len(events)} raw events from {self.source_id}")
        return FetchResult(source_id=self.source_id, events=events, url=final_url)

    def _get(self, url: str, params: Optional[Dict[str, str]]) -> Tuple[str, str]:
        """
        Issue a single GET request.

        Returns:
            Tuple of (response text, final URL)

        Raises:
            FetchError: On network errors, timeouts and non-2xx responses
        """
        try:
            response = self.session.get(
                url,
                params=params,
                headers={'Accept': self.ACCEPT, 'User-Agent': self.USER_AGENT},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise FetchError(f"{type(e).__name__}: {e}") from e

        if not response.ok:
            raise FetchError(
                f"HTTP {response.status_code} from {url}",
                status_code=response.status_code
            )
        return response.text, response.url

    @abstractmethod
    def request_target(self) -> Tuple[str, Optional[Dict[str, str]]]:
        """Return the URL and query parameters to fetch."""

    @abstractmethod
    def parse(self, body: str) -> List[RawEventRecord]:
        """Parse a response body, raising ParseError when it is unusable."""
