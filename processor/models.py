"""Data models for event ingestion and calendar sync."""
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

MAX_PAST_DAYS = 30


@dataclass
class RawEventRecord:
    """Event record as parsed from an upstream payload."""
    external_id: str
    title: str
    date: str
    time: str = ''
    location: str = ''
    detail_url: str = ''
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CanonicalEvent:
    """Normalized, timezone-resolved event."""
    external_id: str
    source: str
    title: str
    start: datetime
    venue_key: str
    venue_raw_name: str
    detail_url: str = ''

    @property
    def start_local(self) -> str:
        """Wall-clock start in the event's own timezone."""
        return self.start.strftime('%Y-%m-%d %H:%M:%S')


@dataclass
class Venue:
    """Venue stored in the calendar."""
    id: str
    display_name: str
    canonical_key: str
    created_at: str = ''


@dataclass
class CalendarEvent:
    """Event stored in the calendar."""
    id: str
    external_id: Optional[str]
    title: str
    start: datetime
    venue_id: Optional[str]
    source_tag: str
    detail_url: str = ''


@dataclass(frozen=True)
class PreviewEntry:
    """Operator-facing summary of one synced event."""
    title: str
    start: str
    venue_raw_name: str
    detail_url: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'title': self.title,
            'start': self.start,
            'venue_raw_name': self.venue_raw_name,
            'detail_url': self.detail_url
        }


@dataclass(frozen=True)
class SyncResult:
    """Result of syncing one source."""
    fetched: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    preview: Tuple[PreviewEntry, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fetched': self.fetched,
            'inserted': self.inserted,
            'updated': self.updated,
            'skipped': self.skipped,
            'preview': [entry.to_dict() for entry in self.preview]
        }


@dataclass
class FetchResult:
    """Outcome of one source adapter invocation."""
    source_id: str
    events: List[RawEventRecord] = field(default_factory=list)
    raw_diagnostic: Optional[str] = None
    error: Optional[str] = None
    url: str = ''

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class DebugLogEntry:
    """Single diagnostic log line."""
    timestamp: str
    message: str


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class RunConfig:
    """Settings for one pipeline invocation."""
    debug: bool = False
    log_level: str = 'INFO'
    timezone: str = 'America/Chicago'
    max_past_days: int = MAX_PAST_DAYS
    timeout_seconds: int = 30
    events_table: str = 'legistar-events'
    venues_table: str = 'legistar-venues'
    region_name: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'RunConfig':
        """
        Build a RunConfig from Lambda environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            RunConfig populated from the environment
        """
        env = os.environ if environ is None else environ
        return cls(
            debug=_env_flag(env.get('DEBUG', 'false')),
            log_level=env.get('LOG_LEVEL', 'INFO'),
            timezone=env.get('DISPLAY_TIMEZONE', 'America/Chicago'),
            timeout_seconds=int(env.get('TIMEOUT_SECONDS', '30')),
            events_table=env.get('EVENTS_TABLE_NAME', 'legistar-events'),
            venues_table=env.get('VENUES_TABLE_NAME', 'legistar-venues'),
            region_name=env.get('AWS_REGION') or None
        )
