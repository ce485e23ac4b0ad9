"""Payload format detection and field-alias resolution for Legistar responses.

A payload is offered to each detector in ``DETECTORS`` order. A detector
returns ``None`` when the payload is not its format, a (possibly empty) list
of records when it is, or raises ``ParseError`` for an upstream error
envelope.
"""
import html
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from processor.errors import ParseError
from processor.models import RawEventRecord

logger = logging.getLogger(__name__)

# logical field -> candidate upstream names, first non-empty wins
FIELD_ALIASES: Dict[str, Sequence[str]] = {
    'external_id': ('EventId', 'ID'),
    'date': ('EventDate', 'StartDate', 'MeetingDate'),
    'time': ('EventTime', 'StartTime', 'MeetingTime'),
    'location': ('EventLocation', 'MeetingLocation'),
    'title': ('EventBodyName', 'MeetingName'),
}

# extra fields kept from detailed records
RICH_FIELD_ALIASES: Dict[str, Sequence[str]] = {
    'guid': ('EventGuid',),
    'last_modified': ('EventLastModifiedUtc',),
    'agenda_file': ('EventAgendaFile',),
    'minutes_file': ('EventMinutesFile',),
    'video': ('EventVideoPath', 'EventMedia'),
    'status': ('EventAgendaStatusName',),
    'comment': ('EventComment',),
}

DEFAULT_TITLE = 'Meeting'
DETAIL_URL_TEMPLATE = 'https://{client}.legistar.com/MeetingDetail.aspx?ID={event_id}'

XML_RECORD_TAG = 'GranicusEvent'
XML_RECORD_PATTERN = re.compile(
    rf'<{XML_RECORD_TAG}(?:\s[^>]*)?>(.*?)</{XML_RECORD_TAG}>',
    re.DOTALL
)
ERROR_MESSAGE_TAGS = ('ExceptionMessage', 'Message')


@dataclass(frozen=True)
class ParseContext:
    """Per-source settings needed while parsing."""
    source_id: str
    client: str
    rich_records: bool = False


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def first_present(getter: Callable[[str], Any], names: Sequence[str]) -> Any:
    """Return the first non-empty value among the candidate names."""
    for name in names:
        value = getter(name)
        if not _is_empty(value):
            return value
    return None


def resolve_field(getter: Callable[[str], Any], field_name: str) -> str:
    """
    Resolve a logical field through FIELD_ALIASES.

    Args:
        getter: Looks up an upstream field by name
        field_name: Logical field name (key of FIELD_ALIASES)

    Returns:
        Stripped string value, or '' when no alias is present
    """
    value = first_present(getter, FIELD_ALIASES[field_name])
    return '' if value is None else str(value).strip()


def xml_tag(block: str, tag: str) -> str:
    """Extract the text of the first <tag> in a block, tolerating attributes."""
    match = re.search(rf'<{tag}(?:\s[^>]*)?>(.*?)</{tag}>', block, re.DOTALL)
    if not match:
        return ''
    return html.unescape(match.group(1)).strip()


def _generic_record(getter: Callable[[str], Any], context: ParseContext) -> RawEventRecord:
    external_id = resolve_field(getter, 'external_id')
    return RawEventRecord(
        external_id=external_id,
        title=resolve_field(getter, 'title') or DEFAULT_TITLE,
        date=resolve_field(getter, 'date'),
        time=resolve_field(getter, 'time'),
        location=resolve_field(getter, 'location'),
        detail_url=DETAIL_URL_TEMPLATE.format(client=context.client, event_id=external_id)
    )


def _rich_record(item: Dict[str, Any], context: ParseContext) -> RawEventRecord:
    details = {
        name: first_present(item.get, aliases)
        for name, aliases in RICH_FIELD_ALIASES.items()
    }
    details['items'] = item.get('EventItems') or []
    detail_url = item.get('EventInSiteURL') or ''
    return RawEventRecord(
        external_id=resolve_field(item.get, 'external_id'),
        title=resolve_field(item.get, 'title'),
        date=resolve_field(item.get, 'date'),
        time=resolve_field(item.get, 'time'),
        location=resolve_field(item.get, 'location'),
        detail_url=str(detail_url).strip(),
        details=details
    )


def detect_rich_array(body: str, document: Any, context: ParseContext) -> Optional[List[RawEventRecord]]:
    """Bare JSON array from a source that publishes detailed event objects."""
    if not context.rich_records or not isinstance(document, list):
        return None
    return [_rich_record(item, context) for item in document if isinstance(item, dict)]


def detect_generic_json(body: str, document: Any, context: ParseContext) -> Optional[List[RawEventRecord]]:
    """JSON object with a 'value' array, or a bare array of generic records."""
    if isinstance(document, dict) and isinstance(document.get('value'), list):
        items = document['value']
    elif isinstance(document, list):
        items = document
    else:
        return None
    return [_generic_record(item.get, context) for item in items if isinstance(item, dict)]


def detect_xml(body: str, document: Any, context: ParseContext) -> Optional[List[RawEventRecord]]:
    """Granicus XML records, extracted without requiring well-formed XML."""
    if f'<{XML_RECORD_TAG}' not in body:
        return None
    return [
        _generic_record(lambda tag, block=block: xml_tag(block, tag), context)
        for block in XML_RECORD_PATTERN.findall(body)
    ]


def detect_error_envelope(body: str, document: Any, context: ParseContext) -> Optional[List[RawEventRecord]]:
    """Upstream error responses, in XML or JSON form."""
    if '<Error' in body:
        message = next(
            (text for text in (xml_tag(body, tag) for tag in ERROR_MESSAGE_TAGS) if text),
            'Unknown Legistar API error'
        )
    elif isinstance(document, dict) and not _is_empty(document.get('Message')):
        message = str(document['Message']).strip()
    else:
        return None
    raise ParseError(f"Legistar API error for {context.client}: {message}")


DETECTORS: List[Callable[[str, Any, ParseContext], Optional[List[RawEventRecord]]]] = [
    detect_rich_array,
    detect_generic_json,
    detect_xml,
    detect_error_envelope,
]


def parse_payload(body: str, context: ParseContext,
                  detectors: Optional[Sequence[Callable]] = None) -> List[RawEventRecord]:
    """
    Parse an upstream body by trying each format detector in priority order.

    The first detector yielding records wins. A detector that recognizes its
    format but finds no records lets later detectors try; if none of them
    yields records, the empty result stands.

    Args:
        body: Raw response text
        context: Parse settings for the source
        detectors: Override for DETECTORS

    Returns:
        List of RawEventRecord objects

    Raises:
        ParseError: For upstream error envelopes or unrecognized payloads
    """
    if not body or not body.strip():
        raise ParseError(f"Empty payload from {context.source_id}")

    try:
        document = json.loads(body)
    except ValueError as e:
        logger.debug(f"Payload from {context.source_id} is not JSON: {e}")
        document = None

    recognized = False
    for detector in detectors or DETECTORS:
        records = detector(body, document, context)
        if records is None:
            continue
        if records:
            logger.debug(f"{detector.__name__} matched {len(records)} records")
            return records
        recognized = True

    if recognized:
        return []
    raise ParseError(f"Unrecognized payload from {context.source_id}")
