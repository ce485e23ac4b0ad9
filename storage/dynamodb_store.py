"""DynamoDB-backed calendar store."""
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from processor.datetimes import from_storage_string, to_storage_string
from processor.errors import StoreReadError, StoreWriteError
from processor.models import CalendarEvent, Venue
from storage.calendar_store import CalendarStore

logger = logging.getLogger(__name__)


class DynamoDBCalendarStore(CalendarStore):
    """
    Calendar store on two DynamoDB tables.

    Events table: hash key ``event_id``, sparse GSI ``external-id-index`` on
    ``external_id`` (only system-managed events carry one). Venues table:
    hash key ``venue_id``, GSI ``canonical-key-index`` on ``canonical_key``.
    Event starts are stored as UTC ``YYYY-MM-DDTHH:MM:SSZ`` strings so that
    string comparison is chronological.
    """

    EXTERNAL_ID_INDEX = 'external-id-index'
    CANONICAL_KEY_INDEX = 'canonical-key-index'

    def __init__(self, events_table: str, venues_table: str,
                 region_name: Optional[str] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize DynamoDB resource and table references.

        Args:
            events_table: Name of the events table
            venues_table: Name of the venues table
            region_name: AWS region (default: from the environment)
            clock: Returns the current aware datetime, used for created_at
        """
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.events = self.dynamodb.Table(events_table)
        self.venues = self.dynamodb.Table(venues_table)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        logger.info(
            f"Initialized DynamoDBCalendarStore for tables: {events_table}, {venues_table}"
        )

    # Events

    def find_event_by_external_id(self, external_id: str) -> Optional[CalendarEvent]:
        items = self._query_index(
            self.events, self.EXTERNAL_ID_INDEX, Key('external_id').eq(external_id)
        )
        for item in items:
            event = self._item_to_event(item)
            if event:
                return event
        return None

    def upsert_event(self, external_id: str, title: str, start: datetime,
                     venue_id: Optional[str], source_tag: str,
                     detail_url: str = '') -> CalendarEvent:
        """
        Create or overwrite the event keyed by external_id.

        The whole item is rewritten, so a missing venue_id clears any
        previous venue reference.

        Raises:
            StoreWriteError: If DynamoDB rejects the write
        """
        existing = self.find_event_by_external_id(external_id)
        event = CalendarEvent(
            id=existing.id if existing else uuid.uuid4().hex,
            external_id=external_id,
            title=title,
            start=start.astimezone(timezone.utc),
            venue_id=venue_id or None,
            source_tag=source_tag,
            detail_url=detail_url or ''
        )

        try:
            self.events.put_item(Item=self._event_to_item(event))
        except ClientError as e:
            raise StoreWriteError(f"Failed to write event {external_id}: {e}") from e
        return event

    def delete_event(self, event_id: str) -> bool:
        try:
            response = self.events.delete_item(
                Key={'event_id': event_id},
                ReturnValues='ALL_OLD'
            )
        except ClientError as e:
            logger.error(f"Error deleting event {event_id}: {e}")
            return False
        return 'Attributes' in response

    def list_events_older_than(self, instant: datetime, managed_only: bool = True) -> List[CalendarEvent]:
        condition = Attr('start').lt(to_storage_string(instant))
        if managed_only:
            condition = condition & Attr('external_id').exists()

        events = []
        for item in self._scan_all(self.events, FilterExpression=condition):
            event = self._item_to_event(item)
            if event:
                events.append(event)
        return events

    def reassign_events_venue(self, from_venue_id: str, to_venue_id: str) -> int:
        """
        Point every event referencing one venue at another.

        Raises:
            StoreWriteError: If an update is rejected
        """
        items = self._scan_all(
            self.events, FilterExpression=Attr('venue_id').eq(from_venue_id)
        )
        count = 0
        for item in items:
            try:
                self.events.update_item(
                    Key={'event_id': item['event_id']},
                    UpdateExpression='SET venue_id = :venue_id',
                    ExpressionAttributeValues={':venue_id': to_venue_id}
                )
            except ClientError as e:
                raise StoreWriteError(
                    f"Failed to reassign event {item['event_id']}: {e}"
                ) from e
            count += 1
        return count

    # Venues

    def find_venue_by_canonical_key(self, key: str) -> Optional[Venue]:
        if not key:
            return None
        items = self._query_index(
            self.venues, self.CANONICAL_KEY_INDEX, Key('canonical_key').eq(key)
        )
        venues = sorted(
            (self._item_to_venue(item) for item in items),
            key=lambda venue: (venue.created_at, venue.id)
        )
        return venues[0] if venues else None

    def create_venue(self, display_name: str, canonical_key: str) -> Venue:
        """
        Create a venue.

        Raises:
            StoreWriteError: If DynamoDB rejects the write
        """
        venue = Venue(
            id=uuid.uuid4().hex,
            display_name=display_name,
            canonical_key=canonical_key,
            created_at=self.clock().astimezone(timezone.utc).isoformat()
        )
        try:
            self.venues.put_item(
                Item={
                    'venue_id': venue.id,
                    'display_name': venue.display_name,
                    'canonical_key': venue.canonical_key,
                    'created_at': venue.created_at
                },
                ConditionExpression='attribute_not_exists(venue_id)'
            )
        except ClientError as e:
            raise StoreWriteError(f"Failed to create venue '{display_name}': {e}") from e
        return venue

    def set_venue_canonical_key(self, venue_id: str, canonical_key: str) -> None:
        try:
            if canonical_key:
                self.venues.update_item(
                    Key={'venue_id': venue_id},
                    UpdateExpression='SET canonical_key = :key',
                    ExpressionAttributeValues={':key': canonical_key}
                )
            else:
                self.venues.update_item(
                    Key={'venue_id': venue_id},
                    UpdateExpression='REMOVE canonical_key'
                )
        except ClientError as e:
            raise StoreWriteError(f"Failed to update venue {venue_id}: {e}") from e

    def delete_venue(self, venue_id: str) -> bool:
        try:
            response = self.venues.delete_item(
                Key={'venue_id': venue_id},
                ReturnValues='ALL_OLD'
            )
        except ClientError as e:
            logger.error(f"Error deleting venue {venue_id}: {e}")
            return False
        return 'Attributes' in response

    def list_all_venues(self) -> List[Venue]:
        return [self._item_to_venue(item) for item in self._scan_all(self.venues)]

    # Helpers

    def _scan_all(self, table, **kwargs) -> List[dict]:
        """
        Scan a table, following pagination.

        Raises:
            StoreReadError: If the scan fails
        """
        try:
            response = table.scan(**kwargs)
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'], **kwargs
                )
                items.extend(response.get('Items', []))

            return items

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table {table.name}: {e}")
            raise StoreReadError(f"Scan of {table.name} failed: {e}") from e

    def _query_index(self, table, index_name: str, condition) -> List[dict]:
        try:
            response = table.query(IndexName=index_name, KeyConditionExpression=condition)
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = table.query(
                    IndexName=index_name,
                    KeyConditionExpression=condition,
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

            return items

        except ClientError as e:
            logger.error(f"Error querying {index_name} on {table.name}: {e}")
            raise StoreReadError(f"Query of {index_name} failed: {e}") from e

    def _item_to_event(self, item: dict) -> Optional[CalendarEvent]:
        """
        Convert DynamoDB item to CalendarEvent object.

        Returns:
            CalendarEvent object or None if conversion fails
        """
        try:
            return CalendarEvent(
                id=item['event_id'],
                external_id=item.get('external_id'),
                title=item.get('title', ''),
                start=from_storage_string(item['start']),
                venue_id=item.get('venue_id'),
                source_tag=item.get('source_tag', ''),
                detail_url=item.get('detail_url', '')
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to convert item to CalendarEvent: {e}")
            return None

    def _event_to_item(self, event: CalendarEvent) -> Dict[str, object]:
        item = {
            'event_id': event.id,
            'external_id': event.external_id,
            'title': event.title,
            'start': to_storage_string(event.start),
            'source_tag': event.source_tag,
            'last_updated': int(time.time())
        }

        # Add optional fields if present
        if event.venue_id:
            item['venue_id'] = event.venue_id
        if event.detail_url:
            item['detail_url'] = event.detail_url

        return item

    @staticmethod
    def _item_to_venue(item: dict) -> Venue:
        return Venue(
            id=item['venue_id'],
            display_name=item.get('display_name', ''),
            canonical_key=item.get('canonical_key', ''),
            created_at=item.get('created_at', '')
        )
