"""Shared fixtures for the test suite."""
import itertools
from datetime import datetime, timedelta, timezone

import boto3
import pytest
from moto import mock_aws

from processor.models import CanonicalEvent
from processor.venues import VenueNormalizer
from storage.dynamodb_store import DynamoDBCalendarStore

EVENTS_TABLE = 'test-legistar-events'
VENUES_TABLE = 'test-legistar-venues'
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake AWS credentials so nothing can reach a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def dynamodb_tables(aws_credentials):
    """Create mock events and venues tables."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        events = dynamodb.create_table(
            TableName=EVENTS_TABLE,
            KeySchema=[
                {'AttributeName': 'event_id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'event_id', 'AttributeType': 'S'},
                {'AttributeName': 'external_id', 'AttributeType': 'S'}
            ],
            GlobalSecondaryIndexes=[
                {
                    'IndexName': 'external-id-index',
                    'KeySchema': [
                        {'AttributeName': 'external_id', 'KeyType': 'HASH'}
                    ],
                    'Projection': {'ProjectionType': 'ALL'}
                }
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        venues = dynamodb.create_table(
            TableName=VENUES_TABLE,
            KeySchema=[
                {'AttributeName': 'venue_id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'venue_id', 'AttributeType': 'S'},
                {'AttributeName': 'canonical_key', 'AttributeType': 'S'}
            ],
            GlobalSecondaryIndexes=[
                {
                    'IndexName': 'canonical-key-index',
                    'KeySchema': [
                        {'AttributeName': 'canonical_key', 'KeyType': 'HASH'}
                    ],
                    'Projection': {'ProjectionType': 'ALL'}
                }
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield events, venues


@pytest.fixture
def calendar_store(dynamodb_tables):
    """DynamoDBCalendarStore on the mock tables with a ticking clock."""
    ticks = itertools.count()
    return DynamoDBCalendarStore(
        EVENTS_TABLE,
        VENUES_TABLE,
        region_name='us-east-1',
        clock=lambda: NOW + timedelta(seconds=next(ticks))
    )


@pytest.fixture
def now():
    """Fixed current instant used across tests."""
    return NOW


@pytest.fixture
def make_event():
    """Factory for canonical events."""
    normalizer = VenueNormalizer()

    def _make(external_id, title='Common Council', start=None,
              venue='City-County Building, Room 201', source='madison'):
        return CanonicalEvent(
            external_id=external_id,
            source=source,
            title=title,
            start=start or NOW + timedelta(days=3),
            venue_key=normalizer.canonical_key(venue),
            venue_raw_name=venue,
            detail_url=f'https://madison.legistar.com/MeetingDetail.aspx?ID={external_id}'
        )

    return _make
