"""Unit tests for SyncEngine."""
from datetime import timedelta
from unittest.mock import Mock

from processor.errors import StoreReadError, StoreWriteError
from processor.models import SyncResult, Venue
from sync.engine import SyncEngine


def test_sync_inserts_new_events(calendar_store, make_event):
    """Test first sync inserts every event and creates the venue once."""
    events = [make_event('7001'), make_event('7002', title='Plan Commission')]

    result = SyncEngine(calendar_store).sync(events, 'City of Madison')

    assert result.fetched == 2
    assert result.inserted == 2
    assert result.updated == 0
    assert result.skipped == 0

    venues = calendar_store.list_all_venues()
    assert len(venues) == 1
    assert venues[0].canonical_key == 'city-county building, room 201'

    stored = calendar_store.find_event_by_external_id('7001')
    assert stored.venue_id == venues[0].id
    assert stored.source_tag == 'City of Madison'


def test_sync_is_idempotent(calendar_store, dynamodb_tables, make_event):
    """Test a second identical sync inserts nothing and keeps the same records."""
    events_table, _ = dynamodb_tables
    events = [make_event(str(i)) for i in range(5)]
    engine = SyncEngine(calendar_store)

    first = engine.sync(events, 'City of Madison')
    ids_after_first = {item['event_id'] for item in events_table.scan()['Items']}
    second = engine.sync(events, 'City of Madison')
    ids_after_second = {item['event_id'] for item in events_table.scan()['Items']}

    assert first.inserted == 5
    assert second.inserted == 0
    assert second.updated == 5
    assert second.fetched == first.fetched
    assert second.skipped == first.skipped
    assert ids_after_second == ids_after_first
    assert len(calendar_store.list_all_venues()) == 1


def test_sync_updates_changed_values(calendar_store, make_event, now):
    """Test existing events are overwritten in place."""
    engine = SyncEngine(calendar_store)
    engine.sync([make_event('7001')], 'City of Madison')

    moved = make_event('7001', title='Common Council (Rescheduled)',
                       start=now + timedelta(days=10), venue='Virtual')
    result = engine.sync([moved], 'City of Madison')

    stored = calendar_store.find_event_by_external_id('7001')
    assert result.updated == 1
    assert stored.title == 'Common Council (Rescheduled)'
    assert stored.start == now + timedelta(days=10)
    assert stored.venue_id == calendar_store.find_venue_by_canonical_key('virtual').id


def test_sync_folds_venue_variants(calendar_store, make_event):
    """Test events at spelling variants of a venue share one venue."""
    events = [
        make_event('1', venue='Room 201, Martin Luther King, Jr. Blvd'),
        make_event('2', venue='Room 201, MLK Jr Blvd'),
        make_event('3', venue='room 201,  mlk blvd'),
    ]

    SyncEngine(calendar_store).sync(events, 'City of Madison')

    venues = calendar_store.list_all_venues()
    assert len(venues) == 1
    assert venues[0].display_name == 'Room 201, Martin Luther King, Jr. Blvd'
    venue_ids = {calendar_store.find_event_by_external_id(i).venue_id for i in ('1', '2', '3')}
    assert venue_ids == {venues[0].id}


def test_sync_event_without_venue(calendar_store, make_event):
    """Test events with no location are stored without a venue."""
    result = SyncEngine(calendar_store).sync([make_event('1', venue='')], 'Dane County')

    assert result.inserted == 1
    assert calendar_store.find_event_by_external_id('1').venue_id is None
    assert calendar_store.list_all_venues() == []


def test_sync_skips_missing_identifiers(calendar_store, make_event):
    """Test events without an external id or start are skipped."""
    no_id = make_event('')
    no_start = make_event('2')
    no_start.start = None

    result = SyncEngine(calendar_store).sync([no_id, no_start, make_event('3')], 'City of Madison')

    assert result.fetched == 3
    assert result.skipped == 2
    assert result.inserted == 1
    assert len(result.preview) == 1


def test_sync_store_write_failure_is_skipped(make_event):
    """Test a store write failure skips the event and the run continues."""
    store = Mock()
    store.find_venue_by_canonical_key.return_value = Venue('v1', 'Room 201', 'room 201')
    store.find_event_by_external_id.return_value = None
    store.upsert_event.side_effect = [StoreWriteError('denied'), Mock()]

    result = SyncEngine(store).sync([make_event('1'), make_event('2')], 'City of Madison')

    assert result == SyncResult(
        fetched=2, inserted=1, updated=0, skipped=1, preview=result.preview
    )
    assert [entry.title for entry in result.preview] == ['Common Council']
    assert store.upsert_event.call_count == 2


def test_sync_venue_creation_failure(make_event):
    """Test a failed venue creation still stores the event without a venue."""
    store = Mock()
    store.find_venue_by_canonical_key.return_value = None
    store.create_venue.side_effect = StoreWriteError('denied')
    store.find_event_by_external_id.return_value = None

    result = SyncEngine(store).sync([make_event('1')], 'City of Madison')

    assert result.inserted == 1
    assert store.upsert_event.call_args.kwargs['venue_id'] is None


def test_sync_preview_limited_to_ten(calendar_store, make_event):
    """Test the preview holds the first ten accepted events in order."""
    events = [make_event(str(i), title=f'Meeting {i}') for i in range(12)]

    result = SyncEngine(calendar_store).sync(events, 'City of Madison')

    assert len(result.preview) == 10
    assert result.preview[0].title == 'Meeting 0'
    assert result.preview[9].title == 'Meeting 9'
    assert result.preview[0].venue_raw_name == 'City-County Building, Room 201'
    assert result.preview[0].start == events[0].start_local
    assert result.preview[0].detail_url == events[0].detail_url


def test_sync_empty_input(calendar_store):
    """Test syncing nothing reports zero counts."""
    assert SyncEngine(calendar_store).sync([], 'City of Madison') == SyncResult()


def test_sync_store_read_failure_is_skipped(make_event):
    """Test a failed lookup skips only that event."""
    store = Mock()
    store.find_venue_by_canonical_key.side_effect = [
        Venue('v1', 'Room 201', 'room 201'),
        StoreReadError('throttled'),
        Venue('v1', 'Room 201', 'room 201'),
    ]
    store.find_event_by_external_id.return_value = None

    result = SyncEngine(store).sync(
        [make_event('1'), make_event('2'), make_event('3')], 'City of Madison'
    )

    assert result.fetched == 3
    assert result.inserted == 2
    assert result.skipped == 1
    synced = [call.kwargs['external_id'] for call in store.upsert_event.call_args_list]
    assert synced == ['1', '3']


def test_sync_counts_dropped_records(calendar_store, make_event):
    """Test records rejected upstream of sync appear as fetched and skipped."""
    result = SyncEngine(calendar_store).sync([make_event('1')], 'Dane County', dropped=2)

    assert result.fetched == 3
    assert result.skipped == 2
    assert result.inserted == 1
