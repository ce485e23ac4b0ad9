"""Unit tests for Legistar payload format detection."""
import json

import pytest

from processor.errors import ParseError
from sources.formats import ParseContext, parse_payload, resolve_field

MADISON = ParseContext(source_id='madison', client='madison', rich_records=True)
DANE = ParseContext(source_id='dane', client='danecounty')


class TestFieldAliases:
    """Test cases for the field-alias resolver."""

    def test_first_alias_wins(self):
        """Test that the earliest candidate name takes priority."""
        record = {'EventDate': '2024-01-15', 'MeetingDate': '2024-02-01'}
        assert resolve_field(record.get, 'date') == '2024-01-15'

    def test_empty_alias_falls_through(self):
        """Test that empty values are skipped."""
        record = {'EventDate': '', 'StartDate': None, 'MeetingDate': '2024-02-01'}
        assert resolve_field(record.get, 'date') == '2024-02-01'

    def test_missing_field(self):
        """Test that a missing field resolves to an empty string."""
        assert resolve_field({}.get, 'location') == ''

    def test_numeric_values_become_strings(self):
        """Test integer ids are converted."""
        assert resolve_field({'ID': 42}.get, 'external_id') == '42'


class TestParsePayload:
    """Test cases for parse_payload."""

    def test_rich_array(self):
        """Test bare arrays from rich sources keep the detailed fields."""
        body = json.dumps([{
            'EventId': 7001,
            'EventGuid': 'A1B2',
            'EventLastModifiedUtc': '2024-01-10T15:00:00',
            'EventBodyName': 'Common Council',
            'EventDate': '2024-01-16T00:00:00',
            'EventTime': '6:30 PM',
            'EventLocation': 'Room 201, City-County Building',
            'EventAgendaFile': 'https://madison.legistar.com/View.ashx?M=A&ID=7001',
            'EventMinutesFile': None,
            'EventMedia': 'https://media.example.com/7001',
            'EventInSiteURL': 'https://madison.legistar.com/MeetingDetail.aspx?LEGID=7001',
            'EventAgendaStatusName': 'Final',
            'EventComment': 'Hybrid meeting',
            'EventItems': [{'EventItemId': 1}]
        }])

        records = parse_payload(body, MADISON)

        assert len(records) == 1
        record = records[0]
        assert record.external_id == '7001'
        assert record.title == 'Common Council'
        assert record.date == '2024-01-16T00:00:00'
        assert record.time == '6:30 PM'
        assert record.location == 'Room 201, City-County Building'
        assert record.detail_url == 'https://madison.legistar.com/MeetingDetail.aspx?LEGID=7001'
        assert record.details['guid'] == 'A1B2'
        assert record.details['video'] == 'https://media.example.com/7001'
        assert record.details['minutes_file'] is None
        assert record.details['status'] == 'Final'
        assert record.details['items'] == [{'EventItemId': 1}]

    def test_value_object(self):
        """Test OData objects with a value array use the generic mapping."""
        body = json.dumps({'value': [
            {'ID': 55, 'MeetingName': 'Board of Health', 'StartDate': '2024-02-01',
             'StartTime': '5:00 PM', 'MeetingLocation': 'Virtual'}
        ]})

        records = parse_payload(body, DANE)

        assert len(records) == 1
        assert records[0].external_id == '55'
        assert records[0].title == 'Board of Health'
        assert records[0].date == '2024-02-01'
        assert records[0].time == '5:00 PM'
        assert records[0].location == 'Virtual'
        assert records[0].detail_url == \
            'https://danecounty.legistar.com/MeetingDetail.aspx?ID=55'
        assert records[0].details == {}

    def test_generic_array_for_plain_source(self):
        """Test bare arrays from non-rich sources use the generic mapping."""
        body = json.dumps([{'EventId': 9, 'EventDate': '2024-03-01T00:00:00'}])

        records = parse_payload(body, DANE)

        assert records[0].external_id == '9'
        assert records[0].title == 'Meeting'

    def test_xml_fallback(self):
        """Test Granicus XML is parsed without needing well-formed XML."""
        body = """<?xml version="1.0"?>
        <ArrayOfGranicusEvent xmlns:i="http://www.w3.org/2001/XMLSchema-instance">
          <GranicusEvent>
            <EventId>101</EventId>
            <EventBodyName>Finance &amp; Budget Committee</EventBodyName>
            <EventDate>2024-01-22T00:00:00</EventDate>
            <EventTime>4:30 PM</EventTime>
            <EventLocation xml:space="preserve">Room 103A</EventLocation>
          </GranicusEvent>
          <GranicusEvent type="special">
            <EventId>102</EventId>
            <EventDate>2024-01-23T00:00:00</EventDate>
            <EventTime i:nil="true"/>
          </GranicusEvent>
          <GranicusEvent><EventId>103</EventId>
        """

        records = parse_payload(body, DANE)

        assert [record.external_id for record in records] == ['101', '102']
        assert records[0].title == 'Finance & Budget Committee'
        assert records[0].time == '4:30 PM'
        assert records[0].location == 'Room 103A'
        assert records[1].title == 'Meeting'
        assert records[1].time == ''

    def test_xml_error_envelope(self):
        """Test the upstream error message is surfaced."""
        body = (
            '<Error><Message>An error has occurred.</Message>'
            '<ExceptionMessage>Agency not found</ExceptionMessage></Error>'
        )

        with pytest.raises(ParseError, match='Agency not found'):
            parse_payload(body, DANE)

    def test_json_error_envelope(self):
        """Test JSON error objects are surfaced."""
        body = json.dumps({'Message': 'LegistarConnectionString setting is not set up'})

        with pytest.raises(ParseError, match='LegistarConnectionString'):
            parse_payload(body, DANE)

    def test_empty_json_array(self):
        """Test an empty array is a valid, empty result."""
        assert parse_payload('[]', MADISON) == []
        assert parse_payload('{"value": []}', DANE) == []

    def test_unrecognized_payload(self):
        """Test payloads matching no format raise ParseError."""
        with pytest.raises(ParseError):
            parse_payload('<html><body>Maintenance</body></html>', DANE)

    def test_empty_body(self):
        """Test an empty body raises ParseError."""
        with pytest.raises(ParseError):
            parse_payload('  ', DANE)
