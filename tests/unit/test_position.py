"""
Unit tests for ticket positions.
"""
import pytest
import json
from datetime import datetime, timedelta, timezone

from zendesk_connector.source.position import (
    EPOCH, TicketPosition, format_timestamp, is_zero_time, parse_position, parse_timestamp
)
from zendesk_connector.utils.errors import InvalidPositionError


class TestTicketPosition:
    """Test cases for encoding positions."""

    def test_to_record_position(self):
        pos = TicketPosition(
            last_modified=datetime(2022, 5, 8, 2, 48, 21, tzinfo=timezone.utc),
            id=87
        )

        encoded = pos.to_record_position()

        assert json.loads(encoded) == {'LastModified': '2022-05-08T02:48:21Z', 'ID': 87}

    def test_integral_float_id_encoded_as_integer(self):
        encoded = TicketPosition(last_modified=EPOCH, id=87.0).to_record_position()

        assert b'"ID": 87}' in encoded

    def test_ordering(self):
        t1 = datetime(2022, 5, 8, tzinfo=timezone.utc)
        t2 = t1 + timedelta(seconds=1)

        assert TicketPosition(t1, 5) < TicketPosition(t1, 6)
        assert TicketPosition(t1, 99) < TicketPosition(t2, 1)
        assert sorted([TicketPosition(t2, 1), TicketPosition(t1, 2)])[0].id == 2

    @pytest.mark.parametrize('pos', [
        TicketPosition(),
        TicketPosition(datetime(2022, 5, 8, 2, 48, 21, tzinfo=timezone.utc), 87),
        TicketPosition(datetime(2023, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc), 12345678901),
        TicketPosition(datetime(2022, 5, 8, 4, 0, tzinfo=timezone(timedelta(hours=2))), 3),
        TicketPosition(datetime(2022, 5, 8, tzinfo=timezone.utc), 1.5),
    ])
    def test_round_trip(self, pos):
        assert parse_position(pos.to_record_position()) == pos


class TestParsePosition:
    """Test cases for decoding positions."""

    def test_valid_position(self):
        pos = parse_position(b'{"LastModified":"2022-05-08T02:48:21Z","ID":87}')

        assert pos.id == 87
        assert pos.last_modified == datetime(2022, 5, 8, 2, 48, 21, tzinfo=timezone.utc)

    @pytest.mark.parametrize('data', [None, b''])
    def test_empty_position_is_zero(self, data):
        pos = parse_position(data)

        assert pos == TicketPosition(last_modified=EPOCH, id=0)

    def test_go_zero_time_is_epoch(self):
        pos = parse_position(b'{"LastModified":"0001-01-01T00:00:00Z","ID":0}')

        assert pos.last_modified == EPOCH

    def test_pre_epoch_position_round_trips(self):
        pos = TicketPosition(last_modified=datetime(1969, 7, 20, 20, 17, 40, tzinfo=timezone.utc), id=11)

        encoded = pos.to_record_position()

        assert json.loads(encoded)['LastModified'] == '1969-07-20T20:17:40Z'
        assert parse_position(encoded) == pos

    @pytest.mark.parametrize('data', [
        b'some_position',
        b'[1, 2]',
        b'{"LastModified":"yesterday","ID":1}',
        b'{"LastModified":"2022-05-08T02:48:21Z","ID":"87"}',
        b'{"LastModified":"2022-05-08T02:48:21","ID":87}',
        b'\xff\xfe',
    ])
    def test_invalid_position(self, data):
        with pytest.raises(InvalidPositionError):
            parse_position(data)


class TestTimestamps:
    """Test timestamp helpers."""

    def test_parse_timestamp_utc(self):
        ts = parse_timestamp('2022-05-08T05:49:55Z')

        assert ts == datetime(2022, 5, 8, 5, 49, 55, tzinfo=timezone.utc)
        assert ts.tzinfo == timezone.utc

    def test_parse_timestamp_offset(self):
        ts = parse_timestamp('2022-05-08T07:49:55+02:00')

        assert ts == datetime(2022, 5, 8, 5, 49, 55, tzinfo=timezone.utc)
        assert format_timestamp(ts) == '2022-05-08T05:49:55Z'

    @pytest.mark.parametrize('value', [None, 17, '', 'not a time', '2022-05-08 05:49:55'])
    def test_parse_timestamp_invalid(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)

    def test_is_zero_time(self):
        assert is_zero_time(EPOCH)
        assert is_zero_time(datetime(1, 1, 1, tzinfo=timezone.utc))
        assert not is_zero_time(EPOCH + timedelta(seconds=1))
        assert not is_zero_time(EPOCH - timedelta(seconds=1))
        assert not is_zero_time(datetime(1, 1, 2, tzinfo=timezone.utc))
