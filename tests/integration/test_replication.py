"""
Integration tests: source to destination over mocked HTTP sessions.
"""
import pytest
import json
import time
from unittest.mock import Mock

import requests

from zendesk_connector.destination import Destination
from zendesk_connector.source.iterator import CDCIterator
from zendesk_connector.source.position import parse_position
from zendesk_connector.source.source import Source
from zendesk_connector.utils.errors import BackoffRetry, UnexpectedStatusError
from zendesk_connector.zendesk.cursor import Cursor
from zendesk_connector.zendesk.importer import BulkImporter


CFG = {
    'domain': 'testlab',
    'username': 'dummy_user',
    'apiToken': 'dummy_token',
    'pollingPeriod': '5ms',
    'bufferSize': '2',
    'maxRetries': '1',
}
EXPORT_URL = 'https://testlab.zendesk.com/api/v2/incremental/tickets/cursor.json'


def json_response(status_code, body):
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.headers = {}
    response.json.return_value = body
    response.text = json.dumps(body)
    return response


def read_record(source, timeout=2.0):
    deadline = time.monotonic() + timeout
    while True:
        try:
            return source.read()
        except BackoffRetry:
            if time.monotonic() > deadline:
                raise
            time.sleep(0.005)


class TestReplication:
    """Tickets flow from the incremental export into create_many."""

    @pytest.fixture
    def source_session(self):
        session = Mock(spec=requests.Session)
        pages = [
            json_response(200, {
                'after_url': f'{EXPORT_URL}?cursor=page2',
                'end_of_stream': False,
                'tickets': [
                    {'id': 1, 'subject': 'a', 'status': 'open',
                     'updated_at': '2022-05-08T05:49:55Z', 'created_at': '2022-05-08T05:49:55Z'},
                    {'id': 2, 'subject': 'b', 'status': 'new',
                     'updated_at': '1970-01-01T00:00:00Z', 'created_at': '1970-01-01T00:00:00Z'},
                ],
            }),
            json_response(200, {
                'after_url': f'{EXPORT_URL}?cursor=page3',
                'end_of_stream': True,
                'tickets': [
                    {'id': 3, 'subject': 'c', 'status': 'solved',
                     'updated_at': '2022-05-09T00:00:00Z', 'created_at': '2022-05-01T00:00:00Z'},
                ],
            }),
        ]
        empty = json_response(200, {'after_url': None, 'end_of_stream': True, 'tickets': []})
        session.get.side_effect = lambda *args, **kwargs: pages.pop(0) if pages else empty
        return session

    @pytest.fixture
    def destination_session(self):
        session = Mock(spec=requests.Session)
        session.post.return_value = json_response(200, {'job_status': {'status': 'queued'}})
        return session

    @pytest.fixture
    def source(self, source_session):
        def factory(config, position):
            cursor = Cursor(config.username, config.api_token, config.domain,
                            start_time=position.last_modified, session=source_session)
            return CDCIterator(cursor, config.polling_period)

        source = Source(iterator_factory=factory)
        source.configure(CFG)
        yield source
        source.teardown()

    @pytest.fixture
    def destination(self, destination_session):
        def factory(config):
            return BulkImporter(config.username, config.api_token, config.domain,
                                max_retries=config.max_retries, session=destination_session)

        destination = Destination(writer_factory=factory)
        destination.configure(CFG)
        destination.open()
        return destination

    def test_replicates_tickets(self, source, destination, source_session, destination_session):
        acked = []
        source.open(None)

        for _ in range(3):
            record = read_record(source)
            destination.write_async(record, lambda err, pos=record.position: acked.append(pos))
        destination.teardown()

        urls = [call[0][0] for call in source_session.get.call_args_list]
        assert urls[0] == f'{EXPORT_URL}?start_time=1'
        assert urls[1] == f'{EXPORT_URL}?cursor=page2'

        bodies = [json.loads(call[1]['data']) for call in destination_session.post.call_args_list]
        assert [[t['id'] for t in body['tickets']] for body in bodies] == [[1, 2], [3]]

        positions = [parse_position(pos) for pos in acked]
        assert [pos.id for pos in positions] == [1, 2, 3]
        assert positions == sorted(positions)
        # The epoch ticket inherits the previous update time
        assert positions[1].last_modified == positions[0].last_modified

        for pos in acked:
            source.ack(pos)

    def test_destination_failure_leaves_records_unacked(self, source, destination, destination_session):
        destination_session.post.return_value = json_response(500, 'some_dummy_error')
        acked = []
        source.open(None)

        destination.write_async(read_record(source), acked.append)
        with pytest.raises(UnexpectedStatusError, match='some_dummy_error'):
            destination.write_async(read_record(source), acked.append)

        assert acked == []
