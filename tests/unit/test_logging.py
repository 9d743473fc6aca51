"""
Unit tests for logging functionality.
"""
import pytest
import json
import logging
import logging.handlers
import sys
from unittest.mock import patch

from zendesk_connector.config.settings import LoggingConfig
from zendesk_connector.utils.logging import (
    ConnectorLogger, JSONFormatter, configure_logging, get_logger, parse_file_size
)


def _record(**extra):
    record = logging.LogRecord(
        name='test_logger',
        level=logging.INFO,
        pathname='/test/path.py',
        lineno=42,
        msg='Test message',
        args=(),
        exc_info=None
    )
    record.module = 'test_module'
    record.funcName = 'test_function'
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test JSON logging formatter."""

    def test_json_format_basic(self):
        """Test basic JSON formatting."""
        formatter = JSONFormatter()
        record = _record()

        log_data = json.loads(formatter.format(record))

        assert log_data['level'] == 'INFO'
        assert log_data['logger'] == 'test_logger'
        assert log_data['message'] == 'Test message'
        assert log_data['module'] == 'test_module'
        assert log_data['thread'] == record.threadName
        assert log_data['line'] == 42
        assert log_data['timestamp'].endswith('Z')
        assert 'function' not in log_data

    def test_timestamp_comes_from_record(self):
        record = _record()
        record.created = 1651988995.0

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data['timestamp'] == '2022-05-08T05:49:55Z'

    def test_json_format_with_extra(self):
        """Test JSON formatting with extra fields."""
        formatter = JSONFormatter(include_extra=True)

        log_data = json.loads(formatter.format(_record(ticket_id=87, retry_after=93)))

        assert log_data['ticket_id'] == 87
        assert log_data['retry_after'] == 93

    def test_json_format_without_extra(self):
        formatter = JSONFormatter(include_extra=False)

        log_data = json.loads(formatter.format(_record(ticket_id=87)))

        assert 'ticket_id' not in log_data

    def test_json_format_with_exception(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        log_data = json.loads(formatter.format(record))

        assert 'ValueError: boom' in log_data['exception']


class TestConnectorLogger:
    """Test connector logger context handling."""

    def test_context_management(self):
        """Test logging context management."""
        logger = ConnectorLogger('test', component='zendesk-source')
        logger.set_context(domain='testlab')

        with patch.object(logger.logger, 'log') as mock_log:
            logger.info('Test message')

            mock_log.assert_called_once()
            args, kwargs = mock_log.call_args
            assert args == (logging.INFO, 'Test message')
            assert kwargs['extra'] == {'component': 'zendesk-source', 'domain': 'testlab'}
            assert kwargs['exc_info'] is False

    def test_context_override(self):
        """Test context override in individual log calls."""
        logger = ConnectorLogger('test')
        logger.set_context(domain='testlab')

        with patch.object(logger.logger, 'log') as mock_log:
            logger.warning('Test message', domain='other', retry_after=5)

            args, kwargs = mock_log.call_args
            assert args[0] == logging.WARNING
            assert kwargs['extra']['domain'] == 'other'
            assert kwargs['extra']['retry_after'] == 5

    def test_clear_context_keeps_bound_context(self):
        logger = ConnectorLogger('test', component='zendesk-destination')
        logger.set_context(domain='testlab')

        logger.clear_context()

        assert logger.context == {'component': 'zendesk-destination'}

    def test_exception_includes_traceback(self):
        logger = ConnectorLogger('test', tomb='zendesk-cdc')

        with patch.object(logger.logger, 'log') as mock_log:
            try:
                raise ValueError("boom")
            except ValueError:
                logger.exception('Task failed')

            args, kwargs = mock_log.call_args
            assert args == (logging.ERROR, 'Task failed')
            assert kwargs['exc_info'] is True
            assert kwargs['extra'] == {'tomb': 'zendesk-cdc'}


class TestConfigureLogging:
    """Test root logger configuration."""

    @pytest.fixture
    def root_logger(self):
        root_logger = logging.getLogger()
        saved_handlers = list(root_logger.handlers)
        saved_level = root_logger.level
        yield root_logger
        for handler in root_logger.handlers:
            if handler not in saved_handlers:
                handler.close()
        root_logger.handlers[:] = saved_handlers
        root_logger.setLevel(saved_level)

    def test_parse_file_size(self):
        assert parse_file_size('10MB') == 10 * 1024 * 1024
        assert parse_file_size('512kb') == 512 * 1024
        assert parse_file_size('1GB') == 1024 ** 3
        assert parse_file_size('2048') == 2048

    def test_configure_with_file_handler(self, root_logger, tmp_path):
        log_file = tmp_path / 'logs' / 'connector.log'

        configure_logging(LoggingConfig(
            level='warning',
            format='text',
            file_path=str(log_file),
            max_file_size='1MB',
            backup_count=2,
        ))

        assert root_logger.level == logging.WARNING
        assert log_file.parent.exists()
        file_handlers = [h for h in root_logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024 * 1024
        assert logging.getLogger('urllib3').level == logging.WARNING

    def test_debug_overrides_level(self, root_logger):
        configure_logging(LoggingConfig(level='ERROR'), debug=True)

        assert root_logger.level == logging.DEBUG
        assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)


def test_get_logger():
    """Test logger factory function."""
    logger1 = get_logger('test_logger', component='a')
    logger2 = get_logger('test_logger', component='b')

    assert isinstance(logger1, ConnectorLogger)
    assert logger1 is not logger2
    assert logger1.logger is logger2.logger
    assert logger1.context == {'component': 'a'}
    assert logger2.context == {'component': 'b'}
