"""
Structured logging for the connector.

Connector objects log through a ``ConnectorLogger``: a thin wrapper over a
stdlib logger that stamps the object's bound context (component id, Zendesk
domain, tomb name) onto every record. The root logger is configured once,
lazily, from the ``logging`` section of the settings.
"""
import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from zendesk_connector.config.settings import LoggingConfig, get_settings


# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime'}

_SIZE_UNITS = {'KB': 1024, 'MB': 1024 ** 2, 'GB': 1024 ** 3}

_QUIET_LOGGERS = ('urllib3', 'requests')

_TEXT_FORMAT = '%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s'

_configured = False


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON line."""

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc)
        entry = {
            'timestamp': created.isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'message': record.getMessage(),
            'module': record.module,
            'line': record.lineno,
        }

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        if self.include_extra:
            entry.update(
                (key, value) for key, value in vars(record).items()
                if key not in _RECORD_ATTRS
            )

        return json.dumps(entry, default=str)


class ConnectorLogger:
    """Logger that carries bound context into every record.

    Context passed to the constructor is permanent; ``set_context`` layers
    more on top and ``clear_context`` drops back to the permanent part.
    """

    def __init__(self, name: str, **context: Any):
        self.name = name
        self.logger = logging.getLogger(name)
        self._base_context: Dict[str, Any] = dict(context)
        self._context: Dict[str, Any] = dict(context)

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def set_context(self, **kwargs: Any) -> None:
        self._context.update(kwargs)

    def clear_context(self) -> None:
        self._context = dict(self._base_context)

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self.logger.log(level, message, exc_info=exc_info, extra={**self._context, **kwargs})

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log at ERROR with the traceback of the exception being handled."""
        self._log(logging.ERROR, message, exc_info=True, **kwargs)


def parse_file_size(size: str) -> int:
    """Parse sizes such as ``10MB`` or ``512kb`` into bytes."""
    text = str(size).strip().upper()
    for suffix, factor in _SIZE_UNITS.items():
        if text.endswith(suffix):
            return int(text[:-len(suffix)]) * factor
    return int(text)


def _make_formatter(fmt: str) -> logging.Formatter:
    if fmt.lower() == 'json':
        return JSONFormatter()
    return logging.Formatter(_TEXT_FORMAT)


def configure_logging(config: Optional[LoggingConfig] = None, debug: bool = False) -> None:
    """Install the connector's handlers on the root logger.

    Without an explicit config the ``logging`` section of the settings is
    used, and the ``debug`` setting lowers the level to DEBUG.
    """
    global _configured

    if config is None:
        settings = get_settings()
        config = settings.logging
        debug = debug or settings.debug

    handlers = [logging.StreamHandler(sys.stdout)]
    if config.file_path:
        file_path = Path(config.file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            filename=file_path,
            maxBytes=parse_file_size(config.max_file_size),
            backupCount=config.backup_count
        ))

    formatter = _make_formatter(config.format)
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else getattr(logging, config.level.upper()))
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str, **context: Any) -> ConnectorLogger:
    """Return a logger for ``name`` with its own bound context.

    Loggers are not shared: two components of the same class each get their
    own context. Logging is configured from the settings on first use.
    """
    if not _configured:
        configure_logging()
    return ConnectorLogger(name, **context)
