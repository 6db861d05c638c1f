import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from contextvars import ContextVar

# Context variables for correlation
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
video_id_var: ContextVar[Optional[str]] = ContextVar('video_id', default=None)
playlist_id_var: ContextVar[Optional[str]] = ContextVar('playlist_id', default=None)
strategy_var: ContextVar[Optional[str]] = ContextVar('strategy', default=None)

_CORRELATION_FIELDS = (
    ('request_id', request_id_var, 'requestId'),
    ('video_id', video_id_var, 'videoId'),
    ('playlist_id', playlist_id_var, 'playlistId'),
    ('strategy', strategy_var, 'strategy'),
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            'ts': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        # Add correlation fields if available
        for _, var, key in _CORRELATION_FIELDS:
            value = var.get()
            if value:
                log_entry[key] = value

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        fields = getattr(record, 'fields', None)
        if fields:
            log_entry['fields'] = fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class CorrelationContext:
    """Context manager for correlation data."""

    def __init__(self, request_id: Optional[str] = None,
                 video_id: Optional[str] = None,
                 playlist_id: Optional[str] = None,
                 strategy: Optional[str] = None):
        """Initialize correlation context."""
        self._values = {
            'request_id': request_id,
            'video_id': video_id,
            'playlist_id': playlist_id,
            'strategy': strategy,
        }
        self._tokens = []

    def __enter__(self):
        """Set correlation context."""
        for name, var, _ in _CORRELATION_FIELDS:
            value = self._values[name]
            if value is not None:
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Restore correlation context."""
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


def setup_logging(level: str = 'INFO',
                  log_file: Optional[str] = None) -> logging.Logger:
    """Setup structured logging for the `soundbex` logger tree."""
    logger = logging.getLogger('soundbex')
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    formatter = StructuredFormatter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = 'soundbex') -> logging.Logger:
    """Get logger with structured formatting."""
    return logging.getLogger(name)


def log_with_fields(logger: logging.Logger, level: str, message: str,
                    fields: Optional[Dict[str, Any]] = None,
                    exc_info: bool = False, **kwargs) -> None:
    """Log message with additional structured fields."""
    merged = dict(fields or {})
    merged.update(kwargs)
    logger.log(getattr(logging, level.upper()), message,
               extra={'fields': merged}, exc_info=exc_info)


def log_error(logger: logging.Logger, message: str, error: Exception, **kwargs) -> None:
    """Log error with exception details."""
    log_with_fields(logger, 'ERROR', message, {
        'error_type': type(error).__name__,
        'error_message': str(error),
        **kwargs
    }, exc_info=True)
