"""
Logging Configuration for fieldcrypt

Configures structured JSON logging with separate handlers for security events
and application events. Output is one JSON object per line, suitable for
SIEM ingestion.
"""

import json
import logging
import logging.config
import sys
from datetime import datetime, timezone
from typing import Any, Dict

SERVICE_NAME = 'fieldcrypt'
SERVICE_VERSION = '1.0'

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'exc_info', 'exc_text',
    'stack_info', 'getMessage', 'taskName',
}


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs log records as JSON.
    """

    def __init__(self, include_traceback: bool = False):
        super().__init__()
        self.include_traceback = include_traceback

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'service': SERVICE_NAME,
            'version': SERVICE_VERSION,
        }

        if getattr(record, 'process', None):
            log_entry['process_id'] = record.process
        if getattr(record, 'thread', None):
            log_entry['thread_id'] = record.thread

        if record.exc_info and record.exc_info != (None, None, None):
            try:
                exc_type, exc_value, exc_traceback = record.exc_info
                log_entry['exception'] = {
                    'type': exc_type.__name__ if exc_type else None,
                    'message': str(exc_value) if exc_value else None,
                    'traceback': self.formatException(record.exc_info)
                    if (exc_traceback and self.include_traceback) else None,
                }
            except (AttributeError, TypeError):
                log_entry['exception'] = {
                    'type': 'UnknownException',
                    'message': 'Exception information not available',
                    'traceback': None,
                }

        # Custom fields passed through ``extra=``
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class SecurityEventFilter(logging.Filter):
    """Filter that only allows security events through."""

    def filter(self, record):
        return record.name == 'security_events'


class ApplicationEventFilter(logging.Filter):
    """Filter that allows application events but excludes security events."""

    def filter(self, record):
        return record.name != 'security_events'


def setup_logging(app_config: Dict[str, Any] = None) -> None:
    """
    Set up structured logging configuration.

    Args:
        app_config: configuration values, e.g. ``vars(Config())``
    """
    log_level = 'INFO'
    development = False
    if app_config:
        if app_config.get('ENVIRONMENT') == 'development':
            log_level = 'DEBUG'
            development = True
        elif app_config.get('ENVIRONMENT') == 'production':
            log_level = 'WARNING'

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {
                '()': JSONFormatter,
                'include_traceback': development,
            },
            'simple': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            }
        },
        'filters': {
            'security_events': {
                '()': SecurityEventFilter,
            },
            'application_events': {
                '()': ApplicationEventFilter,
            },
        },
        'handlers': {
            'security_events': {
                'class': 'logging.StreamHandler',
                'stream': sys.stdout,
                'formatter': 'json',
                'filters': ['security_events'],
                'level': 'INFO',
            },
            'application_events': {
                'class': 'logging.StreamHandler',
                'stream': sys.stdout,
                'formatter': 'json',
                'filters': ['application_events'],
                'level': log_level,
            },
            'console': {
                'class': 'logging.StreamHandler',
                'stream': sys.stderr,
                'formatter': 'simple',
                'level': 'ERROR',
            }
        },
        'loggers': {
            'security_events': {
                'handlers': ['security_events'],
                'level': 'INFO',
                'propagate': False,
            },
            'fieldcrypt': {
                'handlers': ['application_events'],
                'level': log_level,
                'propagate': False,
            },
        },
        'root': {
            'handlers': ['console'],
            'level': 'ERROR',
        }
    }

    if development:
        config['handlers']['console']['level'] = 'DEBUG'
        config['loggers']['fieldcrypt']['handlers'].append('console')

    logging.config.dictConfig(config)
