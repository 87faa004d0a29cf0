"""
Structured Logging Configuration Module

This module configures structlog 23.1+ on top of the standard library logging
package. In ``json`` mode structlog hands its event dictionaries to the stdlib
logger as ``extra`` keyword arguments and python-json-logger renders one JSON
object per line for log aggregation; in ``console`` mode structlog renders
human-readable lines for local development.

Key Features:
- structlog processors for log level, logger name and ISO timestamps
- Flask request context (method, path, client address, request id) on every entry
- Masking of sensitive keys (passwords, tokens, authorization headers)
- python-json-logger 2.0+ formatter adding service metadata

Dependencies:
- structlog 23.1+ for structured logging framework
- python-json-logger 2.0+ for JSON log formatting
"""

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from pythonjsonlogger import jsonlogger
from structlog.types import EventDict, WrappedLogger


class LoggingConfigurationError(Exception):
    """Custom exception for logging configuration validation errors."""
    pass


SENSITIVE_KEYS = ('password', 'secret', 'token', 'authorization', 'credential')


class ServiceJSONFormatter(jsonlogger.JsonFormatter):
    """JSON log formatter adding service identification fields."""

    def __init__(self, *args, **kwargs):
        format_string = ' '.join([
            '%(asctime)s',
            '%(name)s',
            '%(levelname)s',
            '%(message)s',
        ])
        super().__init__(format_string, *args, **kwargs)
        self._hostname = socket.gethostname()

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord,
                   message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['service'] = os.getenv('APP_NAME', 'form-validator')
        log_record['environment'] = os.getenv('FLASK_ENV', 'production')
        log_record['version'] = os.getenv('APP_VERSION', '2.2.2')
        log_record['hostname'] = self._hostname
        log_record['process_id'] = record.process

        if not log_record.get('timestamp'):
            log_record['timestamp'] = datetime.now(timezone.utc).isoformat()


def add_request_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add Flask request context to log entries when available.

    Args:
        logger: Wrapped logger instance
        method_name: Logging method name
        event_dict: Event dictionary to enhance

    Returns:
        Enhanced event dictionary with request context
    """
    from flask import g, has_request_context, request

    if has_request_context():
        event_dict.setdefault('request_id', getattr(g, 'request_id', None))
        event_dict.setdefault('remote_addr', request.remote_addr)
        event_dict.setdefault('method', request.method)
        event_dict.setdefault('path', request.path)

    return event_dict


def filter_sensitive_data(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Mask sensitive values in log entries.

    Submitted form data routinely contains passwords, so any key that looks
    sensitive is masked at every nesting level.
    """
    def mask_sensitive_value(value: Any) -> Any:
        if isinstance(value, str) and len(value) > 4:
            return f"{value[:2]}***{value[-2:]}"
        return "***"

    def filter_dict(data: Dict[str, Any]) -> Dict[str, Any]:
        filtered = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in SENSITIVE_KEYS):
                filtered[key] = mask_sensitive_value(value)
            elif isinstance(value, dict):
                filtered[key] = filter_dict(value)
            elif isinstance(value, list):
                filtered[key] = [
                    filter_dict(item) if isinstance(item, dict) else item
                    for item in value
                ]
            else:
                filtered[key] = value
        return filtered

    return filter_dict(event_dict)


class LoggingConfiguration:
    """
    Logging configuration manager for the Flask application.

    Wires structlog to stdlib logging according to ``LOG_LEVEL`` and
    ``LOG_FORMAT`` from the application configuration.
    """

    def __init__(self, config: Any):
        """
        Initialize logging configuration with application settings.

        Args:
            config: Configuration object exposing LOG_LEVEL and LOG_FORMAT
        """
        self.config = config
        self.is_configured = False
        self._validate_configuration()

    def _validate_configuration(self) -> None:
        """
        Validate logging configuration requirements.

        Raises:
            LoggingConfigurationError: When configuration is invalid
        """
        required_attrs = ['LOG_LEVEL', 'LOG_FORMAT']
        missing_attrs = [attr for attr in required_attrs if not hasattr(self.config, attr)]

        if missing_attrs:
            raise LoggingConfigurationError(
                f"Missing required logging configuration: {', '.join(missing_attrs)}"
            )

        if not isinstance(getattr(logging, self.config.LOG_LEVEL.upper(), None), int):
            raise LoggingConfigurationError(f"Unknown LOG_LEVEL '{self.config.LOG_LEVEL}'")

    @property
    def json_output(self) -> bool:
        return self.config.LOG_FORMAT.lower() == 'json'

    def configure_structured_logging(self) -> None:
        """Configure structlog processors and the stdlib root logger."""
        self._configure_stdlib_logging()

        processors = [
            structlog.contextvars.merge_contextvars,
            add_request_context,
            filter_sensitive_data,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        if self.json_output:
            processors.append(structlog.stdlib.render_to_log_kwargs)
        else:
            processors.append(structlog.dev.ConsoleRenderer(colors=False))

        structlog.configure(
            processors=processors,
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self.is_configured = True

    def _configure_stdlib_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self.config.LOG_LEVEL.upper()),
            handlers=self._create_log_handlers(),
            force=True
        )
        self._suppress_verbose_loggers()

    def _create_log_handlers(self) -> List[logging.Handler]:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(self._create_formatter())
        return [console_handler]

    def _create_formatter(self) -> logging.Formatter:
        if self.json_output:
            return ServiceJSONFormatter()
        return logging.Formatter(fmt='%(message)s')

    def _suppress_verbose_loggers(self) -> None:
        for logger_name in ('urllib3.connectionpool', 'httpx', 'httpcore', 'werkzeug'):
            logging.getLogger(logger_name).setLevel(logging.WARNING)


_logging_config: Optional[LoggingConfiguration] = None


def configure_application_logging(app_config: Any) -> LoggingConfiguration:
    """
    Configure application logging once per process.

    Args:
        app_config: Application configuration object

    Returns:
        Configured LoggingConfiguration instance
    """
    global _logging_config

    if _logging_config is None:
        _logging_config = LoggingConfiguration(app_config)
        _logging_config.configure_structured_logging()

    return _logging_config


__all__ = [
    'LoggingConfiguration',
    'LoggingConfigurationError',
    'ServiceJSONFormatter',
    'add_request_context',
    'filter_sensitive_data',
    'configure_application_logging',
]
