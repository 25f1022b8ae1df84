import logging
from dataclasses import dataclass, field
from enum import StrEnum

import orjson
import structlog
from asgi_correlation_id import correlation_id
from beartype import beartype

from app.core.settings import settings

MAX_EVENT_LENGTH = 80


class LoggerError(Exception):
    """Raised when a log call carries invalid extra kwargs."""


class LogLevel(StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogIcon(StrEnum):
    """Icons prepended to events in DEBUG mode, one per log category."""

    DEFAULT = "📋"

    # Status
    SUCCESS = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    CRITICAL = "🔴"

    # Lifecycle
    START = "🚀"
    COMPLETE = "✨"

    # Request pipeline
    ADAPTER = "🔌"
    CONTROLLER = "🎛️"
    NETWORK = "🌐"
    HEALTHCHECK = "❤️"

    # Uploads
    UPLOAD = "📤"
    FILE = "📄"
    STREAMING = "📡"


@dataclass
class LoggerConfig:
    debug: bool = field(default_factory=lambda: settings.DEBUG)
    log_level: LogLevel = field(default=LogLevel.INFO)


def add_correlation_id(logger, method_name: str, event_dict: dict) -> dict:
    """Attach the request correlation id set by CorrelationIdMiddleware."""
    if request_id := correlation_id.get():
        event_dict["correlation_id"] = request_id
    return event_dict


class EventNormalizer:
    """
    Normalize log events before rendering.

    - Event text is uppercased and cut to MAX_EVENT_LENGTH characters.
    - The ``icon`` kwarg must be a LogIcon member; it is dropped from the event dict.
    - In DEBUG mode the icon is prepended to the event text.
    """

    def __init__(self, debug: bool) -> None:
        self.debug = debug

    @beartype
    def __call__(self, logger, name: str, event_dict: dict) -> dict:
        try:
            icon = LogIcon(event_dict.pop("icon", LogIcon.DEFAULT))
        except ValueError as err:
            raise LoggerError(f"Unknown log icon, expected a LogIcon member: {err}") from err

        event = str(event_dict.get("event", ""))[:MAX_EVENT_LENGTH].upper()
        event_dict["event"] = f"{icon.value} {event}" if self.debug else event
        return event_dict


def dev_pipeline_renderer(logger, name: str, event_dict: dict) -> str:
    """Render ``timestamp | LEVEL | EVENT | key=value ... | file:line``."""
    located = {"timestamp", "level", "event", "filename", "lineno"}

    location = f"{event_dict['filename']}:{event_dict.get('lineno', '')}" if event_dict.get("filename") else ""
    extras = " | ".join(f"{key}={value}" for key, value in event_dict.items() if key not in located)

    parts = [
        event_dict.get("timestamp", ""),
        str(event_dict.get("level", LogLevel.INFO)).upper(),
        event_dict.get("event", ""),
        extras,
        location,
    ]
    return " | ".join(filter(None, parts))


def setup_logging(config: LoggerConfig) -> None:
    """Configure structlog: pipe renderer in DEBUG, orjson lines otherwise."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
            additional_ignores=["logger"],
        ),
        add_correlation_id,
        EventNormalizer(debug=config.debug),
    ]

    if config.debug:
        processors.append(dev_pipeline_renderer)
    else:
        processors.extend([structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer(serializer=orjson.dumps)])

    structlog.configure(
        processors=processors,
        logger_factory=structlog.BytesLoggerFactory() if not config.debug else structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, config.log_level)),
        cache_logger_on_first_use=True,
    )


setup_logging(LoggerConfig())

logger = structlog.get_logger()
