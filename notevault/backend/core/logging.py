"""
Centralized Logging Configuration.

structlog on top of the standard library; every module gets its logger from
get_logger(__name__). Settings come from config/settings/logging.yaml and can
be overridden per process (run.py maps --verbose/--debug onto `level`).

JSON records carry: timestamp (UTC ISO 8601), level, logger, event,
func_name, lineno, plus `source` and `request_id` when bound by
RequestContextMiddleware or passed through log_with_source.

Passphrases, note bodies and capability tokens are redacted by
redact_sensitive_fields before any renderer sees them:

    logger.info("Note created", extra={"note_id": note.id})
    log_with_source(logger, "tasks", "info", "Sweep finished", deleted=3)

All records land in logs/system.jsonl; filter on `source`.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from notevault.backend.core.config import find_project_root, get_app_config
from notevault.backend.core.config_schema import FileHandlerSchema, LoggingSchema

VALID_SOURCES = frozenset({"web", "cli", "api", "tasks", "internal", "unknown"})

# Request bodies and token endpoints use these names.
SENSITIVE_FIELDS = frozenset({
    "passphrase",
    "content",
    "token",
    "first_token",
    "second_token",
    "authorization",
})

REDACTED = "[redacted]"

# uvicorn.access lines include query strings, and ?token= rides in them.
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")


def _load_logging_config() -> LoggingSchema:
    return get_app_config().logging


def _resolve_log_path(configured_path: str) -> Path:
    return find_project_root() / configured_path


def redact_sensitive_fields(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask SENSITIVE_FIELDS at the top level and inside an `extra` mapping."""
    for key in SENSITIVE_FIELDS.intersection(event_dict):
        event_dict[key] = REDACTED
    extra = event_dict.get("extra")
    if isinstance(extra, dict) and SENSITIVE_FIELDS.intersection(extra):
        event_dict["extra"] = {
            k: REDACTED if k in SENSITIVE_FIELDS else v for k, v in extra.items()
        }
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.stdlib.ExtraAdder(),
        redact_sensitive_fields,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
    ]


def _file_handler(file_config: FileHandlerSchema, formatter: logging.Formatter) -> logging.Handler:
    log_path = _resolve_log_path(file_config.path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=file_config.max_bytes,
        backupCount=file_config.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str | None = None,
    format_type: str | None = None,
    enable_console: bool | None = None,
    enable_file_logging: bool | None = None,
) -> None:
    """
    Configure structlog and the root logger.

    Arguments left as None fall back to logging.yaml.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        format_type: 'json' or 'console' for the stdout handler; the file
            handler always writes JSON
        enable_console: Attach the stdout handler
        enable_file_logging: Attach the rotating JSONL file handler
    """
    config = _load_logging_config()
    level = level or config.level
    format_type = format_type or config.format
    if enable_console is None:
        enable_console = config.handlers.console.enabled
    if enable_file_logging is None:
        enable_file_logging = config.handlers.file.enabled

    processors = _shared_processors()
    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    json_formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=processors,
    )
    if format_type == "console":
        console_formatter = structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=True),
            foreign_pre_chain=processors,
        )
    else:
        console_formatter = json_formatter

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if enable_console:
        stream = logging.StreamHandler(sys.stdout)
        stream.setFormatter(console_formatter)
        root.addHandler(stream)
    if enable_file_logging:
        root.addHandler(_file_handler(config.handlers.file, json_formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """structlog logger for a module, typically get_logger(__name__)."""
    return structlog.get_logger(name)


def log_with_source(logger: Any, source: str, level: str, message: str, **kwargs: Any) -> None:
    """
    Emit a record with an explicit `source`, for code outside a request.

    Raises:
        AttributeError: If level is not a logger method
    """
    getattr(logger, level.lower())(message, source=source, **kwargs)
