"""
Logging Setup.

structlog on top of stdlib logging, configured from
config/settings/logging.yaml. Every module gets its logger from
``get_logger(__name__)``; nothing creates handlers of its own.

A JSON record carries timestamp, level, logger, event, func_name and lineno,
plus whatever the middleware bound for the current request (request_id,
method, path, source) and the keyword fields passed by the caller.

Store failures are logged through ``log_store_failure`` so the failing
operation and event id always appear on the record, whether the failure
was surfaced to the client or absorbed by the in-memory fallback.

Usage:
    from event_mesh.core.logging import get_logger, setup_logging

    setup_logging(level="DEBUG", format_type="console")
    logger = get_logger(__name__)
    logger.info("Event published", extra={"event_id": event.id})
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog
from structlog.typing import Processor

from event_mesh.core.config import find_project_root, load_yaml_config
from event_mesh.core.exceptions import StoreError

VALID_SOURCES = frozenset({
    "web",
    "api",
    "events",
    "store",
    "internal",
    "unknown",
})
"""Values accepted for the ``source`` field. Callers always set it explicitly."""

# Third-party loggers that are too chatty below WARNING
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")

_logging_config: dict[str, Any] | None = None


def _load_logging_config() -> dict[str, Any]:
    """
    Read logging.yaml once per process.

    Raises:
        FileNotFoundError: If logging.yaml does not exist
    """
    global _logging_config
    if _logging_config is None:
        _logging_config = load_yaml_config("logging.yaml")
    return _logging_config


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
        ),
    ]


def _formatter(renderer: Processor, pre_chain: list[Processor]) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)


def _file_handler(file_config: dict[str, Any], formatter: logging.Formatter) -> logging.Handler:
    """Rotating JSONL handler at a path relative to the project root."""
    log_path = find_project_root() / file_config["path"]
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(log_path),
        maxBytes=file_config["max_bytes"],
        backupCount=file_config["backup_count"],
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

    Arguments left as None take their value from logging.yaml. The file
    handler always writes JSON; the console uses ``format_type``
    (``json`` or ``console``).
    """
    config = _load_logging_config()
    handlers_config = config["handlers"]

    level = level if level is not None else config["level"]
    format_type = format_type if format_type is not None else config["format"]
    if enable_console is None:
        enable_console = handlers_config["console"]["enabled"]
    if enable_file_logging is None:
        enable_file_logging = handlers_config["file"]["enabled"]

    pre_chain = _shared_processors()
    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    json_formatter = _formatter(structlog.processors.JSONRenderer(), pre_chain)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console = logging.StreamHandler(sys.stdout)
        if format_type == "console":
            console.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=True), pre_chain))
        else:
            console.setFormatter(json_formatter)
        root_logger.addHandler(console)

    if enable_file_logging:
        root_logger.addHandler(_file_handler(handlers_config["file"], json_formatter))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)


def log_with_source(logger: Any, source: str, level: str, message: str, **kwargs: Any) -> None:
    """
    Log ``message`` with an explicit ``source`` field.

    Raises:
        ValueError: If source is not one of VALID_SOURCES
        AttributeError: If level is not a logger method
    """
    if source not in VALID_SOURCES:
        raise ValueError(f"Unknown log source: {source}")
    getattr(logger, level.lower())(message, source=source, **kwargs)


def log_store_failure(
    logger: Any,
    message: str,
    exc: StoreError,
    level: str = "error",
    event_id: str | None = None,
    **kwargs: Any,
) -> None:
    """
    Log a storage backend failure with its operation and event id.

    ``event_id`` is used when the exception does not carry one.

    Example:
        log_store_failure(logger, "Primary write failed", exc, level="warning")
    """
    log_with_source(
        logger,
        "store",
        level,
        message,
        operation=exc.operation,
        event_id=exc.event_id or event_id,
        code=exc.code,
        error=exc.message,
        **kwargs,
    )
