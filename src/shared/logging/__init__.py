"""Structured logging setup with stdlib integration."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

# Libraries that log every request at INFO; kept at WARNING unless DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sse_starlette")


def _file_handler(file_path: str, max_mb: int, backups: int) -> logging.Handler | None:
    path = Path(file_path.strip()).resolve()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            path,
            maxBytes=max_mb * 1024 * 1024,
            backupCount=backups,
            encoding="utf-8",
        )
    except OSError as e:
        # Keep stdout only
        sys.stderr.write(f"Log file disabled: could not open {path}: {e}\n")
        return None


def setup_logging(
    level: str = "INFO",
    file_path: str = "",
    rotation_max_mb: int = 5,
    rotation_backups: int = 3,
) -> None:
    """Configure structlog integrated with standard library logging.

    structlog.get_logger() (event-style, used by the app entry point) and
    logging.getLogger() (%-style, used by the store, session and gateways) share
    one formatter: JSON lines, or a console renderer when level is DEBUG.

    If file_path is set, logs also go to that file with size-based rotation.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    debug = log_level <= logging.DEBUG

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer = structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer()
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if file_path and file_path.strip():
        handler = _file_handler(file_path, rotation_max_mb, rotation_backups)
        if handler is not None:
            handlers.append(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(log_level if debug else max(log_level, logging.WARNING))
