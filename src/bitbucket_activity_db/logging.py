"""Centralized logging configuration using loguru.

Provides:
- Level selection from Settings with --verbose/--quiet overrides
- Interception of stdlib loggers (httpx, SQLAlchemy, our rate-limit modules)
- Repository and window context binding for sync narration
- Optional rotating file sink
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_configured = False

_CONSOLE_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>{extra[repo_tag]} - "
    "<level>{message}</level>"
)
_STDLIB_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - "
    "<level>{message}</level>"
)
_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{extra[name]}:{function}:{line} | "
    "{extra} | "
    "{message}"
)


class InterceptHandler(logging.Handler):
    """Route stdlib log records into loguru.

    httpx, SQLAlchemy and the rate-limit gate log through the standard
    library; this keeps their output in the same sinks.
    """

    def emit(self, record: logging.LogRecord) -> None:
        from types import FrameType

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        # Walk out of the logging module so loguru reports the real caller
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame is not None:
            if frame.f_code.co_filename != logging.__file__:
                break
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _has_name(record: Record) -> bool:
    return "name" in record["extra"]


def _add_repo_tag(record: Record) -> None:
    """Render bound repository context as a short suffix."""
    repo = record["extra"].get("repo")
    record["extra"]["repo_tag"] = f" [{repo}]" if repo else ""


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure logging for the application.

    Args:
        level: Base log level from config
        verbose: If True, use DEBUG level (overrides level)
        quiet: If True, use WARNING level (overrides level)
        log_file: Optional path for file logging with rotation
        rotation: When to rotate log file (e.g., "10 MB", "1 day")
        retention: How long to keep rotated logs
        serialize: If True, write JSON lines to the file sink

    Returns:
        Configured logger instance

    Note:
        verbose takes precedence over quiet if both are True.
    """
    global _configured

    effective_level: LogLevel
    if verbose:
        effective_level = "DEBUG"
    elif quiet:
        effective_level = "WARNING"
    else:
        effective_level = level

    logger.remove()
    logger.configure(patcher=_add_repo_tag)

    logger.add(
        sys.stderr,
        level=effective_level,
        format=_CONSOLE_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=False,
        filter=_has_name,
    )
    logger.add(
        sys.stderr,
        level=effective_level,
        format=_STDLIB_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=False,
        filter=lambda record: not _has_name(record),
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",  # file sink always captures everything
            format=_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
            filter=_has_name,
        )

    _intercept_stdlib_logging(effective_level)

    _configured = True
    return logger


def _intercept_stdlib_logging(level: LogLevel) -> None:
    """Send stdlib loggers through loguru and quiet the chatty ones."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    if level in ("TRACE", "DEBUG"):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    httpx_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    logging.getLogger("httpx").setLevel(httpx_level)
    logging.getLogger("httpcore").setLevel(httpx_level)


def get_logger(name: str) -> Logger:
    """Get a logger with the given name bound as context.

    Usage:
        from bitbucket_activity_db.logging import get_logger
        logger = get_logger(__name__)
        logger.info("Fetched {} commits", count)
    """
    return logger.bind(name=name)


def bind_repo(workspace: str, slug: str) -> Logger:
    """Bind repository context (``workspace/slug``) to the sync logger."""
    return logger.bind(name="sync", repo=f"{workspace}/{slug}")


def bind_window(workspace: str, slug: str, start: datetime, end: datetime) -> Logger:
    """Bind repository plus window bounds to the sync logger.

    The window is rendered as ``YYYY-MM-DD..YYYY-MM-DD`` in the extra dict,
    which is what the file sink records.
    """
    return logger.bind(
        name="sync",
        repo=f"{workspace}/{slug}",
        window=f"{start:%Y-%m-%d}..{end:%Y-%m-%d}",
    )


class LogContext:
    """Context manager for temporary log context binding.

    Usage:
        with LogContext(run_mode="full"):
            logger.info("Processing")  # carries run_mode
    """

    def __init__(self, **context: Any) -> None:
        self._context = context
        self._token: Any = None

    def __enter__(self) -> Logger:
        self._token = logger.contextualize(**self._context)
        self._token.__enter__()
        return logger

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._token:
            self._token.__exit__(exc_type, exc_val, exc_tb)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def reset_logging() -> None:
    """Reset logging state (primarily for testing)."""
    global _configured
    logger.remove()
    logger.configure(patcher=lambda record: None)
    _configured = False
