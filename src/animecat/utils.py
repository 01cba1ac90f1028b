"""Utility functions for the animecat library catalog."""

import logging
import re
from datetime import datetime
from pathlib import Path

import structlog

from animecat.constants import APP_NAME, FANSUB_SEPARATORS

_MULTI_SPLIT = re.compile("[" + re.escape(FANSUB_SEPARATORS) + "]")
_WHITESPACE = re.compile(r"\s+")


def split_multi(value: str | None) -> list[str]:
    """Split a multi-valued field on ``，`` ``,`` ``/`` and ``|``.

    Args:
        value: The raw field, e.g. a fansub list.

    Returns:
        The trimmed, non-empty tokens in their original order.

    Example:
        >>> split_multi("TeamA，TeamB / TeamC||")
        ['TeamA', 'TeamB', 'TeamC']
        >>> split_multi("")
        []
    """
    if not value:
        return []
    return [token.strip() for token in _MULTI_SPLIT.split(value) if token.strip()]


def normalize_text(value: str | None) -> str:
    """Lowercase *value* and drop all whitespace, for substring search.

    Example:
        >>> normalize_text("  Anime X 第二季 ")
        'animex第二季'
    """
    if not value:
        return ""
    return _WHITESPACE.sub("", value.lower())


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string.

    Args:
        size_bytes: The size in bytes.

    Returns:
        A human-readable size string, or ``"-"`` for zero.

    Example:
        >>> format_size(52428800)
        '50.0 MB'
        >>> format_size(0)
        '-'
    """
    if size_bytes <= 0:
        return "-"
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024**2:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024**3:
        return f"{size_bytes / 1024**2:.1f} MB"
    else:
        return f"{size_bytes / 1024**3:.2f} GB"


def format_timestamp(timestamp: int) -> str:
    """Format epoch seconds in local time, ``"-"`` when never set."""
    if timestamp <= 0:
        return "-"
    try:
        return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return "-"


def ensure_dir(path: Path) -> Path:
    """Create directory if it doesn't exist, return it.

    Args:
        path: The directory path to create.

    Returns:
        The same path (for chaining).
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Get the data directory path.

    Uses ~/.config/animecat. Creates it if it doesn't exist.
    """
    data_dir = Path.home() / ".config" / APP_NAME
    return ensure_dir(data_dir)


def setup_logging(verbose: bool = False) -> None:
    """Configure structlog with colorful console output.

    Args:
        verbose: If True, set log level to DEBUG, else INFO.
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
            structlog.dev.ConsoleRenderer(colors=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
