"""
Logging configuration module for Knowledge Paths.

Configures structlog once at startup. Output goes to stderr because stdout
carries the MCP stdio stream.
"""

import logging
import sys

import structlog

from .config import settings


def _resolve_level(level: str | int | None) -> int:
    if level is None:
        level = settings.log_level
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: str | int | None = None) -> None:
    """Configure structlog for the server process.

    Args:
        level: Level name or number; defaults to KNOWLEDGE_LOG_LEVEL
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def bind_search(start_note_path: str, end_note_path: str) -> None:
    """Attach the current search endpoints to every log line of this task."""
    structlog.contextvars.bind_contextvars(
        start_note=start_note_path,
        end_note=end_note_path,
    )


def clear_search() -> None:
    structlog.contextvars.unbind_contextvars("start_note", "end_note")
