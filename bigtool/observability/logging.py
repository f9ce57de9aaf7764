"""
Structured Logging Module

This module provides structured JSON logging with a conversation-scoped
correlation ID.

Every log line emitted while an agent runs a turn carries the conversation
ID, so indexing, retrieval and tool execution events can be grouped per
conversation without threading the ID through every call.

Pattern: Structured logging for observability
Pattern: Opt-in configuration (the host application decides)
"""

import contextvars
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Generator, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor

from bigtool.core.config import get_settings


_configured: bool = False


# =============================================================================
# Conversation Correlation Context
# =============================================================================

_conversation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "conversation_id", default=None
)


def set_conversation_id(conversation_id: str) -> None:
    """
    Set the conversation ID for the current context.

    Args:
        conversation_id: Identifier of the conversation being served
    """
    _conversation_id_var.set(conversation_id)


def get_conversation_id() -> Optional[str]:
    """
    Get the current conversation ID.

    Returns:
        Conversation ID if set, None otherwise
    """
    return _conversation_id_var.get()


def clear_conversation_id() -> None:
    """Clear the conversation ID for the current context."""
    _conversation_id_var.set(None)


@contextmanager
def conversation_context(conversation_id: str) -> Generator[None, None, None]:
    """
    Context manager for setting the conversation ID.

    Args:
        conversation_id: Identifier of the conversation being served

    Yields:
        None

    Example:
        >>> with conversation_context("conv-12345"):
        ...     logger.info("turn_started")
    """
    token = _conversation_id_var.set(conversation_id)
    try:
        yield
    finally:
        _conversation_id_var.reset(token)


# =============================================================================
# Custom Processors
# =============================================================================


def add_conversation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the conversation ID to the log event if set."""
    conversation_id = get_conversation_id()
    if conversation_id is not None:
        event_dict["conversation_id"] = conversation_id
    return event_dict


def add_timestamp(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO 8601 UTC timestamp to the log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


OUTPUT_KEYS = {"log_level": "level", "logger_name": "logger"}


def rename_keys(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Shorten structlog's level key and the name bound by get_logger()."""
    for source, target in OUTPUT_KEYS.items():
        if source in event_dict:
            event_dict[target] = event_dict.pop(source)
    return event_dict


# =============================================================================
# Opt-in Configuration
# =============================================================================


def configure_logging(
    level: Optional[str] = None,
    stream: Optional[TextIO] = None,
    force: bool = False,
) -> None:
    """
    Route structlog through bigtool's JSON pipeline.

    Importing bigtool never calls this: an application that has its own
    structlog setup keeps it. Services and scripts that want bigtool's
    output call it once at startup. Later calls are no-ops unless
    force=True.

    Args:
        level: Minimum level (default: settings.log_level, i.e. BIGTOOL_LOG_LEVEL)
        stream: Output stream (default: sys.stdout)
        force: Reconfigure even if already configured

    Example:
        >>> configure_logging()
        >>> get_logger("bigtool.services.retriever").info("index_pass_completed")
    """
    global _configured

    if _configured and not force:
        return

    threshold = _level_to_int(level if level is not None else get_settings().log_level)
    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        add_timestamp,
        add_conversation_id,
        rename_keys,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )

    _configured = True


def reset_logging() -> None:
    """
    Forget that configure_logging() ran and restore structlog's defaults.

    WARNING: This should only be used in tests.
    """
    global _configured
    _configured = False
    structlog.reset_defaults()


# =============================================================================
# Logger Factory
# =============================================================================


def get_logger(name: str) -> Any:
    """
    Get a structured logger carrying its name.

    The logger is a lazy proxy: it renders through whatever structlog
    configuration is active when a line is emitted, so module-level loggers
    follow a later configure_logging() or the host application's own setup.

    Args:
        name: Logger name (typically module name)

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("index_pass_completed", hit_count=4, miss_count=0)
    """
    return structlog.get_logger(logger_name=name)


def _level_to_int(level: str) -> int:
    """Convert level string to logging int."""
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return levels.get(level.upper(), logging.INFO)
