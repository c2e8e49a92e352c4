"""Context management for structured logging.

Fields stored with ``set_log_context`` are injected into every log record
emitted from the same asyncio task, so a delivery worker only has to bind
``delivery_id`` once.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Example:
        ```python
        set_log_context(delivery_id=str(task.delivery_id))
        logger.info("Attempting delivery")  # record carries delivery_id
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current task."""
    _log_context.set({})


class ContextInjectingFilter(logging.Filter):
    """Logging filter that copies the contextvars log context onto records.

    Attached to the root logger by ``configure_logging`` so every logger
    benefits from it without code changes.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            # Explicit ``extra`` values win over ambient context
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
