"""CLI utilities for running async operations and formatting output."""

from eventlane_service.cli.utils.async_runner import coro, run_async
from eventlane_service.cli.utils.formatters import (
    error,
    field,
    header,
    info,
    section,
    status_label,
    success,
    warning,
)

__all__ = [
    "run_async",
    "coro",
    "error",
    "field",
    "info",
    "success",
    "warning",
    "header",
    "section",
    "status_label",
]
