"""CLI command modules."""

from eventlane_service.cli.commands import database, webhooks

__all__ = ["database", "webhooks"]
