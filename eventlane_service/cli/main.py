"""Main CLI entry point for eventlane-service management commands."""

import click

from eventlane_service.cli.commands import database, webhooks
from eventlane_service.infra.logging import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="eventlane-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """EventLane service CLI - outbound webhook management.

    \b
    Command Groups:
      db         Database connectivity and migrations
      webhooks   Subscriptions, deliveries, retry sweep and test events

    \b
    Quick Start:
      eventlane-service db upgrade
      eventlane-service webhooks create -v 42 -u https://example.com/hook
      eventlane-service webhooks fire -v 42 -e ticket.purchased
    """
    ctx.ensure_object(dict)


cli.add_command(database.db)
cli.add_command(webhooks.webhooks)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
