"""Database management commands."""

import sys
from pathlib import Path

import click

from eventlane_service.cli.utils import coro, error, info, success

DEFAULT_ALEMBIC_INI = Path(__file__).resolve().parents[3] / "alembic.ini"


@click.group(name="db")
def db() -> None:
    """Database management commands."""


@db.command()
@coro
async def init() -> None:
    """Verify database connectivity."""
    from eventlane_service.core.settings import get_db_settings
    from eventlane_service.infra.database import close_database, init_database

    db_settings = get_db_settings()
    info(f"Connecting to: {db_settings.host}:{db_settings.port}/{db_settings.name}")

    try:
        await init_database()
    except ConnectionError as e:
        error(str(e))
        sys.exit(1)
    finally:
        await close_database()

    success("Database connected successfully!")


@db.command()
@click.option("--revision", default="head", help="Target revision (default: head)")
@click.option(
    "--config",
    "config_path",
    default=str(DEFAULT_ALEMBIC_INI),
    type=click.Path(dir_okay=False),
    help="Path to alembic.ini",
)
def upgrade(revision: str, config_path: str) -> None:
    """Apply database migrations."""
    from alembic import command
    from alembic.config import Config

    info(f"Upgrading database to: {revision}")
    try:
        command.upgrade(Config(config_path), revision)
    except Exception as e:
        error(f"Failed to upgrade database: {e}")
        sys.exit(1)
    success("Database upgraded successfully!")
