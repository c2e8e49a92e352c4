"""Database settings for the SQLAlchemy async engine (psycopg 3)."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote_plus, unquote, urlparse

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PostgresSettings(BaseSettings):
    """Connection and pool settings.

    Environment variables use DB_ prefix, or a single ``DATABASE_URL``.
    A PostgreSQL URL fills in the connection fields; any other URL (for
    example ``sqlite+aiosqlite:///./local.db``) is used as-is.
    """

    enabled: bool = Field(default=True)
    dsn: str | None = Field(default=None, alias="DATABASE_URL", description="Full SQLAlchemy URL")

    host: str = Field(default="localhost", min_length=1)
    port: int = Field(default=5432, ge=1, le=65535)
    user: str = Field(default="postgres", min_length=1)
    password: SecretStr = Field(default=SecretStr("postgres"))
    name: str = Field(default="eventlane", min_length=1, description="Database name")
    driver: str = Field(default="psycopg", description="Async SQLAlchemy driver")
    application_name: str = Field(
        default="eventlane-service",
        description="Reported to PostgreSQL in pg_stat_activity",
    )

    # Pool
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=100)
    pool_pre_ping: bool = Field(default=True)
    pool_timeout: float = Field(default=30.0, gt=0, le=300.0)
    pool_recycle: int = Field(default=1800, ge=0, description="Seconds before a connection is replaced")
    connect_timeout: float = Field(default=5.0, gt=0, le=60.0)
    echo: bool = Field(default=False, description="Log every SQL statement")

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @model_validator(mode="after")
    def _apply_dsn(self) -> PostgresSettings:
        """Copy connection fields out of a PostgreSQL ``dsn`` (model is frozen)."""
        if not self.is_postgres_dsn:
            return self

        parsed = urlparse(self.dsn)
        overrides = {
            "host": parsed.hostname,
            "port": parsed.port,
            "user": unquote(parsed.username) if parsed.username else None,
            "password": SecretStr(unquote(parsed.password)) if parsed.password else None,
            "name": parsed.path.lstrip("/") or None,
            "driver": parsed.scheme.partition("+")[2] or None,
        }
        for key, value in overrides.items():
            if value is not None:
                object.__setattr__(self, key, value)
        return self

    @property
    def is_postgres_dsn(self) -> bool:
        return bool(self.dsn) and urlparse(self.dsn).scheme.startswith("postgresql")

    @property
    def url(self) -> str:
        """SQLAlchemy URL for ``create_async_engine``."""
        if self.dsn and not self.is_postgres_dsn:
            return self.dsn

        password = quote_plus(self.password.get_secret_value())
        return (
            f"postgresql+{self.driver}://{self.user}:{password}@{self.host}:{self.port}/{self.name}"
            f"?application_name={quote_plus(self.application_name)}"
        )

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.dsn or (self.host and self.name))

    def sqlalchemy_engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine``.

        Pool options are left out for non-PostgreSQL URLs, whose dialects
        reject them.
        """
        if self.dsn and not self.is_postgres_dsn:
            return {"echo": self.echo}
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_pre_ping": self.pool_pre_ping,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "connect_args": {"connect_timeout": int(self.connect_timeout)},
            "echo": self.echo,
        }
