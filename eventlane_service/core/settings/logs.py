"""Logging configuration settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Structured logging configuration.

    Environment variables use LOG_ prefix.
    Example: LOG_LEVEL=DEBUG, LOG_JSON_LOGS=false, LOG_FILE_ENABLED=true
    """

    service_name: str = Field(
        default="eventlane-service",
        description="Static ``service`` field on JSON records",
    )
    level: LogLevel = Field(default="INFO")
    json_logs: bool = Field(default=True, description="Emit JSON Lines instead of plain text")

    console_enabled: bool = Field(default=True)
    console_level: LogLevel | None = Field(default=None, description="Defaults to ``level``")

    file_enabled: bool = Field(default=False)
    file_path: Path = Field(default=Path("logs/eventlane-service.log.jsonl"))
    file_level: LogLevel | None = Field(default=None, description="Defaults to ``level``")
    file_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024)
    file_backup_count: int = Field(default=5, ge=0, le=100)

    include_context: bool = Field(
        default=True,
        description="Copy set_log_context() fields such as delivery_id onto every record",
    )
    capture_warnings: bool = Field(default=True)
    include_process_info: bool = Field(default=False)
    include_thread_info: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    @field_validator("level", "console_level", "file_level", mode="before")
    @classmethod
    def normalize_level(cls, v: str | None) -> str | None:
        return v.upper() if isinstance(v, str) else v

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``configure_logging``."""
        return {
            "service_name": self.service_name,
            "log_level": self.level,
            "json_logs": self.json_logs,
            "console_enabled": self.console_enabled,
            "console_level": self.console_level or self.level,
            "file_path": str(self.file_path) if self.file_enabled else None,
            "file_level": self.file_level or self.level,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
            "include_context": self.include_context,
            "capture_warnings": self.capture_warnings,
            "include_process_info": self.include_process_info,
            "include_thread_info": self.include_thread_info,
        }
