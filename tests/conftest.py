"""Pytest configuration and shared fixtures.

Organization:
    - Database Fixtures: in-memory SQLite engine, session and session factory
    - Queue Fixtures: in-memory task queue recorder
    - HTTP Fixtures: webhook client backed by httpx.MockTransport
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable
from typing import TYPE_CHECKING

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from eventlane_service.core.settings import WebhookSettings
    from eventlane_service.features.webhooks.client import WebhookClient
    from eventlane_service.features.webhooks.schemas import WebhookTask

# Ensure tests run without external infrastructure
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Async engine on a single shared in-memory SQLite connection.

    StaticPool keeps one connection so every session created from the
    engine sees the same database.
    """
    from eventlane_service.core.database.base import Base
    from eventlane_service.features.webhooks import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the production one."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session for arranging and asserting database state."""
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def webhook_settings() -> WebhookSettings:
    """Default webhook settings, independent of the environment."""
    from eventlane_service.core.settings import WebhookSettings

    return WebhookSettings(_env_file=None)


# ============================================================================
# Queue Fixtures
# ============================================================================


class RecordingTaskQueue:
    """In-memory TaskQueue that records every enqueued task.

    Args:
        fail_calls: Zero-based call numbers that raise instead of recording
    """

    def __init__(self, fail_calls: set[int] | None = None) -> None:
        self.tasks: list[WebhookTask] = []
        self.calls = 0
        self._fail_calls = fail_calls or set()

    async def enqueue(self, task: WebhookTask) -> None:
        call = self.calls
        self.calls += 1
        if call in self._fail_calls:
            raise ConnectionError("broker unavailable")
        self.tasks.append(task)


@pytest.fixture
def task_queue() -> RecordingTaskQueue:
    return RecordingTaskQueue()


@pytest.fixture
def recording_queue_cls() -> type[RecordingTaskQueue]:
    return RecordingTaskQueue


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture
async def make_webhook_client(
    webhook_settings: WebhookSettings,
) -> AsyncGenerator[Callable[..., WebhookClient]]:
    """Build WebhookClients whose HTTP traffic goes to a handler function.

    Example:
        client = make_webhook_client(lambda request: httpx.Response(200))
    """
    from eventlane_service.features.webhooks.client import WebhookClient

    http_clients: list[httpx.AsyncClient] = []

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
        settings: WebhookSettings | None = None,
    ) -> WebhookClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        http_clients.append(http_client)
        return WebhookClient(settings=settings or webhook_settings, http_client=http_client)

    yield factory

    for http_client in http_clients:
        await http_client.aclose()
