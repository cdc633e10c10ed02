"""Pytest configuration for all tests."""

from collections.abc import Iterable
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from opsdesk.core.config import Settings, get_settings
from opsdesk.infrastructure.persistence import models  # noqa: F401
from opsdesk.infrastructure.persistence.database import Base
from opsdesk.infrastructure.persistence.store_client import StoreClient

@pytest.fixture
def settings() -> Settings:
    """Settings for tests, independent of the environment and .env file."""
    return Settings(_env_file=None, environment="testing", log_format="console")

@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine with all collection tables.

    Uses a temporary SQLite file so concurrent sessions get their own
    connections.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'opsdesk-test.db'}",
        connect_args={"check_same_thread": False},
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()

@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

@pytest.fixture
def store_client(session_factory: async_sessionmaker[AsyncSession]) -> StoreClient:
    return StoreClient(session_factory)

@pytest.fixture
def seed(session_factory: async_sessionmaker[AsyncSession]):
    """Insert raw rows into a collection table, bypassing the controller."""

    async def _seed(table_name: str, rows: Iterable[dict[str, Any]]) -> None:
        table = Base.metadata.tables[table_name]
        async with session_factory() as session:
            async with session.begin():
                for row in rows:
                    await session.execute(insert(table).values(**row))

    return _seed

@pytest_asyncio.fixture
async def client(store_client: StoreClient) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with the store client bound to the test database."""
    from opsdesk.infrastructure.api.app import app
    from opsdesk.infrastructure.api.dependencies import get_store_client

    app.dependency_overrides[get_store_client] = lambda: store_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides = {}

@pytest.fixture
def api_prefix() -> str:
    return get_settings().api_prefix
