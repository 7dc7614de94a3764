"""Shared fixtures: an API client with a mocked session and an in-memory database."""

from collections.abc import AsyncGenerator, Generator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.models import Base, Bill, get_async_session


@pytest.fixture
def mock_session() -> AsyncMock:
    """Session handed to API endpoints; CRUD calls are patched per test."""
    return AsyncMock()


@pytest.fixture
def client(mock_session: AsyncMock) -> Generator[TestClient, None, None]:
    async def _session() -> AsyncGenerator[AsyncMock, None]:
        yield mock_session

    app.dependency_overrides[get_async_session] = _session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def session() -> AsyncGenerator[AsyncSession, None]:
    """Session bound to a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, expire_on_commit=False)
    async with maker() as db_session:
        yield db_session
    await engine.dispose()


@pytest_asyncio.fixture
async def bill(session: AsyncSession) -> Bill:
    """A stored bill with a PDF attached."""
    record = Bill(
        title="The Data Protection Bill",
        bill_number="Bill No. 12 of 2026",
        pdf_path="bills/data-protection.pdf",
    )
    session.add(record)
    await session.commit()
    return record
