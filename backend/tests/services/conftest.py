"""Service test fixtures — async DB, seeded principals, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB session
    - db_manager patched so readiness checks see the test engine
    - Seeded users: alice (admin), bob, carol (regular)

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
    - Principals are passed per request via the X-User-Id header (see factories.py)
"""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

import parley.infrastructure.database as db_module
from parley.db.base import Base
from parley.infrastructure.database import DatabaseSessionManager, get_db
from parley.main import app
from parley.models.user import User


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def users(test_session_factory):
    """Seed three principals; returns their ids keyed by name."""
    ids = {
        "alice": uuid.uuid4(),
        "bob": uuid.uuid4(),
        "carol": uuid.uuid4(),
    }
    async with test_session_factory() as session:
        session.add_all([
            User(
                id=ids["alice"], display_name="Alice", role="admin",
                wallet_address="0xAAA111", ens_name="alice.eth",
            ),
            User(
                id=ids["bob"], display_name="Bob",
                wallet_address="0xBBB222", ens_name="bob.eth",
            ),
            User(
                id=ids["carol"], display_name="Carol",
                wallet_address="0xCCC333",
            ),
        ])
        await session.commit()
    return ids


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
