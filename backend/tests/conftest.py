"""
Pytest configuration and fixtures for Arbor tests.

Each test gets its own SQLite database file (aiosqlite) with foreign keys
enabled, so uniqueness and FK constraints behave like production.
"""

import os

os.environ.setdefault("ARBOR_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

from arbor.context import RequestContext
from arbor.database import enable_sqlite_foreign_keys, get_session
from arbor.main import app
from arbor.models import Tenant, Project


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'arbor_test.db'}", echo=False)
    enable_sqlite_foreign_keys(engine)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    # Drop all tables after tests
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_maker):
    """Create a test database session."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def tenant(test_session):
    tenant = Tenant(name="Acme", slug="acme")
    test_session.add(tenant)
    await test_session.commit()
    return tenant


@pytest_asyncio.fixture(scope="function")
async def other_tenant(test_session):
    tenant = Tenant(name="Globex", slug="globex")
    test_session.add(tenant)
    await test_session.commit()
    return tenant


@pytest_asyncio.fixture(scope="function")
async def project(test_session, tenant):
    project = Project(tenant_id=tenant.id, name="Website relaunch")
    test_session.add(project)
    await test_session.commit()
    return project


@pytest.fixture(scope="function")
def ctx(tenant):
    return RequestContext(tenant_id=tenant.id, actor_id="user-1")


@pytest_asyncio.fixture(scope="function")
async def client(session_maker, tenant):
    """Async test client with the test database and the tenant headers set."""

    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    headers = {"X-Tenant-ID": str(tenant.id), "X-Actor-ID": "user-1"}
    async with AsyncClient(transport=transport, base_url="http://test", headers=headers) as ac:
        yield ac

    app.dependency_overrides.clear()
