"""Shared pytest fixtures for the Welcomely core test suite.

Provides:
- anyio_backend: asyncio only (the provisioning cache uses asyncio tasks)
- db_engine: in-memory SQLite async engine with all tables
- db_session: SAVEPOINT-isolated async session (app commits don't leak)
- session_factory: sessionmaker on db_engine for code that opens its own units of work
- provisioner_registry: ProvisionerRegistry backed by session_factory
- client: AsyncClient with the session and provisioner registry overridden
"""

import os

# The app builds its engine at import time; keep it off the network in tests.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.db.session import Base, get_async_session
import src.db.tables  # noqa: F401 — register ORM models on Base.metadata


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with all tables."""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Provide a SAVEPOINT-isolated session.

    The outer transaction is never committed — it rolls back at teardown.
    Application code calling session.commit() triggers a SAVEPOINT release,
    which is then restarted so subsequent operations stay in the same
    outer transaction.
    """
    async with db_engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False)

        nested = await conn.begin_nested()

        @event.listens_for(session.sync_session, "after_transaction_end")
        def restart_savepoint(sync_session, transaction):  # noqa: ARG001
            nonlocal nested
            if transaction.nested and not transaction._parent.nested:
                nested = conn.sync_connection.begin_nested()

        yield session

        await session.close()
        await trans.rollback()


@pytest.fixture
def session_factory(db_engine):
    """Session maker bound to the per-test engine (each test gets a fresh DB)."""
    return async_sessionmaker(
        bind=db_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def provisioner_registry(session_factory):
    """Registry whose gateways open units of work on the per-test database."""
    from src.provisioning.gateway import SqlStoreGateway
    from src.provisioning.provisioner import DefaultWorkspaceProvisioner
    from src.provisioning.registry import ProvisionerRegistry

    registry = ProvisionerRegistry(
        lambda user_id: DefaultWorkspaceProvisioner(
            SqlStoreGateway(session_factory, user_id),
        )
    )
    yield registry
    registry.clear()


@pytest.fixture
async def client(session_factory, provisioner_registry):
    """AsyncClient wired to the per-test database.

    get_async_session yields Unit-of-Work sessions from session_factory and the
    app's provisioner registry is replaced by provisioner_registry.
    """
    from src.api.dependencies import get_provisioner_registry
    from src.api.main import app

    async def _override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = _override_session
    app.dependency_overrides[get_provisioner_registry] = lambda: provisioner_registry

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
