"""SQLAlchemy async session setup for the Welcomely record store.

Provides:
- Base: DeclarativeBase for the users/workspaces/workspace_members tables
- engine: async engine configured from settings (DATABASE_URL, DATABASE_ECHO);
  pre-ping is skipped for SQLite, which has no connections to go stale
- async_session_factory: session maker bound to engine, also handed to the
  store gateway so provisioning can open its own short units of work
- get_async_session: FastAPI dependency with Unit-of-Work commit/rollback
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.config.settings import get_settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


_settings = get_settings()

engine = create_async_engine(
    _settings.DATABASE_URL,
    echo=_settings.DATABASE_ECHO,
    pool_pre_ping=not _settings.DATABASE_URL.startswith("sqlite"),
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session with Unit-of-Work semantics.

    Request-scoped: repositories only add and flush, and the request's
    writes commit together or roll back on any exception. Provisioning does
    not use this; its gateway opens sessions from async_session_factory.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
