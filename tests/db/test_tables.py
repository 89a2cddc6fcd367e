"""Tests for SQLAlchemy ORM models — src/db/tables.py.

Tests verify:
- The three provisioning tables are created
- FlexJSON metadata round-trips on SQLite
- UNIQUE (workspace_id, user_id) on workspace_members
"""

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.db.session import Base
from src.db.tables import UserRow, WorkspaceMemberRow, WorkspaceRow
from src.models.common import new_uuid7, utc_now


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session(engine):
    async with async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)() as s:
        yield s


class TestTableCreation:
    @pytest.mark.anyio
    async def test_all_tables_exist(self, engine) -> None:
        async with engine.connect() as conn:
            names = await conn.run_sync(lambda c: set(inspect(c).get_table_names()))
        assert names == {"users", "workspaces", "workspace_members"}

    @pytest.mark.anyio
    async def test_member_columns(self, engine) -> None:
        async with engine.connect() as conn:
            cols = await conn.run_sync(
                lambda c: {col["name"] for col in inspect(c).get_columns("workspace_members")}
            )
        assert {
            "membership_id", "workspace_id", "user_id", "role", "status",
            "invited_by", "invited_at", "accepted_at", "created_at",
        } <= cols


class TestRows:
    @pytest.mark.anyio
    async def test_user_metadata_roundtrip(self, session: AsyncSession) -> None:
        uid = new_uuid7()
        session.add(UserRow(
            user_id=uid, email="a@example.com",
            metadata_json={"company_name": "Acme", "full_name": "Ann"},
            created_at=utc_now(),
        ))
        await session.commit()

        row = await session.get(UserRow, uid)
        assert row is not None
        assert row.metadata_json["company_name"] == "Acme"

    @pytest.mark.anyio
    async def test_duplicate_membership_rejected(self, session: AsyncSession) -> None:
        wid, uid, now = new_uuid7(), new_uuid7(), utc_now()
        session.add(WorkspaceRow(
            workspace_id=wid, name="Acme", owner_id=uid, created_at=now, updated_at=now,
        ))
        await session.flush()
        for _ in range(2):
            session.add(WorkspaceMemberRow(
                membership_id=new_uuid7(), workspace_id=wid, user_id=uid,
                role="owner", status="active", invited_at=now, created_at=now,
            ))
        with pytest.raises(IntegrityError):
            await session.flush()
