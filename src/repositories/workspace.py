"""User, workspace and workspace-member repositories."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.tables import UserRow, WorkspaceMemberRow, WorkspaceRow
from src.models.common import utc_now


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, user_id: UUID, email: str | None,
                     metadata: dict | None = None) -> UserRow:
        row = UserRow(
            user_id=user_id,
            email=email,
            metadata_json=metadata or {},
            created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, user_id: UUID) -> UserRow | None:
        return await self._session.get(UserRow, user_id)


class WorkspaceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, workspace_id: UUID, name: str,
                     owner_id: UUID) -> WorkspaceRow:
        now = utc_now()
        row = WorkspaceRow(
            workspace_id=workspace_id, name=name, owner_id=owner_id,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, workspace_id: UUID) -> WorkspaceRow | None:
        return await self._session.get(WorkspaceRow, workspace_id)

    async def list_by_owner(self, owner_id: UUID) -> list[WorkspaceRow]:
        result = await self._session.execute(
            select(WorkspaceRow)
            .where(WorkspaceRow.owner_id == owner_id)
            .order_by(WorkspaceRow.created_at, WorkspaceRow.workspace_id)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[WorkspaceRow]:
        result = await self._session.execute(select(WorkspaceRow))
        return list(result.scalars().all())


class WorkspaceMemberRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, membership_id: UUID, workspace_id: UUID,
                     user_id: UUID, role: str, status: str,
                     invited_by: UUID | None = None,
                     accepted_at: datetime | None = None) -> WorkspaceMemberRow:
        now = utc_now()
        row = WorkspaceMemberRow(
            membership_id=membership_id,
            workspace_id=workspace_id,
            user_id=user_id,
            role=role,
            status=status,
            invited_by=invited_by,
            invited_at=now,
            accepted_at=accepted_at,
            created_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, membership_id: UUID) -> WorkspaceMemberRow | None:
        return await self._session.get(WorkspaceMemberRow, membership_id)

    async def list_by_user(self, user_id: UUID, *, status: str | None = None,
                           limit: int | None = None) -> list[WorkspaceMemberRow]:
        """Memberships for a user, oldest first so the default is stable."""
        stmt = select(WorkspaceMemberRow).where(WorkspaceMemberRow.user_id == user_id)
        if status is not None:
            stmt = stmt.where(WorkspaceMemberRow.status == status)
        stmt = stmt.order_by(
            WorkspaceMemberRow.created_at, WorkspaceMemberRow.membership_id,
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_workspace(self, workspace_id: UUID) -> list[WorkspaceMemberRow]:
        result = await self._session.execute(
            select(WorkspaceMemberRow)
            .where(WorkspaceMemberRow.workspace_id == workspace_id)
        )
        return list(result.scalars().all())
