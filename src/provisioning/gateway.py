"""Store gateway consumed by workspace resolution.

The resolver only talks to the record store through ``StoreGateway``.
``SqlStoreGateway`` is the SQLAlchemy-backed implementation: every call
opens its own short unit of work from a session factory and commits it, so
each insert is durable on its own, the same as against a hosted store.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db.tables import UserRow, WorkspaceMemberRow, WorkspaceRow
from src.models.common import MembershipStatus, WorkspaceRole, new_uuid7
from src.models.workspace import Membership, Principal, Workspace
from src.repositories.workspace import (
    UserRepository,
    WorkspaceMemberRepository,
    WorkspaceRepository,
)


class WorkspaceNotFoundError(LookupError):
    """No workspace exists with the requested id."""

    def __init__(self, workspace_id: UUID) -> None:
        super().__init__(f"Workspace {workspace_id} not found")
        self.workspace_id = workspace_id


class StoreGateway(ABC):
    """Record-store operations needed to resolve a default workspace."""

    @abstractmethod
    async def get_current_principal(self) -> Principal | None:
        ...

    @abstractmethod
    async def query_active_memberships(
        self, user_id: UUID, *, limit: int = 1,
    ) -> list[Membership]:
        ...

    @abstractmethod
    async def fetch_workspace_by_id(self, workspace_id: UUID) -> Workspace:
        """Return the workspace or raise ``WorkspaceNotFoundError``."""

    @abstractmethod
    async def insert_workspace(self, *, name: str, owner_id: UUID) -> Workspace:
        ...

    @abstractmethod
    async def insert_membership(
        self,
        *,
        workspace_id: UUID,
        user_id: UUID,
        role: WorkspaceRole,
        status: MembershipStatus,
        invited_by: UUID | None,
        accepted_at: datetime | None,
    ) -> Membership:
        ...


# ---------------------------------------------------------------------------
# Row -> model conversion
# ---------------------------------------------------------------------------


def _row_to_principal(row: UserRow) -> Principal:
    return Principal(
        user_id=row.user_id,
        email=row.email,
        metadata=dict(row.metadata_json or {}),
    )


def _row_to_workspace(row: WorkspaceRow) -> Workspace:
    return Workspace(
        workspace_id=row.workspace_id,
        name=row.name,
        owner_id=row.owner_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_membership(row: WorkspaceMemberRow) -> Membership:
    return Membership(
        membership_id=row.membership_id,
        workspace_id=row.workspace_id,
        user_id=row.user_id,
        role=WorkspaceRole(row.role),
        status=MembershipStatus(row.status),
        invited_by=row.invited_by,
        invited_at=row.invited_at,
        accepted_at=row.accepted_at,
        created_at=row.created_at,
    )


class SqlStoreGateway(StoreGateway):
    """Gateway bound to one principal, backed by the SQL repositories.

    ``user_id`` is the identity established by the session (``None`` when
    nobody is signed in).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        user_id: UUID | None,
    ) -> None:
        self._session_factory = session_factory
        self._user_id = user_id

    async def get_current_principal(self) -> Principal | None:
        if self._user_id is None:
            return None
        async with self._session_factory() as session:
            row = await UserRepository(session).get(self._user_id)
            return _row_to_principal(row) if row is not None else None

    async def query_active_memberships(
        self, user_id: UUID, *, limit: int = 1,
    ) -> list[Membership]:
        async with self._session_factory() as session:
            rows = await WorkspaceMemberRepository(session).list_by_user(
                user_id, status=MembershipStatus.ACTIVE.value, limit=limit,
            )
            return [_row_to_membership(r) for r in rows]

    async def fetch_workspace_by_id(self, workspace_id: UUID) -> Workspace:
        async with self._session_factory() as session:
            row = await WorkspaceRepository(session).get(workspace_id)
            if row is None:
                raise WorkspaceNotFoundError(workspace_id)
            return _row_to_workspace(row)

    async def insert_workspace(self, *, name: str, owner_id: UUID) -> Workspace:
        async with self._session_factory() as session:
            row = await WorkspaceRepository(session).create(
                workspace_id=new_uuid7(), name=name, owner_id=owner_id,
            )
            # Convert before committing: an invalid row is rolled back on close.
            workspace = _row_to_workspace(row)
            await session.commit()
            return workspace

    async def insert_membership(
        self,
        *,
        workspace_id: UUID,
        user_id: UUID,
        role: WorkspaceRole,
        status: MembershipStatus,
        invited_by: UUID | None,
        accepted_at: datetime | None,
    ) -> Membership:
        async with self._session_factory() as session:
            row = await WorkspaceMemberRepository(session).create(
                membership_id=new_uuid7(),
                workspace_id=workspace_id,
                user_id=user_id,
                role=role.value,
                status=status.value,
                invited_by=invited_by,
                accepted_at=accepted_at,
            )
            await session.commit()
            return _row_to_membership(row)
