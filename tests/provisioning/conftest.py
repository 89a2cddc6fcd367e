"""In-memory StoreGateway double for provisioning tests.

Counts every call, can hold the membership query on an asyncio.Event so
several resolve() calls pile up while the first one is in flight, and can
be told to fail any operation.
"""

import asyncio
from collections import Counter
from datetime import datetime
from uuid import UUID

import pytest

from src.models.common import MembershipStatus, WorkspaceRole, new_uuid7
from src.models.workspace import Membership, Principal, Workspace
from src.provisioning.gateway import StoreGateway, WorkspaceNotFoundError


class FakeStoreGateway(StoreGateway):
    def __init__(self, principal: Principal | None = None) -> None:
        self.principal = principal
        self.workspaces: dict[UUID, Workspace] = {}
        self.memberships: list[Membership] = []
        self.calls: Counter[str] = Counter()
        self.failures: dict[str, Exception] = {}
        self.gate: asyncio.Event | None = None

    def _enter(self, op: str) -> None:
        self.calls[op] += 1
        if op in self.failures:
            raise self.failures[op]

    def add_existing(self, name: str = "Existing Co") -> Workspace:
        """Seed a workspace plus an active owner membership for the principal."""
        assert self.principal is not None
        workspace = Workspace(name=name, owner_id=self.principal.user_id)
        self.workspaces[workspace.workspace_id] = workspace
        self.memberships.append(
            Membership(
                workspace_id=workspace.workspace_id,
                user_id=self.principal.user_id,
                role=WorkspaceRole.OWNER,
                status=MembershipStatus.ACTIVE,
            )
        )
        return workspace

    async def get_current_principal(self) -> Principal | None:
        self._enter("get_current_principal")
        await asyncio.sleep(0)
        return self.principal

    async def query_active_memberships(
        self, user_id: UUID, *, limit: int = 1,
    ) -> list[Membership]:
        if self.gate is not None:
            await self.gate.wait()
        self._enter("query_active_memberships")
        await asyncio.sleep(0)
        active = [
            m for m in self.memberships
            if m.user_id == user_id and m.status == MembershipStatus.ACTIVE
        ]
        return active[:limit]

    async def fetch_workspace_by_id(self, workspace_id: UUID) -> Workspace:
        self._enter("fetch_workspace_by_id")
        await asyncio.sleep(0)
        try:
            return self.workspaces[workspace_id]
        except KeyError:
            raise WorkspaceNotFoundError(workspace_id) from None

    async def insert_workspace(self, *, name: str, owner_id: UUID) -> Workspace:
        self._enter("insert_workspace")
        await asyncio.sleep(0)
        workspace = Workspace(name=name, owner_id=owner_id)
        self.workspaces[workspace.workspace_id] = workspace
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
        self._enter("insert_membership")
        await asyncio.sleep(0)
        membership = Membership(
            workspace_id=workspace_id,
            user_id=user_id,
            role=role,
            status=status,
            invited_by=invited_by,
            accepted_at=accepted_at,
        )
        self.memberships.append(membership)
        return membership


@pytest.fixture
def principal() -> Principal:
    return Principal(
        user_id=new_uuid7(),
        email="ada@example.com",
        metadata={"company_name": "Analytical Engines Ltd", "full_name": "Ada Lovelace"},
    )


@pytest.fixture
def gateway(principal) -> FakeStoreGateway:
    return FakeStoreGateway(principal)
