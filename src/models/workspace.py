"""Workspace, membership and principal models.

A workspace is the tenant-scoping container every checklist, template and
team member hangs off. Each principal needs exactly one of them to use as
its default; memberships link the two and carry the role.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from src.models.common import (
    MembershipStatus,
    UTCTimestamp,
    UUIDv7,
    WelcomelyBase,
    WorkspaceRole,
    new_uuid7,
    utc_now,
)


class Principal(WelcomelyBase):
    """The authenticated user on whose behalf resolution runs."""

    user_id: UUID
    email: str | None = None
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Signup metadata (company_name, full_name, ...).",
    )


WORKSPACE_NAME_MAX_LENGTH = 255


class Workspace(WelcomelyBase):
    workspace_id: UUIDv7 = Field(default_factory=new_uuid7)
    name: str = Field(..., min_length=1, max_length=WORKSPACE_NAME_MAX_LENGTH)
    owner_id: UUID
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


class Membership(WelcomelyBase):
    """Join between a principal and a workspace."""

    membership_id: UUIDv7 = Field(default_factory=new_uuid7)
    workspace_id: UUID
    user_id: UUID
    role: WorkspaceRole = WorkspaceRole.MEMBER
    status: MembershipStatus = MembershipStatus.INVITED
    invited_by: UUID | None = None
    invited_at: UTCTimestamp = Field(default_factory=utc_now)
    accepted_at: datetime | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class ResolvedWorkspace(WelcomelyBase):
    """Cache entry: the principal's default workspace and its id."""

    workspace_id: UUID
    workspace: Workspace
