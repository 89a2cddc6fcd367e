"""FastAPI session and default-workspace endpoints.

POST /v1/users                         — register a principal (signup metadata)
POST /v1/session/start                 — open a provisioning session
POST /v1/session/end                   — end the session, dropping its cache
GET  /v1/workspaces/default            — resolve (or create) the default workspace
GET  /v1/workspaces/default/members    — members of the default workspace

The caller is identified by the X-User-Id header. Each session owns one
DefaultWorkspaceProvisioner; concurrent requests of the same session share
its single in-flight provisioning sequence.
"""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.api.dependencies import (
    get_current_user_id,
    get_member_repo,
    get_provisioner_registry,
    get_user_repo,
)
from src.models.common import new_uuid7
from src.models.workspace import ResolvedWorkspace
from src.provisioning.errors import NotAuthenticatedError, ProvisioningError
from src.provisioning.registry import ProvisionerRegistry
from src.repositories.workspace import UserRepository, WorkspaceMemberRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger()

session_router = APIRouter(prefix="/v1", tags=["session"])
router = APIRouter(prefix="/v1/workspaces", tags=["workspaces"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class CreateUserRequest(BaseModel):
    email: str | None = None
    full_name: str | None = None
    company_name: str | None = None


class CreateUserResponse(BaseModel):
    user_id: str
    email: str | None


class SessionResponse(BaseModel):
    user_id: str
    cache_state: str


class EndSessionResponse(BaseModel):
    user_id: str
    ended: bool


class DefaultWorkspaceResponse(BaseModel):
    workspace_id: str
    name: str
    owner_id: str
    created_at: datetime


class MemberResponse(BaseModel):
    membership_id: str
    user_id: str
    role: str
    status: str
    accepted_at: datetime | None = None


class MemberListResponse(BaseModel):
    workspace_id: str
    members: list[MemberResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _resolve_default(
    registry: ProvisionerRegistry, user_id: UUID,
) -> ResolvedWorkspace:
    provisioner = registry.start_session(user_id)
    try:
        return await provisioner.resolve()
    except NotAuthenticatedError as exc:
        # No principal behind this id: do not keep a session for it.
        registry.end_session(user_id)
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except ProvisioningError as exc:
        logger.error(
            "default_workspace_failed",
            user_id=str(user_id),
            error_type=type(exc).__name__,
            error=str(exc),
        )
        raise HTTPException(status_code=502, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@session_router.post("/users", status_code=201, response_model=CreateUserResponse)
async def create_user(
    body: CreateUserRequest,
    repo: UserRepository = Depends(get_user_repo),
) -> CreateUserResponse:
    """Register a principal with the signup metadata used for naming."""
    metadata = {
        key: value
        for key, value in (
            ("full_name", body.full_name),
            ("company_name", body.company_name),
        )
        if value
    }
    row = await repo.create(user_id=new_uuid7(), email=body.email, metadata=metadata)
    return CreateUserResponse(user_id=str(row.user_id), email=row.email)


@session_router.post("/session/start", response_model=SessionResponse)
async def start_session(
    user_id: UUID = Depends(get_current_user_id),
    registry: ProvisionerRegistry = Depends(get_provisioner_registry),
    users: UserRepository = Depends(get_user_repo),
) -> SessionResponse:
    if await users.get(user_id) is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    provisioner = registry.start_session(user_id)
    logger.info("session_started", user_id=str(user_id))
    return SessionResponse(user_id=str(user_id), cache_state=provisioner.state.value)


@session_router.post("/session/end", response_model=EndSessionResponse)
async def end_session(
    user_id: UUID = Depends(get_current_user_id),
    registry: ProvisionerRegistry = Depends(get_provisioner_registry),
) -> EndSessionResponse:
    """End the session: the cached workspace is dropped (logout)."""
    ended = registry.end_session(user_id)
    logger.info("session_ended", user_id=str(user_id), had_session=ended)
    return EndSessionResponse(user_id=str(user_id), ended=ended)


@router.get("/default", response_model=DefaultWorkspaceResponse)
async def get_default_workspace(
    user_id: UUID = Depends(get_current_user_id),
    registry: ProvisionerRegistry = Depends(get_provisioner_registry),
) -> DefaultWorkspaceResponse:
    """Resolve the caller's default workspace, creating it on first use."""
    resolved = await _resolve_default(registry, user_id)
    workspace = resolved.workspace
    return DefaultWorkspaceResponse(
        workspace_id=str(resolved.workspace_id),
        name=workspace.name,
        owner_id=str(workspace.owner_id),
        created_at=workspace.created_at,
    )


@router.get("/default/members", response_model=MemberListResponse)
async def list_default_workspace_members(
    user_id: UUID = Depends(get_current_user_id),
    registry: ProvisionerRegistry = Depends(get_provisioner_registry),
    repo: WorkspaceMemberRepository = Depends(get_member_repo),
) -> MemberListResponse:
    resolved = await _resolve_default(registry, user_id)
    rows = await repo.list_by_workspace(resolved.workspace_id)
    return MemberListResponse(
        workspace_id=str(resolved.workspace_id),
        members=[
            MemberResponse(
                membership_id=str(r.membership_id),
                user_id=str(r.user_id),
                role=r.role,
                status=r.status,
                accepted_at=r.accepted_at,
            )
            for r in rows
        ],
    )
