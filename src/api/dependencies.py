"""FastAPI dependency injection factories.

Repository factories take AsyncSession via Depends(get_async_session).
The provisioner registry lives on app.state and is created with the app.
"""

from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import get_async_session
from src.provisioning.registry import ProvisionerRegistry
from src.repositories.workspace import UserRepository, WorkspaceMemberRepository

# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


async def get_current_user_id(
    x_user_id: str | None = Header(default=None),
) -> UUID:
    """Principal id established by the session (X-User-Id header)."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated.")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Not authenticated.") from None


async def get_user_repo(
    session: AsyncSession = Depends(get_async_session),
) -> UserRepository:
    return UserRepository(session)


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------


async def get_member_repo(
    session: AsyncSession = Depends(get_async_session),
) -> WorkspaceMemberRepository:
    return WorkspaceMemberRepository(session)


async def get_provisioner_registry(request: Request) -> ProvisionerRegistry:
    return request.app.state.provisioners
