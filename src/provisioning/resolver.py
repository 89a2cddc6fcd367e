"""Lookup-or-create provisioning sequence for a principal's default workspace.

Steps, each independently fallible:
1. Current principal (NotAuthenticatedError if none)
2. First active membership, oldest first (LookupFailedError on query error)
3. Workspace behind that membership; a failed fetch follows the configured
   WorkspaceFetchPolicy (fall through to creation, or raise)
4. Create a workspace named after the principal (CreationFailedError)
5. Create the owner membership (MembershipCreationFailedError; the new
   workspace is left without a membership, nothing is rolled back)
"""

import logging
from typing import Any

from src.config.settings import WorkspaceFetchPolicy
from src.models.common import MembershipStatus, WorkspaceRole, utc_now
from src.models.workspace import (
    WORKSPACE_NAME_MAX_LENGTH,
    Principal,
    ResolvedWorkspace,
    Workspace,
)
from src.provisioning.errors import (
    CreationFailedError,
    LookupFailedError,
    MembershipCreationFailedError,
    NotAuthenticatedError,
    WorkspaceFetchFailedError,
)
from src.provisioning.gateway import StoreGateway

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_NAME = "My Workspace"

# Metadata keys tried in order before falling back to the email address.
_NAME_METADATA_KEYS = ("company_name", "full_name")


def _present(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def default_workspace_name(
    principal: Principal, fallback: str = DEFAULT_WORKSPACE_NAME,
) -> str:
    """Company name, else full name, else email, else ``fallback``.

    The chosen value is cut to the workspace name column width.
    """
    candidates = [principal.metadata.get(key) for key in _NAME_METADATA_KEYS]
    candidates.append(principal.email)
    for value in candidates:
        name = _present(value)
        if name:
            return name[:WORKSPACE_NAME_MAX_LENGTH]
    return fallback[:WORKSPACE_NAME_MAX_LENGTH]


class WorkspaceResolver:
    """Runs the provisioning sequence against a ``StoreGateway``."""

    def __init__(
        self,
        gateway: StoreGateway,
        *,
        default_name: str = DEFAULT_WORKSPACE_NAME,
        fetch_policy: WorkspaceFetchPolicy = WorkspaceFetchPolicy.FALLBACK,
    ) -> None:
        self._gateway = gateway
        self._default_name = default_name
        self._fetch_policy = fetch_policy

    async def provision(self) -> ResolvedWorkspace:
        principal = await self._gateway.get_current_principal()
        if principal is None:
            raise NotAuthenticatedError()

        workspace = await self._find_existing(principal)
        if workspace is None:
            workspace = await self._create_default(principal)

        return ResolvedWorkspace(
            workspace_id=workspace.workspace_id, workspace=workspace,
        )

    async def _find_existing(self, principal: Principal) -> Workspace | None:
        try:
            memberships = await self._gateway.query_active_memberships(
                principal.user_id, limit=1,
            )
        except Exception as exc:
            logger.error(
                "Membership lookup failed for user %s: %s", principal.user_id, exc,
            )
            raise LookupFailedError(
                f"Membership lookup failed for user {principal.user_id}"
            ) from exc

        if not memberships:
            return None

        workspace_id = memberships[0].workspace_id
        try:
            return await self._gateway.fetch_workspace_by_id(workspace_id)
        except Exception as exc:
            if self._fetch_policy == WorkspaceFetchPolicy.RAISE:
                raise WorkspaceFetchFailedError(
                    f"Failed to load workspace {workspace_id} for active membership",
                    workspace_id=workspace_id,
                ) from exc
            logger.warning(
                "Failed to load workspace %s for membership of user %s; "
                "creating a new default workspace: %s",
                workspace_id, principal.user_id, exc,
            )
            return None

    async def _create_default(self, principal: Principal) -> Workspace:
        name = default_workspace_name(principal, self._default_name)
        try:
            workspace = await self._gateway.insert_workspace(
                name=name, owner_id=principal.user_id,
            )
        except Exception as exc:
            logger.error(
                "Failed to create default workspace for user %s: %s",
                principal.user_id, exc,
            )
            raise CreationFailedError(
                f"Failed to create default workspace for user {principal.user_id}"
            ) from exc

        try:
            await self._gateway.insert_membership(
                workspace_id=workspace.workspace_id,
                user_id=principal.user_id,
                role=WorkspaceRole.OWNER,
                status=MembershipStatus.ACTIVE,
                invited_by=principal.user_id,
                accepted_at=utc_now(),
            )
        except Exception as exc:
            logger.error(
                "Owner membership insert failed; workspace %s is orphaned: %s",
                workspace.workspace_id, exc,
            )
            raise MembershipCreationFailedError(
                f"Failed to add owner membership to workspace {workspace.workspace_id}",
                workspace_id=workspace.workspace_id,
            ) from exc

        logger.info(
            "Created default workspace %s (%r) for user %s",
            workspace.workspace_id, workspace.name, principal.user_id,
        )
        return workspace
