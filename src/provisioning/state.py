"""Thin state holder exposing loading/error flags around the provisioner.

UI-facing glue: it forwards to ``DefaultWorkspaceProvisioner`` and records
what happened, nothing more.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from src.models.workspace import Workspace
from src.provisioning.provisioner import DefaultWorkspaceProvisioner

logger = logging.getLogger(__name__)


@dataclass
class WorkspaceState:
    provisioner: DefaultWorkspaceProvisioner
    active_workspace_id: UUID | None = None
    workspace: Workspace | None = None
    is_loading: bool = False
    error: str | None = None

    def set_active_workspace_id(self, workspace_id: UUID) -> None:
        self.active_workspace_id = workspace_id

    async def initialize(self) -> UUID:
        """Return the active workspace id, resolving the default if unset.

        On failure the error message is recorded and the exception re-raised.
        """
        if self.active_workspace_id is not None:
            return self.active_workspace_id

        self.is_loading = True
        self.error = None
        try:
            resolved = await self.provisioner.resolve()
        except Exception as exc:
            logger.error("Workspace initialization failed: %s", exc)
            self.error = str(exc) or "Failed to load workspace"
            raise
        finally:
            self.is_loading = False

        self.active_workspace_id = resolved.workspace_id
        self.workspace = resolved.workspace
        return resolved.workspace_id

    def reset(self) -> None:
        """Clear state and the provisioner's cache (logout)."""
        self.provisioner.invalidate()
        self.active_workspace_id = None
        self.workspace = None
        self.is_loading = False
        self.error = None
