"""Error taxonomy surfaced by workspace resolution."""

from uuid import UUID


class ProvisioningError(Exception):
    """Base class for all workspace resolution failures."""


class NotAuthenticatedError(ProvisioningError):
    """No authenticated principal is available."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class LookupFailedError(ProvisioningError):
    """The active-membership query failed."""


class CreationFailedError(ProvisioningError):
    """Inserting the default workspace failed."""


class MembershipCreationFailedError(ProvisioningError):
    """The owner membership could not be inserted.

    The workspace row identified by ``workspace_id`` was already created and
    is left behind without a membership.
    """

    def __init__(self, message: str, *, workspace_id: UUID) -> None:
        super().__init__(message)
        self.workspace_id = workspace_id


class WorkspaceFetchFailedError(ProvisioningError):
    """The workspace behind an active membership could not be loaded.

    Only raised when the fetch policy is ``raise``; the default policy falls
    back to creating a new workspace.
    """

    def __init__(self, message: str, *, workspace_id: UUID) -> None:
        super().__init__(message)
        self.workspace_id = workspace_id
