"""Per-session provisioner registry.

Binds one DefaultWorkspaceProvisioner to each principal session so the
cache lifetime is the session lifetime: created on session start, torn
down (invalidated and dropped) on session end.
"""

import logging
from collections.abc import Callable
from uuid import UUID

from src.provisioning.provisioner import DefaultWorkspaceProvisioner

logger = logging.getLogger(__name__)


class ProvisionerRegistry:
    def __init__(
        self, factory: Callable[[UUID], DefaultWorkspaceProvisioner],
    ) -> None:
        self._factory = factory
        self._sessions: dict[UUID, DefaultWorkspaceProvisioner] = {}

    def start_session(self, user_id: UUID) -> DefaultWorkspaceProvisioner:
        """Return the session's provisioner, creating it if needed."""
        provisioner = self._sessions.get(user_id)
        if provisioner is None:
            provisioner = self._factory(user_id)
            self._sessions[user_id] = provisioner
            logger.debug("Started provisioning session for user %s", user_id)
        return provisioner

    def get(self, user_id: UUID) -> DefaultWorkspaceProvisioner | None:
        return self._sessions.get(user_id)

    def end_session(self, user_id: UUID) -> bool:
        """Invalidate and drop the session's provisioner.

        Returns False when no session was open for ``user_id``.
        """
        provisioner = self._sessions.pop(user_id, None)
        if provisioner is None:
            return False
        provisioner.invalidate()
        logger.debug("Ended provisioning session for user %s", user_id)
        return True

    def clear(self) -> None:
        for provisioner in self._sessions.values():
            provisioner.invalidate()
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions
