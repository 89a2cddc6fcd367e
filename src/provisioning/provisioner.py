"""Session-scoped default workspace provisioner.

One instance per signed-in principal session. ``resolve()`` is the only way
in; ``invalidate()`` is called on logout or principal switch. The instance
can also be used as an async context manager, which invalidates on exit.
"""

from src.config.settings import Settings, WorkspaceFetchPolicy
from src.models.workspace import ResolvedWorkspace
from src.provisioning.gateway import StoreGateway
from src.provisioning.resolver import DEFAULT_WORKSPACE_NAME, WorkspaceResolver
from src.provisioning.single_flight import CacheState, SingleFlight


class DefaultWorkspaceProvisioner:
    def __init__(
        self,
        gateway: StoreGateway,
        *,
        default_name: str = DEFAULT_WORKSPACE_NAME,
        fetch_policy: WorkspaceFetchPolicy = WorkspaceFetchPolicy.FALLBACK,
    ) -> None:
        self._resolver = WorkspaceResolver(
            gateway, default_name=default_name, fetch_policy=fetch_policy,
        )
        self._cache: SingleFlight[ResolvedWorkspace] = SingleFlight(
            self._resolver.provision, name="default-workspace",
        )

    @classmethod
    def from_settings(
        cls, gateway: StoreGateway, settings: Settings,
    ) -> "DefaultWorkspaceProvisioner":
        return cls(
            gateway,
            default_name=settings.DEFAULT_WORKSPACE_NAME,
            fetch_policy=settings.WORKSPACE_FETCH_POLICY,
        )

    @property
    def state(self) -> CacheState:
        return self._cache.state

    @property
    def cached(self) -> ResolvedWorkspace | None:
        return self._cache.value

    async def resolve(self) -> ResolvedWorkspace:
        """Return the default workspace, provisioning it on first call.

        Concurrent callers share a single provisioning sequence and all get
        its outcome. Raises a ``ProvisioningError`` subclass on failure; the
        next call retries from scratch.
        """
        return await self._cache.get()

    def invalidate(self) -> None:
        """Forget the cached workspace. Never fails."""
        self._cache.invalidate()

    async def __aenter__(self) -> "DefaultWorkspaceProvisioner":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.invalidate()
