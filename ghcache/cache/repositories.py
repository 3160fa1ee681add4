"""Repository cache, scoped by organization login."""

from ghcache.cache.base import EntityCache
from ghcache.context import CancelContext
from ghcache.types.repos import RepositoryEntry


class RepositoryCache(EntityCache[str, str, RepositoryEntry]):
    """Repositories of the owner, keyed by name."""

    entity = "repository"

    def get_repository(self, name: str, ctx: CancelContext | None = None) -> RepositoryEntry:
        """Get a repository of the provider's own organization."""
        return self.get(self.client.owner, name, ctx)  # type: ignore[attr-defined]
