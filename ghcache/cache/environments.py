"""Environment cache, scoped by repository name."""

from ghcache.cache.base import EntityCache
from ghcache.types.environments import EnvironmentEntry


class EnvironmentCache(EntityCache[str, str, EnvironmentEntry]):
    """Deployment environments, keyed by repository then environment name."""

    entity = "environment"
