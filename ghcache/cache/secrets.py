"""Environment secret cache, scoped by (repository, environment)."""

from ghcache.cache.base import EntityCache
from ghcache.types.secrets import EnvironmentSecretEntry


class EnvironmentSecretCache(EntityCache[tuple[str, str], str, EnvironmentSecretEntry]):
    """Secret metadata, keyed by (repository, environment) then secret name."""

    entity = "environment_secret"
