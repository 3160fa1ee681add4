"""Read-through metadata caches."""

from ghcache.cache.base import CacheStats, EntityCache
from ghcache.cache.environments import EnvironmentCache
from ghcache.cache.guard import LoadState, ScopeLoadGuard
from ghcache.cache.pagination import paginate
from ghcache.cache.repositories import RepositoryCache
from ghcache.cache.secrets import EnvironmentSecretCache
from ghcache.cache.team_repositories import TeamRepositoryCache

__all__ = [
    "EntityCache",
    "CacheStats",
    "ScopeLoadGuard",
    "LoadState",
    "paginate",
    "RepositoryCache",
    "EnvironmentCache",
    "EnvironmentSecretCache",
    "TeamRepositoryCache",
]
