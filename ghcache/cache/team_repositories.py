"""Team repository cache, scoped by numeric team ID."""

from ghcache.cache.base import EntityCache
from ghcache.types.teams import TeamRepositoryEntry


class TeamRepositoryCache(EntityCache[int, str, TeamRepositoryEntry]):
    """Team access grants, keyed by team ID then repository name."""

    entity = "team_repository"
