"""
Read and delete flows used by the repository-environment and
team-repository resources.

A read returns None when the resource should be dropped from managed
state: its repository is gone or archived, or the item itself is gone.
Transient failures propagate as RemoteQueryError.
"""

from ghcache.context import CancelContext
from ghcache.exceptions import EntityNotFoundError, ValidationError
from ghcache.logging import get_logger
from ghcache.provider import GitHubProvider
from ghcache.types.environments import EnvironmentEntry
from ghcache.types.repos import RepositoryEntry
from ghcache.types.teams import TeamRepositoryEntry

logger = get_logger("handlers")


def parse_two_part_id(resource_id: str, left: str = "left", right: str = "right") -> tuple[str, str]:
    """
    Split a ``"<left>:<right>"`` resource ID.

    Raises:
        ValidationError: If the ID does not have exactly two non-empty parts
    """
    parts = resource_id.split(":", 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValidationError(
            "INVALID_ID", f"unexpected ID format ({resource_id!r}); expected {left}:{right}"
        )
    return parts[0], parts[1]


def _usable_repository(
    provider: GitHubProvider, repo: str, resource_id: str, ctx: CancelContext | None
) -> RepositoryEntry | None:
    try:
        entry = provider.repositories.get(provider.owner, repo, ctx)
    except EntityNotFoundError:
        logger.info("Removing %s from state because repository %s does not exist", resource_id, repo)
        return None
    if entry.is_archived:
        logger.info("Removing %s from state because repository %s is archived", resource_id, repo)
        return None
    return entry


def read_repository_environment(
    provider: GitHubProvider,
    repo: str,
    environment: str,
    ctx: CancelContext | None = None,
) -> EnvironmentEntry | None:
    """Read an environment through the caches; None means drop from state."""
    resource_id = f"{repo}:{environment}"
    if _usable_repository(provider, repo, resource_id, ctx) is None:
        return None
    try:
        return provider.environments.get(repo, environment, ctx)
    except EntityNotFoundError:
        logger.info("Removing repository environment %s from state because it no longer exists", resource_id)
        return None


def delete_repository_environment(
    provider: GitHubProvider,
    repo: str,
    environment: str,
    ctx: CancelContext | None = None,
) -> None:
    """
    Delete an environment upstream, then evict it from the cache.

    Nothing is deleted when the repository is gone or archived; the
    resource is simply dropped from state.
    """
    resource_id = f"{repo}:{environment}"
    if _usable_repository(provider, repo, resource_id, ctx) is None:
        return
    if not provider.environments_client.delete(repo, environment, ctx):
        logger.info("Repository environment %s was already deleted", resource_id)
    provider.environments.evict(repo, environment)


def read_team_repository(
    provider: GitHubProvider,
    team_id: int,
    repo: str,
    ctx: CancelContext | None = None,
) -> TeamRepositoryEntry | None:
    """Read a team's access to a repository; None means drop from state."""
    resource_id = f"{team_id}:{repo}"
    if _usable_repository(provider, repo, resource_id, ctx) is None:
        return None
    try:
        return provider.team_repositories.get(team_id, repo, ctx)
    except EntityNotFoundError:
        logger.info("Removing team repository %s from state because it no longer exists", resource_id)
        return None


def delete_team_repository(
    provider: GitHubProvider,
    team_id: int,
    repo: str,
    ctx: CancelContext | None = None,
) -> None:
    """
    Remove a team's access upstream, then evict the binding from the cache.

    Nothing is removed when the repository is gone or archived. If the
    binding is not found because the repository was renamed, the removal
    is retried under the new name.
    """
    resource_id = f"{team_id}:{repo}"
    if _usable_repository(provider, repo, resource_id, ctx) is None:
        return

    client = provider.team_repositories_client
    if not client.delete(team_id, repo, ctx):
        current = provider.repositories_client.get(provider.owner, repo, ctx)
        if current is not None and current.name != repo:
            logger.info(
                "Repository name has changed %s -> %s; removing team %s access again",
                repo, current.name, team_id,
            )
            if not client.delete(team_id, current.name, ctx):
                logger.info("Team repository %s:%s was already removed", team_id, current.name)
            provider.team_repositories.evict(team_id, current.name)
        else:
            logger.info("Team repository %s was already removed", resource_id)
    provider.team_repositories.evict(team_id, repo)
