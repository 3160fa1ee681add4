"""ghcache remote API clients."""

from ghcache.clients.environments import EnvironmentsClient
from ghcache.clients.repos import RepositoriesClient
from ghcache.clients.secrets import EnvironmentSecretsClient
from ghcache.clients.teams import TeamRepositoriesClient

__all__ = [
    "RepositoriesClient",
    "EnvironmentsClient",
    "EnvironmentSecretsClient",
    "TeamRepositoriesClient",
]
