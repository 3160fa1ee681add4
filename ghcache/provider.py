"""
GitHub provider context.

One GitHubProvider exists per configured owner. It owns the transport, the
remote clients and the four metadata caches, and is passed by reference to
every resource handler; nothing is reachable through module globals.
"""

import os
from typing import Any

from ghcache.cache import (
    CacheStats,
    EnvironmentCache,
    EnvironmentSecretCache,
    RepositoryCache,
    TeamRepositoryCache,
)
from ghcache.clients import (
    EnvironmentsClient,
    EnvironmentSecretsClient,
    RepositoriesClient,
    TeamRepositoriesClient,
)
from ghcache.config import CacheConfig
from ghcache.exceptions import ConfigurationError
from ghcache.logging import get_logger
from ghcache.transport import HTTPTransport, RetryConfig

logger = get_logger()


class GitHubProvider:
    """
    Provider context for one GitHub organization.

    Example:
        ```python
        from ghcache import GitHubProvider

        provider = GitHubProvider.from_env()

        env = provider.environments.get("api", "prod")
        print(env.wait_timer, env.reviewers)

        # After deleting the environment upstream
        provider.environments.evict("api", "prod")
        ```
    """

    DEFAULT_BASE_URL = "https://api.github.com"
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        owner: str,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
        cache_config: CacheConfig | None = None,
        org_id: int | None = None,
        transport: HTTPTransport | None = None,
    ) -> None:
        """
        Initialize the provider context.

        Args:
            owner: Organization login
            token: GitHub token
            base_url: Base URL for API requests (default: https://api.github.com)
            timeout: Request timeout in seconds (default: 30.0)
            retry_config: Configuration for retry behavior (optional)
            cache_config: Cache settings (optional)
            org_id: Numeric organization ID; resolved on first use if omitted
            transport: Pre-built transport (tests)
        """
        if not owner:
            raise ConfigurationError("owner must not be empty")

        self.owner = owner
        self.base_url = base_url
        self.timeout = timeout
        self.cache_config = cache_config or CacheConfig()

        self._transport = transport or HTTPTransport(
            base_url=base_url,
            token=token,
            timeout=timeout,
            retry_config=retry_config,
        )

        page_size = self.cache_config.page_size
        self.repositories_client = RepositoriesClient(self._transport, owner, page_size)
        self.environments_client = EnvironmentsClient(self._transport, owner, page_size)
        self.secrets_client = EnvironmentSecretsClient(self._transport, owner, page_size)
        self.team_repositories_client = TeamRepositoriesClient(
            self._transport, owner, org_id=org_id, page_size=page_size
        )

        wait_timeout = self.cache_config.load_wait_timeout
        self.repositories = RepositoryCache(
            self.repositories_client,
            evictable=self.cache_config.evict_repositories,
            wait_timeout=wait_timeout,
        )
        self.environments = EnvironmentCache(
            self.environments_client,
            evictable=self.cache_config.evict_environments,
            wait_timeout=wait_timeout,
        )
        self.environment_secrets = EnvironmentSecretCache(
            self.secrets_client,
            evictable=self.cache_config.evict_environment_secrets,
            wait_timeout=wait_timeout,
        )
        self.team_repositories = TeamRepositoryCache(
            self.team_repositories_client,
            evictable=self.cache_config.evict_team_repositories,
            wait_timeout=wait_timeout,
        )

    @classmethod
    def from_env(
        cls,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
        cache_config: CacheConfig | None = None,
    ) -> "GitHubProvider":
        """
        Create a provider from environment variables.

        Environment variables:
            GITHUB_OWNER: Organization login (required)
            GITHUB_TOKEN: API token (required)
            GITHUB_BASE_URL: Base URL for API (optional, default: https://api.github.com)
            GITHUB_ORG_ID: Numeric organization ID (optional)

        Raises:
            ConfigurationError: If required environment variables are missing or invalid
        """
        owner = os.environ.get("GITHUB_OWNER")
        token = os.environ.get("GITHUB_TOKEN")
        base_url = os.environ.get("GITHUB_BASE_URL", cls.DEFAULT_BASE_URL)
        org_id_str = os.environ.get("GITHUB_ORG_ID")

        if not owner:
            raise ConfigurationError("GITHUB_OWNER environment variable not set")

        if not token:
            raise ConfigurationError("GITHUB_TOKEN environment variable not set")

        org_id: int | None = None
        if org_id_str:
            try:
                org_id = int(org_id_str)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid GITHUB_ORG_ID: {org_id_str}. Must be an integer"
                ) from e

        logger.debug("Configuring provider for owner %s at %s", owner, base_url)
        return cls(
            owner=owner,
            token=token,
            base_url=base_url,
            timeout=timeout,
            retry_config=retry_config,
            cache_config=cache_config,
            org_id=org_id,
        )

    @property
    def transport(self) -> HTTPTransport:
        """Get the underlying HTTP transport (for advanced use cases)."""
        return self._transport

    def cache_stats(self) -> dict[str, CacheStats]:
        """Counters of every cache, keyed by entity kind."""
        caches = (self.repositories, self.environments, self.environment_secrets, self.team_repositories)
        return {cache.entity: cache.stats() for cache in caches}

    def close(self) -> None:
        """Close the provider and release resources."""
        self._transport.close()

    def __enter__(self) -> "GitHubProvider":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
