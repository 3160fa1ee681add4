"""Cache configuration."""

from dataclasses import dataclass


@dataclass
class CacheConfig:
    """
    Per-provider cache settings.

    The eviction switches default to the behavior of the resources that use
    the caches: environments and team repositories are invalidated by their
    delete handlers, repositories and environment secrets are treated as
    stable for the lifetime of the process.
    """

    evict_repositories: bool = False
    evict_environments: bool = True
    evict_environment_secrets: bool = False
    evict_team_repositories: bool = True
    page_size: int = 100  # GitHub's maximum for both GraphQL and REST
    load_wait_timeout: float | None = None  # None = wait for in-flight loads forever

    def __post_init__(self) -> None:
        if not 1 <= self.page_size <= 100:
            raise ValueError(f"page_size must be between 1 and 100, got {self.page_size}")
        if self.load_wait_timeout is not None and self.load_wait_timeout <= 0:
            raise ValueError("load_wait_timeout must be positive")
