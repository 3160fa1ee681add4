"""ghcache - read-through metadata caches for GitHub organization resources."""

from ghcache.cache import (
    CacheStats,
    EntityCache,
    EnvironmentCache,
    EnvironmentSecretCache,
    LoadState,
    RepositoryCache,
    ScopeLoadGuard,
    TeamRepositoryCache,
    paginate,
)
from ghcache.config import CacheConfig
from ghcache.context import CancelContext
from ghcache.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CacheInvariantError,
    ConfigurationError,
    EntityNotFoundError,
    GhCacheError,
    GitHubAPIError,
    NotFoundError,
    OperationCancelledError,
    RateLimitedError,
    RemoteQueryError,
    ServerError,
    ValidationError,
)
from ghcache.logging import configure_logging, get_logger
from ghcache.provider import GitHubProvider
from ghcache.transport import HTTPTransport, RetryConfig

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Provider context
    "GitHubProvider",
    "CacheConfig",
    "CancelContext",
    # Caches
    "EntityCache",
    "CacheStats",
    "RepositoryCache",
    "EnvironmentCache",
    "EnvironmentSecretCache",
    "TeamRepositoryCache",
    "ScopeLoadGuard",
    "LoadState",
    "paginate",
    # Exceptions
    "GhCacheError",
    "ConfigurationError",
    "GitHubAPIError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "RateLimitedError",
    "ValidationError",
    "ServerError",
    "RemoteQueryError",
    "EntityNotFoundError",
    "OperationCancelledError",
    "CacheInvariantError",
    # Transport
    "HTTPTransport",
    "RetryConfig",
    # Logging
    "configure_logging",
    "get_logger",
]
