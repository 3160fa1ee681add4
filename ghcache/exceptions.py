"""ghcache exception classes."""

from typing import Any


class GhCacheError(Exception):
    """Base exception for all ghcache errors."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class ConfigurationError(GhCacheError):
    """Raised when provider configuration is invalid or missing."""

    def __init__(self, message: str) -> None:
        super().__init__("CONFIGURATION_ERROR", message)


class GitHubAPIError(GhCacheError):
    """Base exception for errors returned by the GitHub API."""

    def __init__(
        self,
        code: str,
        message: str,
        request_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(code, message)
        self.request_id = request_id
        self.status_code = status_code


class AuthenticationError(GitHubAPIError):
    """Raised when the token is missing or rejected."""

    pass


class AuthorizationError(GitHubAPIError):
    """Raised when access is denied."""

    pass


class NotFoundError(GitHubAPIError):
    """Raised when a resource is not found."""

    pass


class RateLimitedError(GitHubAPIError):
    """Raised when rate limited."""

    def __init__(
        self,
        code: str,
        message: str,
        retry_after: int,
        request_id: str | None = None,
        status_code: int | None = 429,
    ) -> None:
        super().__init__(code, message, request_id, status_code)
        self.retry_after = retry_after


class ValidationError(GitHubAPIError):
    """Raised on validation errors and malformed queries."""

    pass


class ServerError(GitHubAPIError):
    """Raised on server errors (5xx) and connection failures."""

    pass


class RemoteQueryError(GhCacheError):
    """
    Raised when a list or point query against the remote API fails.

    Carries the scope being loaded and the underlying cause. The cache never
    retries on its own; the scope is left unloaded so the next call retries.
    """

    def __init__(self, scope: Any, cause: BaseException | str) -> None:
        self.scope = scope
        self.cause = cause
        super().__init__("REMOTE_QUERY_FAILED", f"query for scope {scope!r} failed: {cause}")


class EntityNotFoundError(GhCacheError):
    """Raised when neither the bulk load nor the fallback fetch found an item."""

    def __init__(self, entity: str, scope: Any, key: Any) -> None:
        self.entity = entity
        self.scope = scope
        self.key = key
        super().__init__("ENTITY_NOT_FOUND", f"{entity} {key!r} not found in {scope!r}")


class OperationCancelledError(GhCacheError):
    """Raised when a caller-supplied CancelContext is cancelled or expires."""

    def __init__(self, message: str = "operation cancelled") -> None:
        super().__init__("CANCELLED", message)


class CacheInvariantError(GhCacheError, AssertionError):
    """Raised on internal cache invariant violations (programming errors)."""

    def __init__(self, message: str) -> None:
        super().__init__("CACHE_INVARIANT", message)
