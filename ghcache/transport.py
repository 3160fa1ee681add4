"""
HTTP Transport for the GitHub API.

Handles HTTP communication with automatic retry logic, token authentication,
GraphQL error mapping, Link-header pagination and cancellation.
"""

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from ghcache.context import CancelContext, check_context
from ghcache.exceptions import (
    AuthenticationError,
    AuthorizationError,
    GitHubAPIError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ValidationError,
)
from ghcache.logging import log_http_request, log_http_response


@dataclass
class RetryConfig:
    """Configuration for automatic retry behavior."""

    max_retries: int = 3
    backoff_factor: float = 2.0
    retry_on: list[int] = field(default_factory=lambda: [429, 500, 502, 503])
    respect_retry_after: bool = True
    max_backoff: float = 60.0  # Maximum backoff time in seconds
    jitter: float = 0.1  # Jitter factor (0.1 = ±10%)


class HTTPTransport:
    """
    HTTP transport layer for REST and GraphQL calls.

    Handles:
    - Bearer token authentication
    - Exponential backoff with jitter for retries
    - Retry-After header respect for rate limiting
    - Error response parsing into typed exceptions
    - Link-header cursors for REST collections
    """

    GRAPHQL_PATH = "/graphql"
    ACCEPT = "application/vnd.github+json"
    API_VERSION = "2022-11-28"

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize HTTP transport.

        Args:
            base_url: Base URL for API requests (e.g., "https://api.github.com")
            token: GitHub token sent as a Bearer credential
            timeout: Request timeout in seconds
            retry_config: Configuration for retry behavior
            client: Pre-built httpx client (tests inject one with a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()

        self._client = client or httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={
                "Accept": self.ACCEPT,
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": self.API_VERSION,
            },
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "HTTPTransport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def graphql(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        ctx: CancelContext | None = None,
    ) -> dict[str, Any]:
        """
        Run a GraphQL query.

        Args:
            query: GraphQL document
            variables: Query variables
            ctx: Optional cancellation context

        Returns:
            The ``data`` member of the GraphQL response

        Raises:
            NotFoundError: If the response carries a NOT_FOUND error
            GitHubAPIError: On other API errors
        """
        body = {"query": query, "variables": variables or {}}
        response = self._execute_with_retry(
            lambda timeout: self._send("POST", self.GRAPHQL_PATH, json=body, timeout=timeout),
            ctx,
        )
        payload = response.json()

        errors = payload.get("errors") or []
        if errors:
            request_id = response.headers.get("X-GitHub-Request-Id")
            first = errors[0]
            message = first.get("message", "GraphQL query failed")
            if any(error.get("type") == "NOT_FOUND" for error in errors):
                raise NotFoundError("NOT_FOUND", message, request_id, response.status_code)
            raise ValidationError(first.get("type") or "GRAPHQL_ERROR", message, request_id, response.status_code)

        return payload.get("data") or {}

    def rest_request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        ctx: CancelContext | None = None,
        accept: str | None = None,
    ) -> Any:
        """
        Make a REST request.

        Args:
            method: HTTP method
            path: API path
            params: Query parameters
            body: Request body (for POST/PUT/PATCH)
            ctx: Optional cancellation context
            accept: Accept header override (media type)

        Returns:
            Parsed JSON response ({} for empty responses)

        Raises:
            GitHubAPIError: On API errors
        """
        headers = {"Accept": accept} if accept else None
        response = self._execute_with_retry(
            lambda timeout: self._send(
                method, path, params=params, json=body, headers=headers, timeout=timeout
            ),
            ctx,
        )
        return self._parse_body(response)

    def rest_page(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        cursor: str | None = None,
        ctx: CancelContext | None = None,
        accept: str | None = None,
    ) -> tuple[Any, str | None]:
        """
        Fetch one page of a REST collection.

        The cursor is the ``rel="next"`` URL from the previous page's Link
        header; when given it replaces ``path`` and ``params``.

        Returns:
            (parsed body, next cursor or None)
        """
        headers = {"Accept": accept} if accept else None
        if cursor:
            path, params = cursor, None
        response = self._execute_with_retry(
            lambda timeout: self._send("GET", path, params=params, headers=headers, timeout=timeout),
            ctx,
        )
        next_link = response.links.get("next", {}).get("url")
        return self._parse_body(response), next_link

    def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        log_http_request(method, path, headers=headers, body=json)
        started = time.monotonic()
        response = self._client.request(
            method,
            path,
            params=params,
            json=json,
            headers=headers,
            timeout=timeout if timeout is not None else self.timeout,
        )
        log_http_response(
            response.status_code,
            path,
            elapsed_ms=(time.monotonic() - started) * 1000,
            request_id=response.headers.get("X-GitHub-Request-Id"),
        )
        return response

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def _request_timeout(self, ctx: CancelContext | None) -> float:
        if ctx is None:
            return self.timeout
        remaining = ctx.remaining()
        if remaining is None:
            return self.timeout
        return min(self.timeout, remaining)

    def _sleep(self, seconds: float, ctx: CancelContext | None) -> None:
        if ctx is None:
            time.sleep(seconds)
        else:
            ctx.wait(seconds)

    def _execute_with_retry(
        self,
        request_fn: Callable[[float], httpx.Response],
        ctx: CancelContext | None = None,
    ) -> httpx.Response:
        """
        Execute a request with automatic retry on retryable errors.

        Args:
            request_fn: Function that makes the HTTP request with the given timeout
            ctx: Optional cancellation context, checked before every attempt

        Returns:
            The successful response

        Raises:
            GitHubAPIError: On non-retryable errors or after max retries
            OperationCancelledError: If ``ctx`` is cancelled
        """
        last_error: Exception | None = None

        for attempt in range(self.retry_config.max_retries + 1):
            check_context(ctx)
            try:
                response = request_fn(self._request_timeout(ctx))
            except httpx.TimeoutException as e:
                check_context(ctx)
                if attempt >= self.retry_config.max_retries:
                    raise ServerError("TIMEOUT", str(e)) from e
                last_error = e
                self._sleep(self._get_backoff_time(attempt, None), ctx)
                continue
            except httpx.RequestError as e:
                # Network errors are retryable
                if attempt >= self.retry_config.max_retries:
                    raise ServerError("CONNECTION_ERROR", str(e)) from e
                last_error = e
                self._sleep(self._get_backoff_time(attempt, None), ctx)
                continue

            if response.status_code < 400:
                return response

            error = self._parse_error_response(response)

            if not self._should_retry(response.status_code, attempt):
                raise error

            last_error = error
            retry_after = response.headers.get("Retry-After")
            self._sleep(self._get_backoff_time(attempt, retry_after), ctx)

        if last_error:
            if isinstance(last_error, GitHubAPIError):
                raise last_error
            raise ServerError("MAX_RETRIES_EXCEEDED", str(last_error))

        raise ServerError("UNKNOWN_ERROR", "Request failed with no error details")

    def _should_retry(self, status_code: int, attempt: int) -> bool:
        """
        Determine if a request should be retried.

        Args:
            status_code: HTTP status code
            attempt: Current attempt number (0-indexed)

        Returns:
            True if the request should be retried
        """
        if attempt >= self.retry_config.max_retries:
            return False

        return status_code in self.retry_config.retry_on

    def _get_backoff_time(self, attempt: int, retry_after: str | None) -> float:
        """
        Calculate backoff time for retry.

        Uses exponential backoff with jitter, respecting Retry-After header
        if present.

        Args:
            attempt: Current attempt number (0-indexed)
            retry_after: Value of Retry-After header (if present)

        Returns:
            Time to wait in seconds
        """
        if retry_after and self.retry_config.respect_retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass  # Fall through to exponential backoff

        base_wait = self.retry_config.backoff_factor ** attempt

        jitter_range = base_wait * self.retry_config.jitter
        jitter = random.uniform(-jitter_range, jitter_range)
        wait_time = base_wait + jitter

        return min(wait_time, self.retry_config.max_backoff)

    def _parse_error_response(self, response: httpx.Response) -> GitHubAPIError:
        """
        Parse an error response into a typed exception.

        GitHub error bodies look like ``{"message": ..., "documentation_url": ...}``.

        Args:
            response: HTTP response with error status

        Returns:
            Appropriate GitHubAPIError subclass
        """
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        status_code = response.status_code
        message = data.get("message") or f"HTTP {status_code}"
        request_id = response.headers.get("X-GitHub-Request-Id")

        if status_code == 401:
            return AuthenticationError("UNAUTHORIZED", message, request_id, status_code)
        elif status_code == 403:
            if response.headers.get("X-RateLimit-Remaining") == "0":
                return RateLimitedError(
                    "RATE_LIMITED", message, self._retry_after(response), request_id, status_code
                )
            return AuthorizationError("FORBIDDEN", message, request_id, status_code)
        elif status_code == 404:
            return NotFoundError("NOT_FOUND", message, request_id, status_code)
        elif status_code == 429:
            return RateLimitedError(
                "RATE_LIMITED", message, self._retry_after(response), request_id, status_code
            )
        elif status_code >= 500:
            return ServerError("SERVER_ERROR", message, request_id, status_code)
        else:
            return ValidationError("VALIDATION_FAILED", message, request_id, status_code)

    @staticmethod
    def _retry_after(response: httpx.Response) -> int:
        retry_after_str = response.headers.get("Retry-After", "60")
        try:
            return int(retry_after_str)
        except ValueError:
            return 60
