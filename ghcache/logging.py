"""
ghcache logging utilities.

Provides configurable logging for HTTP requests/responses and cache events.
Ensures no credentials (tokens, secret values) are logged.
"""

import logging
import re
from typing import Any

# Package loggers
_sdk_logger = logging.getLogger("ghcache")
_http_logger = logging.getLogger("ghcache.http")
_cache_logger = logging.getLogger("ghcache.cache")

# Patterns for sensitive data that should be masked
_SENSITIVE_PATTERNS = [
    # Authorization header values
    (re.compile(r"(Bearer|token)\s+[A-Za-z0-9_\-\.]+", re.IGNORECASE), r"\1 [REDACTED]"),
    # GitHub token formats (classic, fine-grained, app installation)
    (re.compile(r"\b(ghp|gho|ghu|ghs|ghr)_[A-Za-z0-9]{20,}\b"), "[TOKEN_REDACTED]"),
    (re.compile(r"\bgithub_pat_[A-Za-z0-9_]{20,}\b"), "[TOKEN_REDACTED]"),
    # Secret/token assignments
    (re.compile(r"(secret|token|password|api_key)['\"]?\s*[:=]\s*['\"][^'\"]+['\"]", re.IGNORECASE), r"\1: [REDACTED]"),
]

_DEFAULT_SENSITIVE_KEYS = {"authorization", "token", "password", "api_key", "encrypted_value"}


def configure_logging(
    level: int = logging.INFO,
    http_level: int | None = None,
    cache_level: int | None = None,
    handler: logging.Handler | None = None,
    format_string: str | None = None,
) -> None:
    """
    Configure ghcache logging.

    Args:
        level: Default log level for all ghcache loggers (default: INFO)
        http_level: Log level for HTTP request/response logging (default: same as level)
        cache_level: Log level for cache events (default: same as level)
        handler: Custom handler to use (default: StreamHandler to stderr)
        format_string: Custom format string (default: includes timestamp, level, logger name)

    Example:
        ```python
        import logging
        from ghcache.logging import configure_logging

        # Trace every bulk load and fallback fetch
        configure_logging(level=logging.INFO, cache_level=logging.DEBUG)
        ```
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    formatter = logging.Formatter(format_string)

    if handler is None:
        handler = logging.StreamHandler()

    handler.setFormatter(formatter)

    _sdk_logger.setLevel(level)
    _sdk_logger.addHandler(handler)

    _http_logger.setLevel(http_level if http_level is not None else level)
    _cache_logger.setLevel(cache_level if cache_level is not None else level)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a ghcache logger.

    Args:
        name: Logger name suffix (e.g., "http", "cache"). If None, returns the package logger.

    Returns:
        Logger instance
    """
    if name is None:
        return _sdk_logger
    return logging.getLogger(f"ghcache.{name}")


def mask_sensitive_data(text: str) -> str:
    """
    Mask sensitive data in a string.

    Args:
        text: Text that may contain tokens or secret values

    Returns:
        Text with sensitive data masked
    """
    result = text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def safe_log_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """
    Create a copy of a dictionary with sensitive values masked.

    Args:
        data: Dictionary that may contain sensitive values
        sensitive_keys: Keys to mask (default: authorization, token, password, api_key, encrypted_value)

    Returns:
        Dictionary with sensitive values replaced with "[REDACTED]"
    """
    if sensitive_keys is None:
        sensitive_keys = _DEFAULT_SENSITIVE_KEYS

    result: dict[str, Any] = {}
    for key, value in data.items():
        key_lower = key.lower()
        if key_lower in sensitive_keys or any(sk in key_lower for sk in sensitive_keys):
            result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = safe_log_dict(value, sensitive_keys)
        elif isinstance(value, list):
            result[key] = [
                safe_log_dict(item, sensitive_keys) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = value

    return result


def log_http_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: dict[str, Any] | None = None,
) -> None:
    """Log an HTTP request at DEBUG level with sensitive data masked."""
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return

    log_parts = [f"{method} {url}"]

    if headers:
        log_parts.append(f"headers={safe_log_dict(headers)}")

    if body:
        log_parts.append(f"body={safe_log_dict(body)}")

    _http_logger.debug(mask_sensitive_data(" | ".join(log_parts)))


def log_http_response(
    status_code: int,
    url: str,
    elapsed_ms: float | None = None,
    request_id: str | None = None,
) -> None:
    """Log an HTTP response at DEBUG level."""
    if not _http_logger.isEnabledFor(logging.DEBUG):
        return

    log_parts = [f"Response {status_code} from {url}"]

    if elapsed_ms is not None:
        log_parts.append(f"elapsed={elapsed_ms:.2f}ms")

    if request_id:
        log_parts.append(f"request_id={request_id}")

    _http_logger.debug(" | ".join(log_parts))


def log_cache_event(
    event: str,
    entity: str,
    scope: Any,
    key: Any = None,
    level: int = logging.DEBUG,
    **fields: Any,
) -> None:
    """
    Log a cache event (bulk load, fallback fetch, eviction, ...).

    Args:
        event: Event name (e.g., "bulk_load_done", "fallback_fetch")
        entity: Entity kind handled by the cache (e.g., "environment")
        scope: Scope key of the event
        key: Item key (optional)
        level: Log level (default: DEBUG)
        **fields: Extra key=value pairs appended to the message
    """
    if not _cache_logger.isEnabledFor(level):
        return

    log_parts = [f"{event}: entity={entity}, scope={scope!r}"]

    if key is not None:
        log_parts.append(f"key={key!r}")

    for name, value in fields.items():
        log_parts.append(f"{name}={value}")

    _cache_logger.log(level, " | ".join(log_parts))


__all__ = [
    "configure_logging",
    "get_logger",
    "mask_sensitive_data",
    "safe_log_dict",
    "log_http_request",
    "log_http_response",
    "log_cache_event",
]
