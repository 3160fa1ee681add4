"""Environment secret cache entries."""

from dataclasses import dataclass
from enum import Enum


class SecretVisibility(str, Enum):
    """Which repositories/teams can use a secret."""

    PRIVATE = "private"
    SELECTED = "selected"
    ORGANIZATION = "organization"


@dataclass(frozen=True)
class EnvironmentSecretEntry:
    """Secret metadata (never the value), keyed by name within an environment."""

    name: str
    created_at: str = ""
    updated_at: str = ""
    visibility: SecretVisibility = SecretVisibility.PRIVATE
    selected_teams: tuple[str, ...] = ()
    selected_repos: tuple[str, ...] = ()
