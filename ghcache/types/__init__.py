"""ghcache entry types.

This module exports the immutable entries stored by the caches.
"""

from ghcache.types.environments import (
    BranchPolicy,
    EnvironmentEntry,
    ProtectionRule,
    Reviewer,
    ReviewerKind,
)
from ghcache.types.page import Page
from ghcache.types.repos import RepositoryEntry, SecurityAnalysis
from ghcache.types.secrets import EnvironmentSecretEntry, SecretVisibility
from ghcache.types.teams import TeamRepositoryEntry

__all__ = [
    # Pagination
    "Page",
    # Repositories
    "RepositoryEntry",
    "SecurityAnalysis",
    # Environments
    "EnvironmentEntry",
    "Reviewer",
    "ReviewerKind",
    "BranchPolicy",
    "ProtectionRule",
    # Environment secrets
    "EnvironmentSecretEntry",
    "SecretVisibility",
    # Team repositories
    "TeamRepositoryEntry",
]
