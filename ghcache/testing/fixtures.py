"""
Pytest fixtures for ghcache testing.

Provides a fake GitHub organization and sample entries for tests of the
caches and of the resource handlers built on them.
"""

from collections.abc import Generator

import pytest

from ghcache.provider import GitHubProvider
from ghcache.testing.fake import FakeGitHub
from ghcache.types.environments import BranchPolicy, EnvironmentEntry, Reviewer, ReviewerKind
from ghcache.types.repos import RepositoryEntry
from ghcache.types.secrets import EnvironmentSecretEntry, SecretVisibility
from ghcache.types.teams import TeamRepositoryEntry


# ============================================================================
# Helper functions
# ============================================================================


def create_repository(name: str = "api", archived: bool = False, **fields) -> RepositoryEntry:
    """Build a RepositoryEntry with sensible defaults."""
    return RepositoryEntry(name=name, is_archived=archived, visibility="PRIVATE", **fields)


def create_environment(
    name: str = "prod",
    wait_timer: int = 0,
    team_reviewers: tuple[int, ...] = (),
    user_reviewers: tuple[int, ...] = (),
) -> EnvironmentEntry:
    """Build an EnvironmentEntry with the given reviewers."""
    reviewers = tuple(Reviewer(ReviewerKind.TEAM, i) for i in team_reviewers) + tuple(
        Reviewer(ReviewerKind.USER, i) for i in user_reviewers
    )
    return EnvironmentEntry(
        name=name,
        wait_timer=wait_timer,
        reviewers=reviewers,
        deployment_branch_policy=BranchPolicy(),
    )


def create_secret(name: str = "DEPLOY_KEY") -> EnvironmentSecretEntry:
    return EnvironmentSecretEntry(
        name=name,
        created_at="2024-01-15T10:30:00Z",
        updated_at="2024-01-15T10:30:00Z",
        visibility=SecretVisibility.PRIVATE,
    )


def create_team_repository(name: str = "api", permission: str = "push") -> TeamRepositoryEntry:
    return TeamRepositoryEntry(name=name, permission=permission)


# ============================================================================
# Fake organization fixtures
# ============================================================================


@pytest.fixture
def fake_github() -> FakeGitHub:
    """
    Provide a fake organization matching the documented example scenario.

    Repositories "api" and "web"; "api" has environments "prod" (wait timer
    10, reviewer Team#42) and "staging"; team 7 can push to "api".
    """
    fake = FakeGitHub(owner="acme", org_id=1000)
    fake.add_repository("api")
    fake.add_repository("web")
    fake.add_environment("api", "prod", wait_timer=10, reviewers=[("Team", 42)])
    fake.add_environment("api", "staging")
    fake.add_secret("api", "prod", "DEPLOY_KEY")
    fake.grant_team(7, "api", "push")
    return fake


@pytest.fixture
def provider(fake_github: FakeGitHub) -> Generator[GitHubProvider, None, None]:
    """Provide a GitHubProvider wired to ``fake_github``."""
    p = fake_github.provider()
    yield p
    p.close()


@pytest.fixture
def sample_repository() -> RepositoryEntry:
    return create_repository()


@pytest.fixture
def sample_environment() -> EnvironmentEntry:
    return create_environment(wait_timer=10, team_reviewers=(42,))


@pytest.fixture
def sample_secret() -> EnvironmentSecretEntry:
    return create_secret()


@pytest.fixture
def sample_team_repository() -> TeamRepositoryEntry:
    return create_team_repository()
