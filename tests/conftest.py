"""Shared fixtures for the ghcache test suite."""

from ghcache.testing.conftest import (  # noqa: F401
    fake_github,
    provider,
    sample_environment,
    sample_repository,
    sample_secret,
    sample_team_repository,
)
