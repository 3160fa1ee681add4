"""
Pytest plugin for ghcache testing fixtures.

To use these fixtures in your tests, add this to your conftest.py:

    pytest_plugins = ["ghcache.testing.conftest"]
"""

from ghcache.testing.fixtures import (
    fake_github,
    provider,
    sample_environment,
    sample_repository,
    sample_secret,
    sample_team_repository,
)

__all__ = [
    "fake_github",
    "provider",
    "sample_repository",
    "sample_environment",
    "sample_secret",
    "sample_team_repository",
]
