"""ghcache testing utilities.

Provides fakes and fixtures for testing the caches and the resource
handlers that use them.
"""

from ghcache.testing.fake import FakeCall, FakeEntityClient, FakeGitHub
from ghcache.testing.fixtures import (
    create_environment,
    create_repository,
    create_secret,
    create_team_repository,
)

__all__ = [
    # Fakes
    "FakeGitHub",
    "FakeEntityClient",
    "FakeCall",
    # Helper functions
    "create_repository",
    "create_environment",
    "create_secret",
    "create_team_repository",
]
