#!/usr/bin/env python3
"""
Basic ghcache usage example.

Runs the documented scenario against the in-memory fake organization.
Run with: python examples/basic_usage.py
"""

import logging

from ghcache import ConfigurationError, EntityNotFoundError, GhCacheError, configure_logging
from ghcache.testing import FakeGitHub

configure_logging(level=logging.INFO)

print("=== ghcache Basic Usage Example ===\n")

# 1. Exception hierarchy
print("1. Testing exception classes...")
try:
    raise ConfigurationError("GITHUB_OWNER environment variable not set")
except GhCacheError as e:
    print(f"   Caught GhCacheError: {e}")
    print(f"   Code: {e.code}, Message: {e.message}")

# 2. Cold read bulk-loads the repository's environments once
print("\n2. Reading environments...")
fake = FakeGitHub(owner="acme")
fake.add_repository("api")
fake.add_environment("api", "prod", wait_timer=10, reviewers=[("Team", 42)])
fake.add_environment("api", "staging")

with fake.provider() as provider:
    prod = provider.environments.get("api", "prod")
    print(f"   prod: wait_timer={prod.wait_timer}, reviewers={prod.reviewers}")

    staging = provider.environments.get("api", "staging")
    print(f"   staging: wait_timer={staging.wait_timer}")
    print(f"   environment list queries: {fake.count('environments')}")

    # 3. Delete upstream, evict, read again
    print("\n3. Deleting staging...")
    fake.remove_environment("api", "staging")
    provider.environments.evict("api", "staging")
    try:
        provider.environments.get("api", "staging")
    except EntityNotFoundError as e:
        print(f"   {e}")

    print(f"\n   stats: {provider.cache_stats()}")

print("\n=== Done ===")
