"""
In-memory GitHub fakes for testing.

FakeGitHub emulates the GraphQL and REST endpoints used by the clients
behind an ``httpx.MockTransport``, so a real GitHubProvider can be driven
end to end. FakeEntityClient is a lighter stand-in for a single client,
used to test an EntityCache directly.

Both count every list and point query and can inject latency, failures and
out-of-band mutations.
"""

import json
import re
import threading
import time
from collections import Counter
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import unquote

import httpx

from ghcache.config import CacheConfig
from ghcache.context import CancelContext, check_context
from ghcache.exceptions import ServerError
from ghcache.provider import GitHubProvider
from ghcache.transport import HTTPTransport, RetryConfig
from ghcache.types.page import Page


@dataclass
class FakeCall:
    """Record of a remote query."""

    kind: str
    scope: Any
    key: Any = None
    timestamp: datetime = field(default_factory=datetime.now)


class FakeEntityClient:
    """
    Fake remote collaborator for one entity kind.

    Example:
        ```python
        client = FakeEntityClient({"api": [env_prod, env_staging]}, page_size=1)
        cache = EnvironmentCache(client)
        cache.get("api", "prod")
        assert client.list_calls("api") == 2  # one query per page
        ```
    """

    def __init__(
        self,
        records: dict[Hashable, list[Any]] | None = None,
        page_size: int = 100,
        key_of: Callable[[Any], Hashable] = lambda entry: entry.name,
        latency: float = 0.0,
    ) -> None:
        self.page_size = page_size
        self.key_of = key_of
        self.latency = latency
        self.point_transform: Callable[[Any], Any] | None = None
        self._lock = threading.Lock()
        self._remote: dict[Hashable, dict[Hashable, Any]] = {}
        self._calls: list[FakeCall] = []
        self._list_failures: dict[Hashable, list[int]] = {}
        self._get_failures: Counter[Hashable] = Counter()
        for scope, entries in (records or {}).items():
            for entry in entries:
                self.add(scope, entry)

    # Remote state ------------------------------------------------------

    def add(self, scope: Hashable, entry: Any) -> None:
        """Create or replace an item upstream (not visible to loaded caches)."""
        with self._lock:
            self._remote.setdefault(scope, {})[self.key_of(entry)] = entry

    def remove(self, scope: Hashable, key: Hashable) -> None:
        """Delete an item upstream."""
        with self._lock:
            self._remote.get(scope, {}).pop(key, None)

    # Failure injection -------------------------------------------------

    def fail_list_page(self, scope: Hashable, page_index: int) -> None:
        """Make the next fetch of page ``page_index`` (0-based) of ``scope`` fail once."""
        with self._lock:
            self._list_failures.setdefault(scope, []).append(page_index)

    def fail_next_get(self, scope: Hashable, times: int = 1) -> None:
        """Make the next ``times`` point queries for ``scope`` fail."""
        with self._lock:
            self._get_failures[scope] += times

    # Call tracking -----------------------------------------------------

    def calls(self, kind: str | None = None) -> list[FakeCall]:
        with self._lock:
            return [c for c in self._calls if kind is None or c.kind == kind]

    def list_calls(self, scope: Hashable | None = None) -> int:
        """Number of list-page queries, optionally for one scope."""
        return sum(1 for c in self.calls("list") if scope is None or c.scope == scope)

    def get_calls(self, scope: Hashable | None = None) -> int:
        """Number of point queries, optionally for one scope."""
        return sum(1 for c in self.calls("get") if scope is None or c.scope == scope)

    def list_starts(self, scope: Hashable) -> int:
        """Number of list sequences started (first-page queries) for ``scope``."""
        return sum(1 for c in self.calls("list") if c.scope == scope and c.key is None)

    # Client protocol ---------------------------------------------------

    def list_page(self, scope: Hashable, cursor: str | None = None, ctx: CancelContext | None = None) -> Page[Any]:
        offset = int(cursor) if cursor else 0
        page_index = offset // self.page_size
        with self._lock:
            self._calls.append(FakeCall("list", scope, cursor))
            failures = self._list_failures.get(scope, [])
            fail = page_index in failures
            if fail:
                failures.remove(page_index)
            items = list(self._remote.get(scope, {}).values())
        self._pause(ctx)
        if fail:
            raise ServerError("SERVER_ERROR", f"injected failure on page {page_index} of {scope!r}")

        chunk = items[offset:offset + self.page_size]
        next_offset = offset + len(chunk)
        has_next = next_offset < len(items)
        return Page(records=chunk, has_next_page=has_next, end_cursor=str(next_offset) if has_next else None)

    def get(self, scope: Hashable, key: Hashable, ctx: CancelContext | None = None) -> Any:
        with self._lock:
            self._calls.append(FakeCall("get", scope, key))
            fail = self._get_failures[scope] > 0
            if fail:
                self._get_failures[scope] -= 1
            entry = self._remote.get(scope, {}).get(key)
        self._pause(ctx)
        if fail:
            raise ServerError("SERVER_ERROR", f"injected failure for {key!r} in {scope!r}")
        if entry is not None and self.point_transform is not None:
            entry = self.point_transform(entry)
        return entry

    def _pause(self, ctx: CancelContext | None) -> None:
        if self.latency:
            if ctx is None:
                time.sleep(self.latency)
            else:
                ctx.wait(self.latency)
        check_context(ctx)


# ----------------------------------------------------------------------
# HTTP-level fake
# ----------------------------------------------------------------------

_ENV_PATH = re.compile(r"^/repos/([^/]+)/([^/]+)/environments/([^/]+)$")
_SECRET_PATH = re.compile(r"^/repos/([^/]+)/([^/]+)/environments/([^/]+)/secrets/([^/]+)$")
_ORG_PATH = re.compile(r"^/orgs/([^/]+)$")
_TEAM_REPOS_PATH = re.compile(r"^/organizations/(\d+)/team/(\d+)/repos$")
_TEAM_REPO_PATH = re.compile(r"^/organizations/(\d+)/team/(\d+)/repos/([^/]+)/([^/]+)$")

_ROLE_NAMES = {"pull": "read", "push": "write"}


class FakeGitHub:
    """
    Fake GitHub API for one organization.

    Example:
        ```python
        fake = FakeGitHub(owner="acme")
        fake.add_repository("api")
        fake.add_environment("api", "prod", wait_timer=10, reviewers=[("Team", 42)])

        provider = fake.provider()
        env = provider.environments.get("api", "prod")
        assert fake.count("environments") == 1
        ```
    """

    def __init__(self, owner: str = "acme", org_id: int = 1000, page_size: int = 100) -> None:
        self.owner = owner
        self.org_id = org_id
        self.page_size = page_size
        self.latency = 0.0
        self._lock = threading.Lock()
        self.repositories: dict[str, dict[str, Any]] = {}
        self.environments: dict[str, dict[str, dict[str, Any]]] = {}
        self.secrets: dict[tuple[str, str], dict[str, dict[str, Any]]] = {}
        self.team_repositories: dict[int, dict[str, str]] = {}
        self.renamed: dict[str, str] = {}
        self._counts: Counter[str] = Counter()
        self._failures: Counter[str] = Counter()

    # Remote state ------------------------------------------------------

    def add_repository(self, name: str, archived: bool = False, **fields: Any) -> None:
        node = {
            "name": name,
            "description": "",
            "visibility": "PRIVATE",
            "isArchived": archived,
            "isPrivate": True,
            "defaultBranchRef": {"name": "main"},
            "url": f"https://github.com/{self.owner}/{name}",
            "sshUrl": f"git@github.com:{self.owner}/{name}.git",
            "svnUrl": f"https://github.com/{self.owner}/{name}",
        }
        node.update(fields)
        with self._lock:
            self.repositories[name] = node

    def add_environment(
        self,
        repo: str,
        name: str,
        wait_timer: int = 0,
        reviewers: list[tuple[str, int]] | None = None,
        can_admins_bypass: bool = True,
        prevent_self_review: bool = False,
        protected_branches: bool = False,
        custom_branch_policies: bool = False,
    ) -> None:
        node = {
            "name": name,
            "canAdminsBypass": can_admins_bypass,
            "waitTimer": wait_timer,
            "preventSelfReview": prevent_self_review,
            "reviewers": [{"type": kind, "id": rid} for kind, rid in reviewers or []],
            "deploymentBranchPolicy": {
                "protectedBranches": protected_branches,
                "customBranchPolicies": custom_branch_policies,
            },
        }
        with self._lock:
            self.environments.setdefault(repo, {})[name] = node

    def rename_repository(self, old: str, new: str) -> None:
        """Rename a repository; point lookups by the old name resolve to the new one."""
        with self._lock:
            node = self.repositories.pop(old)
            node.update(
                name=new,
                url=f"https://github.com/{self.owner}/{new}",
                sshUrl=f"git@github.com:{self.owner}/{new}.git",
                svnUrl=f"https://github.com/{self.owner}/{new}",
            )
            self.repositories[new] = node
            self.renamed[old] = new
            if old in self.environments:
                self.environments[new] = self.environments.pop(old)
            for grants in self.team_repositories.values():
                if old in grants:
                    grants[new] = grants.pop(old)

    def remove_environment(self, repo: str, name: str) -> None:
        with self._lock:
            self.environments.get(repo, {}).pop(name, None)

    def add_secret(
        self,
        repo: str,
        environment: str,
        name: str,
        visibility: str = "private",
        selected_teams: list[str] | None = None,
        selected_repos: list[str] | None = None,
    ) -> None:
        node = {
            "name": name,
            "createdAt": "2024-01-15T10:30:00Z",
            "updatedAt": "2024-01-16T10:30:00Z",
            "visibility": visibility.upper(),
            "selectedTeams": [{"name": t} for t in selected_teams or []],
            "selectedRepositories": [{"name": r} for r in selected_repos or []],
        }
        with self._lock:
            self.secrets.setdefault((repo, environment), {})[name] = node

    def grant_team(self, team_id: int, repo: str, permission: str = "pull") -> None:
        with self._lock:
            self.team_repositories.setdefault(team_id, {})[repo] = permission

    def revoke_team(self, team_id: int, repo: str) -> None:
        with self._lock:
            self.team_repositories.get(team_id, {}).pop(repo, None)

    # Failure injection and counters -------------------------------------

    def fail_next(self, kind: str, times: int = 1) -> None:
        """
        Make the next ``times`` requests of ``kind`` answer 502.

        Kinds: repositories, repository, environments, environment, secrets,
        secret, team_repositories, team_repository, organization.
        """
        with self._lock:
            self._failures[kind] += times

    def count(self, kind: str) -> int:
        """Number of requests of ``kind`` served (including failed ones)."""
        with self._lock:
            return self._counts[kind]

    def reset_counts(self) -> None:
        with self._lock:
            self._counts.clear()

    # Wiring ------------------------------------------------------------

    def http_client(self, base_url: str = "https://api.github.com") -> httpx.Client:
        return httpx.Client(base_url=base_url, transport=httpx.MockTransport(self.handler))

    def provider(self, cache_config: CacheConfig | None = None, org_id: int | None = None) -> GitHubProvider:
        """A GitHubProvider wired to this fake with retries disabled."""
        transport = HTTPTransport(
            base_url="https://api.github.com",
            token="test-token",
            retry_config=RetryConfig(max_retries=0),
            client=self.http_client(),
        )
        return GitHubProvider(
            owner=self.owner,
            token="test-token",
            cache_config=cache_config or CacheConfig(page_size=self.page_size),
            org_id=org_id,
            transport=transport,
        )

    # Request handling --------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.latency:
            time.sleep(self.latency)
        if request.url.path == "/graphql":
            return self._graphql(json.loads(request.content))
        return self._rest(request)

    def _take(self, kind: str) -> bool:
        """Count a request of ``kind``; True if it should fail."""
        with self._lock:
            self._counts[kind] += 1
            if self._failures[kind] > 0:
                self._failures[kind] -= 1
                return True
            return False

    def _page(self, items: list[Any], cursor: str | None, first: int) -> tuple[list[Any], dict[str, Any]]:
        offset = int(cursor) if cursor else 0
        chunk = items[offset:offset + first]
        next_offset = offset + len(chunk)
        has_next = next_offset < len(items)
        return chunk, {"hasNextPage": has_next, "endCursor": str(next_offset) if has_next else None}

    def _graphql(self, body: dict[str, Any]) -> httpx.Response:
        query = body["query"]
        variables = body.get("variables") or {}
        first = variables.get("first", 100)
        cursor = variables.get("cursor")

        if "organization(login" in query:
            if self._take("repositories"):
                return _error_response(502)
            with self._lock:
                items = list(self.repositories.values())
            nodes, page_info = self._page(items, cursor, first)
            return _graphql_data({"organization": {"repositories": {"nodes": nodes, "pageInfo": page_info}}})

        if "secrets(" in query:
            if self._take("secrets"):
                return _error_response(502)
            key = (variables["repoName"], variables["envName"])
            with self._lock:
                env_exists = key[1] in self.environments.get(key[0], {})
                items = list(self.secrets.get(key, {}).values())
            if not env_exists:
                return _graphql_not_found("environment")
            nodes, page_info = self._page(items, cursor, first)
            return _graphql_data(
                {"repository": {"environment": {"secrets": {"nodes": nodes, "pageInfo": page_info}}}}
            )

        if "environments(" in query:
            if self._take("environments"):
                return _error_response(502)
            repo = variables["name"]
            with self._lock:
                repo_exists = repo in self.repositories
                items = list(self.environments.get(repo, {}).values())
            if not repo_exists:
                return _graphql_not_found("repository")
            nodes, page_info = self._page(items, cursor, first)
            return _graphql_data({"repository": {"environments": {"nodes": nodes, "pageInfo": page_info}}})

        if self._take("repository"):
            return _error_response(502)
        with self._lock:
            name = self.renamed.get(variables["name"], variables["name"])
            node = self.repositories.get(name)
        if node is None:
            return _graphql_not_found("repository")
        return _graphql_data({"repository": node})

    def _rest(self, request: httpx.Request) -> httpx.Response:
        raw = request.url.raw_path.decode().split("?", 1)[0]
        segments = [unquote(s) for s in raw.split("/")]
        method = request.method

        if _SECRET_PATH.match(raw):
            if self._take("secret"):
                return _error_response(502)
            repo, env, name = segments[3], segments[5], segments[7]
            with self._lock:
                node = self.secrets.get((repo, env), {}).get(name)
            if node is None:
                return _error_response(404)
            return httpx.Response(
                200,
                json={"name": node["name"], "created_at": node["createdAt"], "updated_at": node["updatedAt"]},
            )

        if _ENV_PATH.match(raw):
            repo, env = segments[3], segments[5]
            if method == "DELETE":
                self._take("delete_environment")
                with self._lock:
                    existed = self.environments.get(repo, {}).pop(env, None) is not None
                return httpx.Response(204) if existed else _error_response(404)
            if self._take("environment"):
                return _error_response(502)
            with self._lock:
                node = self.environments.get(repo, {}).get(env)
            if node is None:
                return _error_response(404)
            return httpx.Response(200, json=_rest_environment(node))

        if m := _ORG_PATH.match(raw):
            self._take("organization")
            if m.group(1) != self.owner:
                return _error_response(404)
            return httpx.Response(200, json={"login": self.owner, "id": self.org_id})

        if m := _TEAM_REPOS_PATH.match(raw):
            if self._take("team_repositories"):
                return _error_response(502)
            if int(m.group(1)) != self.org_id:
                return _error_response(404)
            team_id = int(m.group(2))
            per_page = int(request.url.params.get("per_page", "30"))
            page = int(request.url.params.get("page", "1"))
            with self._lock:
                grants = list(self.team_repositories.get(team_id, {}).items())
            chunk = grants[(page - 1) * per_page:page * per_page]
            headers = {}
            if page * per_page < len(grants):
                next_url = f"https://api.github.com{raw}?per_page={per_page}&page={page + 1}"
                headers["Link"] = f'<{next_url}>; rel="next"'
            body = [{"name": repo, "role_name": _ROLE_NAMES.get(perm, perm)} for repo, perm in chunk]
            return httpx.Response(200, json=body, headers=headers)

        if m := _TEAM_REPO_PATH.match(raw):
            team_id, repo = int(m.group(2)), segments[7]
            if method == "DELETE":
                self._take("delete_team_repository")
                with self._lock:
                    existed = self.team_repositories.get(team_id, {}).pop(repo, None) is not None
                return httpx.Response(204) if existed else _error_response(404)
            if self._take("team_repository"):
                return _error_response(502)
            with self._lock:
                permission = self.team_repositories.get(team_id, {}).get(repo)
            if permission is None:
                return _error_response(404)
            return httpx.Response(200, json={"name": repo, "role_name": _ROLE_NAMES.get(permission, permission)})

        return _error_response(404)


def _graphql_data(data: dict[str, Any]) -> httpx.Response:
    return httpx.Response(200, json={"data": data})


def _graphql_not_found(what: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "data": None,
            "errors": [{"type": "NOT_FOUND", "message": f"Could not resolve to a {what}."}],
        },
    )


def _error_response(status: int) -> httpx.Response:
    messages = {404: "Not Found", 502: "Bad Gateway"}
    return httpx.Response(status, json={"message": messages.get(status, f"HTTP {status}")})


def _rest_environment(node: dict[str, Any]) -> dict[str, Any]:
    rules: list[dict[str, Any]] = []
    if node["reviewers"]:
        rules.append(
            {
                "type": "required_reviewers",
                "prevent_self_review": node["preventSelfReview"],
                "reviewers": [{"type": r["type"], "reviewer": {"id": r["id"]}} for r in node["reviewers"]],
            }
        )
    if node["waitTimer"]:
        rules.append({"type": "wait_timer", "wait_timer": node["waitTimer"]})
    policy = node["deploymentBranchPolicy"]
    return {
        "name": node["name"],
        "can_admins_bypass": node["canAdminsBypass"],
        "protection_rules": rules,
        "deployment_branch_policy": {
            "protected_branches": policy["protectedBranches"],
            "custom_branch_policies": policy["customBranchPolicies"],
        },
    }
