"""Environment secrets resource client."""

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from ghcache.clients.environments import environment_path
from ghcache.exceptions import NotFoundError
from ghcache.types.page import Page
from ghcache.types.secrets import EnvironmentSecretEntry, SecretVisibility

if TYPE_CHECKING:
    from ghcache.context import CancelContext
    from ghcache.transport import HTTPTransport


LIST_QUERY = """
query($owner: String!, $repoName: String!, $envName: String!, $first: Int!, $cursor: String) {
  repository(owner: $owner, name: $repoName) {
    environment(name: $envName) {
      secrets(first: $first, after: $cursor) {
        nodes {
          name
          createdAt
          updatedAt
          visibility
          selectedRepositories { name }
          selectedTeams { name }
        }
        pageInfo { hasNextPage endCursor }
      }
    }
  }
}
"""


def _parse_visibility(value: str | None) -> SecretVisibility:
    try:
        return SecretVisibility((value or "private").lower())
    except ValueError:
        return SecretVisibility.PRIVATE


def _parse_secret(data: dict[str, Any]) -> EnvironmentSecretEntry:
    """Parse a GraphQL secret node or a REST secret object."""
    return EnvironmentSecretEntry(
        name=data["name"],
        created_at=data.get("createdAt") or data.get("created_at") or "",
        updated_at=data.get("updatedAt") or data.get("updated_at") or "",
        visibility=_parse_visibility(data.get("visibility")),
        selected_teams=tuple(t["name"] for t in data.get("selectedTeams") or []),
        selected_repos=tuple(r["name"] for r in data.get("selectedRepositories") or []),
    )


class EnvironmentSecretsClient:
    """Client for the secrets of one repository environment."""

    def __init__(self, transport: "HTTPTransport", owner: str, page_size: int = 100) -> None:
        self.transport = transport
        self.owner = owner
        self.page_size = page_size

    def list_page(
        self,
        scope: tuple[str, str],
        cursor: str | None = None,
        ctx: "CancelContext | None" = None,
    ) -> Page[EnvironmentSecretEntry]:
        """
        Fetch one page of an environment's secrets.

        Args:
            scope: (repository name, environment name)
            cursor: ``endCursor`` of the previous page, None for the first page
            ctx: Optional cancellation context
        """
        repo, environment = scope
        data = self.transport.graphql(
            LIST_QUERY,
            {
                "owner": self.owner,
                "repoName": repo,
                "envName": environment,
                "first": self.page_size,
                "cursor": cursor,
            },
            ctx=ctx,
        )
        env = (data.get("repository") or {}).get("environment") or {}
        connection = env.get("secrets") or {}
        page_info = connection.get("pageInfo") or {}
        return Page(
            records=[_parse_secret(node) for node in connection.get("nodes") or []],
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )

    def get(
        self,
        scope: tuple[str, str],
        name: str,
        ctx: "CancelContext | None" = None,
    ) -> EnvironmentSecretEntry | None:
        """
        Fetch a single secret's metadata through the REST API.

        Environment secrets have no selection lists over REST, so the entry is
        private with empty selections.
        """
        repo, environment = scope
        path = f"{environment_path(self.owner, repo, environment)}/secrets/{quote(name, safe='')}"
        try:
            data = self.transport.rest_request("GET", path, ctx=ctx)
        except NotFoundError:
            return None
        return _parse_secret(data)
