"""Team repositories resource client."""

import threading
from typing import TYPE_CHECKING, Any

from ghcache.exceptions import NotFoundError, ValidationError
from ghcache.types.page import Page
from ghcache.types.teams import TeamRepositoryEntry

if TYPE_CHECKING:
    from ghcache.context import CancelContext
    from ghcache.transport import HTTPTransport


# Media type that makes the single team-repo endpoint return role_name
REPOSITORY_MEDIA_TYPE = "application/vnd.github.v3.repository+json"

# Highest permission first
_PERMISSION_ORDER = ("admin", "maintain", "push", "triage", "pull")

_PERMISSION_ALIASES = {
    "read": "pull",
    "write": "push",
}


def normalize_permission(role_name: str | None, permissions: dict[str, bool] | None = None) -> str:
    """
    Map a GitHub role or permission set onto pull/triage/push/maintain/admin.

    Some endpoints say "read"/"write" where others say "pull"/"push". Custom
    repository roles are passed through unchanged.
    """
    if role_name:
        return _PERMISSION_ALIASES.get(role_name, role_name)
    for permission in _PERMISSION_ORDER:
        if (permissions or {}).get(permission):
            return permission
    return ""


def _parse_team_repository(data: dict[str, Any]) -> TeamRepositoryEntry:
    return TeamRepositoryEntry(
        name=data["name"],
        permission=normalize_permission(data.get("role_name"), data.get("permissions")),
    )


class TeamRepositoriesClient:
    """Client for the repositories a team has access to."""

    def __init__(
        self,
        transport: "HTTPTransport",
        owner: str,
        org_id: int | None = None,
        page_size: int = 100,
    ) -> None:
        """
        Initialize the team repositories client.

        Args:
            transport: HTTP transport for making requests
            owner: Organization login
            org_id: Numeric organization ID (resolved on first use if None)
            page_size: Records per list page
        """
        self.transport = transport
        self.owner = owner
        self.page_size = page_size
        self._org_id = org_id
        self._org_id_lock = threading.Lock()

    def org_id(self, ctx: "CancelContext | None" = None) -> int:
        """Numeric ID of the organization, fetched once."""
        with self._org_id_lock:
            if self._org_id is None:
                data = self.transport.rest_request("GET", f"/orgs/{self.owner}", ctx=ctx)
                if "id" not in data:
                    raise ValidationError("MALFORMED_RESPONSE", f"organization {self.owner} has no id")
                self._org_id = int(data["id"])
            return self._org_id

    def _team_path(self, team_id: int, ctx: "CancelContext | None") -> str:
        return f"/organizations/{self.org_id(ctx)}/team/{team_id}/repos"

    def list_page(
        self,
        team_id: int,
        cursor: str | None = None,
        ctx: "CancelContext | None" = None,
    ) -> Page[TeamRepositoryEntry]:
        """
        Fetch one page of a team's repositories.

        Args:
            team_id: Numeric team ID (the cache scope)
            cursor: ``Link`` next URL of the previous page, None for the first page
            ctx: Optional cancellation context
        """
        path = self._team_path(team_id, ctx) if cursor is None else ""
        items, next_cursor = self.transport.rest_page(
            path,
            params={"per_page": self.page_size},
            cursor=cursor,
            ctx=ctx,
        )
        return Page(
            records=[_parse_team_repository(item) for item in items or []],
            has_next_page=next_cursor is not None,
            end_cursor=next_cursor,
        )

    def get(
        self,
        team_id: int,
        repo: str,
        ctx: "CancelContext | None" = None,
    ) -> TeamRepositoryEntry | None:
        """
        Check whether a team has access to a repository.

        Returns:
            The entry, or None if the team has no access (or either side is gone)
        """
        path = f"{self._team_path(team_id, ctx)}/{self.owner}/{repo}"
        try:
            data = self.transport.rest_request("GET", path, ctx=ctx, accept=REPOSITORY_MEDIA_TYPE)
        except NotFoundError:
            return None
        return TeamRepositoryEntry(
            name=data.get("name") or repo,
            permission=normalize_permission(data.get("role_name"), data.get("permissions")),
        )

    def delete(self, team_id: int, repo: str, ctx: "CancelContext | None" = None) -> bool:
        """
        Remove a team's access to a repository.

        Returns:
            False if the binding was already gone, True otherwise
        """
        path = f"{self._team_path(team_id, ctx)}/{self.owner}/{repo}"
        try:
            self.transport.rest_request("DELETE", path, ctx=ctx)
        except NotFoundError:
            return False
        return True
