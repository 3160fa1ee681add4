"""Deployment environments resource client."""

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from ghcache.exceptions import NotFoundError
from ghcache.types.environments import (
    BranchPolicy,
    EnvironmentEntry,
    ProtectionRule,
    Reviewer,
    ReviewerKind,
)
from ghcache.types.page import Page

if TYPE_CHECKING:
    from ghcache.context import CancelContext
    from ghcache.transport import HTTPTransport


LIST_QUERY = """
query($owner: String!, $name: String!, $first: Int!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    environments(first: $first, after: $cursor) {
      nodes {
        name
        canAdminsBypass
        waitTimer
        preventSelfReview
        reviewers { type id }
        deploymentBranchPolicy { protectedBranches customBranchPolicies }
        protectionRules(first: 20) {
          nodes { type timeout preventSelfReview reviewers { type id } }
        }
      }
      pageInfo { hasNextPage endCursor }
    }
  }
}
"""

_REVIEWER_KINDS = {kind.value: kind for kind in ReviewerKind}


def environment_path(owner: str, repo: str, environment: str) -> str:
    """REST path of an environment; the name is path-escaped."""
    return f"/repos/{owner}/{repo}/environments/{quote(environment, safe='')}"


def _parse_reviewers(items: list[dict[str, Any]] | None) -> tuple[Reviewer, ...]:
    """Keep Team and User reviewers with an ID, in order."""
    reviewers = []
    for item in items or []:
        kind = _REVIEWER_KINDS.get(item.get("type") or "")
        reviewer_id = item.get("id")
        if reviewer_id is None and isinstance(item.get("reviewer"), dict):
            reviewer_id = item["reviewer"].get("id")
        if kind is None or reviewer_id is None:
            continue
        reviewers.append(Reviewer(kind=kind, id=int(reviewer_id)))
    return tuple(reviewers)


def _parse_branch_policy(data: dict[str, Any] | None) -> BranchPolicy | None:
    if data is None:
        return None
    return BranchPolicy(
        protected_branches=bool(data.get("protectedBranches", data.get("protected_branches"))),
        custom_branch_policies=bool(
            data.get("customBranchPolicies", data.get("custom_branch_policies"))
        ),
    )


def _parse_environment(data: dict[str, Any]) -> EnvironmentEntry:
    """Parse a GraphQL environment node."""
    rules = tuple(
        ProtectionRule(
            type=rule.get("type") or "",
            wait_timer=int(rule.get("timeout") or 0),
            prevent_self_review=bool(rule.get("preventSelfReview")),
            reviewers=_parse_reviewers(rule.get("reviewers")),
        )
        for rule in (data.get("protectionRules") or {}).get("nodes") or []
    )
    return EnvironmentEntry(
        name=data["name"],
        can_admins_bypass=bool(data.get("canAdminsBypass", True)),
        wait_timer=int(data.get("waitTimer") or 0),
        prevent_self_review=bool(data.get("preventSelfReview")),
        reviewers=_parse_reviewers(data.get("reviewers")),
        # The bulk path always reports a policy, even an all-false one
        deployment_branch_policy=_parse_branch_policy(data.get("deploymentBranchPolicy") or {}),
        protection_rules=rules,
    )


def _parse_rest_environment(data: dict[str, Any]) -> EnvironmentEntry:
    """
    Parse the REST single-environment response.

    Only the reviewers of required_reviewers rules are read; wait timer,
    self-review prevention and protection rules keep their defaults.
    """
    reviewer_items: list[dict[str, Any]] = []
    for rule in data.get("protection_rules") or []:
        if rule.get("type") == "required_reviewers":
            reviewer_items.extend(rule.get("reviewers") or [])
    return EnvironmentEntry(
        name=data["name"],
        can_admins_bypass=bool(data.get("can_admins_bypass", True)),
        reviewers=_parse_reviewers(reviewer_items),
        deployment_branch_policy=_parse_branch_policy(data.get("deployment_branch_policy")) or BranchPolicy(),
    )


class EnvironmentsClient:
    """Client for a repository's deployment environments."""

    def __init__(self, transport: "HTTPTransport", owner: str, page_size: int = 100) -> None:
        self.transport = transport
        self.owner = owner
        self.page_size = page_size

    def list_page(
        self,
        repo: str,
        cursor: str | None = None,
        ctx: "CancelContext | None" = None,
    ) -> Page[EnvironmentEntry]:
        """
        Fetch one page of a repository's environments.

        Args:
            repo: Repository name (the cache scope)
            cursor: ``endCursor`` of the previous page, None for the first page
            ctx: Optional cancellation context

        Returns:
            Page of EnvironmentEntry
        """
        data = self.transport.graphql(
            LIST_QUERY,
            {"owner": self.owner, "name": repo, "first": self.page_size, "cursor": cursor},
            ctx=ctx,
        )
        connection = (data.get("repository") or {}).get("environments") or {}
        page_info = connection.get("pageInfo") or {}
        return Page(
            records=[_parse_environment(node) for node in connection.get("nodes") or []],
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )

    def get(
        self,
        repo: str,
        name: str,
        ctx: "CancelContext | None" = None,
    ) -> EnvironmentEntry | None:
        """
        Fetch a single environment through the REST API.

        Returns:
            The entry, or None if the environment does not exist
        """
        try:
            data = self.transport.rest_request(
                "GET", environment_path(self.owner, repo, name), ctx=ctx
            )
        except NotFoundError:
            return None
        return _parse_rest_environment(data)

    def delete(self, repo: str, name: str, ctx: "CancelContext | None" = None) -> bool:
        """
        Delete an environment.

        Returns:
            False if it was already gone, True otherwise
        """
        try:
            self.transport.rest_request("DELETE", environment_path(self.owner, repo, name), ctx=ctx)
        except NotFoundError:
            return False
        return True
