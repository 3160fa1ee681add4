"""Repositories resource client."""

from typing import TYPE_CHECKING, Any

from ghcache.exceptions import NotFoundError
from ghcache.types.page import Page
from ghcache.types.repos import RepositoryEntry, SecurityAnalysis

if TYPE_CHECKING:
    from ghcache.context import CancelContext
    from ghcache.transport import HTTPTransport


REPOSITORY_FIELDS = """
    name
    description
    visibility
    isArchived
    isPrivate
    repositoryTopics(first: 100) { nodes { topic { name } } }
    defaultBranchRef { name }
    homepageUrl
    hasIssuesEnabled
    hasDiscussionsEnabled
    hasProjectsEnabled
    hasWikiEnabled
    isTemplate
    autoMergeAllowed
    mergeCommitAllowed
    rebaseMergeAllowed
    squashMergeAllowed
    allowUpdateBranch
    forkingAllowed
    deleteBranchOnMerge
    webCommitSignoffRequired
    mergeCommitMessage
    mergeCommitTitle
    squashMergeCommitMessage
    squashMergeCommitTitle
    isFork
    parent { name owner { login } }
    templateRepository { name owner { login } }
    url
    sshUrl
    svnUrl
    primaryLanguage { name }
    hasVulnerabilityAlertsEnabled
"""

LIST_QUERY = """
query($login: String!, $first: Int!, $cursor: String) {
  organization(login: $login) {
    repositories(first: $first, after: $cursor) {
      nodes { %s }
      pageInfo { hasNextPage endCursor }
    }
  }
}
""" % REPOSITORY_FIELDS

GET_QUERY = """
query($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) { %s }
}
""" % REPOSITORY_FIELDS


def _nested(data: dict[str, Any] | None, *path: str) -> Any:
    """Walk nested GraphQL objects, returning "" when any level is null."""
    value: Any = data
    for key in path:
        if not isinstance(value, dict):
            return ""
        value = value.get(key)
    return value if value is not None else ""


def _parse_repository(data: dict[str, Any]) -> RepositoryEntry:
    """Parse a GraphQL repository node."""
    topics = tuple(
        node["topic"]["name"]
        for node in (data.get("repositoryTopics") or {}).get("nodes") or []
    )
    vulnerability_alerts = bool(data.get("hasVulnerabilityAlertsEnabled"))
    return RepositoryEntry(
        name=data["name"],
        description=data.get("description") or "",
        visibility=data.get("visibility") or "",
        is_archived=bool(data.get("isArchived")),
        is_private=bool(data.get("isPrivate")),
        topics=topics,
        default_branch=_nested(data, "defaultBranchRef", "name"),
        homepage_url=data.get("homepageUrl") or "",
        has_issues=bool(data.get("hasIssuesEnabled")),
        has_discussions=bool(data.get("hasDiscussionsEnabled")),
        has_projects=bool(data.get("hasProjectsEnabled")),
        has_wiki=bool(data.get("hasWikiEnabled")),
        is_template=bool(data.get("isTemplate")),
        allow_auto_merge=bool(data.get("autoMergeAllowed")),
        allow_merge_commit=bool(data.get("mergeCommitAllowed")),
        allow_rebase_merge=bool(data.get("rebaseMergeAllowed")),
        allow_squash_merge=bool(data.get("squashMergeAllowed")),
        allow_update_branch=bool(data.get("allowUpdateBranch")),
        allow_forking=bool(data.get("forkingAllowed")),
        delete_branch_on_merge=bool(data.get("deleteBranchOnMerge")),
        web_commit_signoff_required=bool(data.get("webCommitSignoffRequired")),
        merge_commit_message=data.get("mergeCommitMessage") or "",
        merge_commit_title=data.get("mergeCommitTitle") or "",
        squash_merge_commit_message=data.get("squashMergeCommitMessage") or "",
        squash_merge_commit_title=data.get("squashMergeCommitTitle") or "",
        fork=bool(data.get("isFork")),
        parent_owner=_nested(data, "parent", "owner", "login"),
        parent_name=_nested(data, "parent", "name"),
        template_owner=_nested(data, "templateRepository", "owner", "login"),
        template_repo=_nested(data, "templateRepository", "name"),
        html_url=data.get("url") or "",
        ssh_url=data.get("sshUrl") or "",
        # GraphQL has no git:// URL; it is derived from the https one
        git_url=_git_url(data.get("url") or ""),
        svn_url=data.get("svnUrl") or "",
        primary_language=_nested(data, "primaryLanguage", "name"),
        # advancedSecurityEnabled and hasPages are not part of the GraphQL
        # schema; they are only set when a caller supplies them.
        security_analysis=SecurityAnalysis(
            advanced_security=bool(data.get("advancedSecurityEnabled")),
            vulnerability_alerts=vulnerability_alerts,
        ),
        has_pages=bool(data.get("hasPages")),
    )


def _git_url(html_url: str) -> str:
    if not html_url.startswith("https://"):
        return ""
    return "git://" + html_url[len("https://"):] + ".git"


class RepositoriesClient:
    """Client for the organization's repositories."""

    def __init__(self, transport: "HTTPTransport", owner: str, page_size: int = 100) -> None:
        """
        Initialize the repositories client.

        Args:
            transport: HTTP transport for making requests
            owner: Organization login
            page_size: Records per list page
        """
        self.transport = transport
        self.owner = owner
        self.page_size = page_size

    def list_page(
        self,
        login: str,
        cursor: str | None = None,
        ctx: "CancelContext | None" = None,
    ) -> Page[RepositoryEntry]:
        """
        Fetch one page of an organization's repositories.

        Args:
            login: Organization login (the cache scope)
            cursor: ``endCursor`` of the previous page, None for the first page
            ctx: Optional cancellation context

        Returns:
            Page of RepositoryEntry
        """
        data = self.transport.graphql(
            LIST_QUERY,
            {"login": login, "first": self.page_size, "cursor": cursor},
            ctx=ctx,
        )
        connection = (data.get("organization") or {}).get("repositories") or {}
        page_info = connection.get("pageInfo") or {}
        return Page(
            records=[_parse_repository(node) for node in connection.get("nodes") or []],
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )

    def get(
        self,
        login: str,
        name: str,
        ctx: "CancelContext | None" = None,
    ) -> RepositoryEntry | None:
        """
        Fetch a single repository.

        Returns:
            The entry, or None if the repository does not exist
        """
        try:
            data = self.transport.graphql(GET_QUERY, {"owner": login, "name": name}, ctx=ctx)
        except NotFoundError:
            return None
        node = data.get("repository")
        if node is None:
            return None
        return _parse_repository(node)
