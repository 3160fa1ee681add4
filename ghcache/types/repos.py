"""Repository cache entries."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SecurityAnalysis:
    """Security and analysis settings of a repository."""

    advanced_security: bool = False
    vulnerability_alerts: bool = False


@dataclass(frozen=True)
class RepositoryEntry:
    """Repository information, keyed by name within an organization."""

    name: str
    description: str = ""
    visibility: str = ""  # "PUBLIC", "PRIVATE" or "INTERNAL"
    is_archived: bool = False
    is_private: bool = False
    topics: tuple[str, ...] = ()
    default_branch: str = ""
    homepage_url: str = ""
    has_issues: bool = False
    has_discussions: bool = False
    has_projects: bool = False
    has_wiki: bool = False
    is_template: bool = False
    allow_auto_merge: bool = False
    allow_merge_commit: bool = False
    allow_rebase_merge: bool = False
    allow_squash_merge: bool = False
    allow_update_branch: bool = False
    allow_forking: bool = False
    delete_branch_on_merge: bool = False
    web_commit_signoff_required: bool = False
    merge_commit_message: str = ""
    merge_commit_title: str = ""
    squash_merge_commit_message: str = ""
    squash_merge_commit_title: str = ""
    fork: bool = False
    parent_owner: str = ""
    parent_name: str = ""
    template_owner: str = ""
    template_repo: str = ""
    html_url: str = ""
    ssh_url: str = ""
    git_url: str = ""
    svn_url: str = ""
    primary_language: str = ""
    security_analysis: SecurityAnalysis = SecurityAnalysis()
    has_pages: bool = False

    @property
    def vulnerability_alerts(self) -> bool:
        return self.security_analysis.vulnerability_alerts
