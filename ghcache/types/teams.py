"""Team repository cache entries."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TeamRepositoryEntry:
    """A team's access to one repository, keyed by repository name."""

    name: str
    permission: str  # "pull", "triage", "push", "maintain" or "admin"
