"""Deployment environment cache entries."""

from dataclasses import dataclass
from enum import Enum


class ReviewerKind(str, Enum):
    """Kind of a required reviewer."""

    TEAM = "Team"
    USER = "User"


@dataclass(frozen=True)
class Reviewer:
    """A team or user that may approve deployments."""

    kind: ReviewerKind
    id: int


@dataclass(frozen=True)
class BranchPolicy:
    """Deployment branch policy of an environment."""

    protected_branches: bool = False
    custom_branch_policies: bool = False


@dataclass(frozen=True)
class ProtectionRule:
    """A protection rule attached to an environment."""

    type: str
    wait_timer: int = 0
    prevent_self_review: bool = False
    reviewers: tuple[Reviewer, ...] = ()


@dataclass(frozen=True)
class EnvironmentEntry:
    """
    Environment information, keyed by name within a repository.

    Entries built by the single-environment REST fallback cannot see
    ``wait_timer``, ``prevent_self_review`` or protection rules and carry
    their defaults.
    """

    name: str
    can_admins_bypass: bool = True
    wait_timer: int = 0
    prevent_self_review: bool = False
    reviewers: tuple[Reviewer, ...] = ()
    deployment_branch_policy: BranchPolicy | None = None
    protection_rules: tuple[ProtectionRule, ...] = ()

    def reviewer_ids(self, kind: ReviewerKind) -> list[int]:
        """IDs of the reviewers of the given kind, in order."""
        return [r.id for r in self.reviewers if r.kind == kind]
