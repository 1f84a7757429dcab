"""Decision log entity model.

Pure data: every entity is a frozen dataclass and every collection a tuple,
so a value handed out by a store can never be mutated behind the store's
back. Transitions build new values with dataclasses.replace().

Decoupled from decisionlog_core so the store layer can be used on its own;
the workflow rules that keep these entities consistent live in core.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class IssueStatus(str, Enum):
    OPEN = "OPEN"
    REVIEW = "REVIEW"
    CLOSED = "CLOSED"


class BranchStatus(str, Enum):
    ACTIVE = "ACTIVE"
    MERGED = "MERGED"
    REJECTED = "REJECTED"


class CommitType(str, Enum):
    NONE = "NONE"
    INFO = "INFO"
    OPINION = "OPINION"
    QUESTION = "QUESTION"
    TODO = "TODO"


class PullRequestStatus(str, Enum):
    OPEN = "OPEN"
    MERGED = "MERGED"
    REJECTED = "REJECTED"


class ReviewVerdict(str, Enum):
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


@dataclass(frozen=True)
class Commit:
    """A single typed discussion entry inside a branch.

    A commit with ``replies_to`` set is a reply to a QUESTION commit of the
    same branch. Replies are always NONE-typed and cannot themselves be
    replied to.
    """

    id: str
    type: CommitType
    author_id: str
    message: str
    timestamp: datetime
    replies_to: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def is_reply(self) -> bool:
        return self.replies_to is not None


@dataclass(frozen=True)
class Branch:
    """A proposed option under exactly one issue."""

    id: str
    name: str
    issue_id: str
    status: BranchStatus
    created_at: datetime
    commits: tuple[Commit, ...] = ()
    description: str = ""
    created_by: str = ""


@dataclass(frozen=True)
class Issue:
    """A decision topic. ``branch_ids`` is kept in discussion order."""

    id: str
    title: str
    author_id: str
    status: IssueStatus
    created_at: datetime
    branch_ids: tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class Review:
    id: str
    reviewer_id: str
    comment: str
    verdict: ReviewVerdict
    created_at: datetime


@dataclass(frozen=True)
class PullRequest:
    """A proposal to resolve an issue with one or more of its branches."""

    id: str
    title: str
    description: str
    branch_ids: tuple[str, ...]
    target: str
    issue_id: str
    author_id: str
    status: PullRequestStatus
    created_at: datetime
    reviews: tuple[Review, ...] = ()

    @property
    def is_multi_branch(self) -> bool:
        return len(self.branch_ids) > 1


@dataclass(frozen=True)
class DecisionRecord:
    """The immutable artifact produced when a pull request is merged.

    ``issue_title`` and ``reviews`` are snapshots taken at merge time so the
    record reads the same no matter what happens to the issue later.
    """

    id: str
    issue_id: str
    issue_title: str
    team_path: str
    decision: str
    decision_maker: str
    decision_opinion: str
    decision_reasons: tuple[str, ...]
    pr_rationale: tuple[str, ...]
    evidence_summary: tuple[str, ...]
    evidence_commit_ids: tuple[str, ...]
    merged_branch_ids: tuple[str, ...]
    pr_id: str
    created_at: datetime
    reviews: tuple[Review, ...] = ()
    digest: tuple[str, ...] = field(default=())

    @property
    def merged_branch_id(self) -> str:
        return self.merged_branch_ids[0] if self.merged_branch_ids else ""
