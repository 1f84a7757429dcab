"""Pull request lifecycle.

    OPEN ──merge──▶ MERGED    (terminal)
      └───reject──▶ REJECTED  (terminal)

Pure transition functions over PullRequest values. Each one validates the
request against the current state and returns the next value, or raises
before anything changes. The coordinator decides what gets persisted.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Sequence

from decisionlog_core.errors import InvalidState, ValidationError
from decisionlog_store.models import (
    Branch,
    BranchStatus,
    Issue,
    IssueStatus,
    PullRequest,
    PullRequestStatus,
    Review,
)


def _require_open(pr: PullRequest, action: str) -> None:
    if pr.status != PullRequestStatus.OPEN:
        raise InvalidState(f"cannot {action} a non-open PR ({pr.id} is {pr.status.value})")


def default_title(branches: Sequence[Branch]) -> str:
    names = ", ".join(b.name for b in branches)
    return f"Multi: {names}" if len(branches) > 1 else names


def open_pull_request(
    pr_id: str,
    issue: Issue,
    branches: Sequence[Branch],
    author_id: str,
    rationale: str,
    now: datetime,
    title: str | None = None,
    target: str = "main",
) -> PullRequest:
    """Build a new OPEN pull request over ``branches`` (in the caller's order).

    ``branches`` must already be resolved from the requested ids; duplicate
    detection happens on the ids before resolution.
    """
    if not branches:
        raise ValidationError("a pull request needs at least one branch")
    if issue.status == IssueStatus.CLOSED:
        raise InvalidState(f"issue {issue.id} is closed")
    for branch in branches:
        if branch.issue_id != issue.id:
            raise ValidationError(f"branch {branch.name!r} does not belong to issue {issue.id}")
        if branch.status != BranchStatus.ACTIVE:
            raise InvalidState(f"branch {branch.name!r} is {branch.status.value}, only ACTIVE branches can be proposed")
    return PullRequest(
        id=pr_id,
        title=(title or "").strip() or default_title(branches),
        description=rationale,
        branch_ids=tuple(b.id for b in branches),
        target=target,
        issue_id=issue.id,
        author_id=author_id,
        status=PullRequestStatus.OPEN,
        created_at=now,
    )


def add_review(pr: PullRequest, review: Review) -> PullRequest:
    _require_open(pr, "review")
    if not review.comment.strip():
        raise ValidationError("review comment must not be blank")
    return replace(pr, reviews=pr.reviews + (review,))


def delete_review(pr: PullRequest, review_id: str) -> PullRequest:
    """Drop a review by id. Unknown ids are a no-op; status is never checked."""
    return replace(pr, reviews=tuple(r for r in pr.reviews if r.id != review_id))


def reject(pr: PullRequest) -> PullRequest:
    _require_open(pr, "reject")
    return replace(pr, status=PullRequestStatus.REJECTED)


def normalize_decision(
    decision_content: str,
    decision_reasons: Sequence[str],
    decision_opinion: str,
) -> tuple[str, tuple[str, ...], str]:
    """Validate the merging actor's input and return it stripped.

    Blank reasons are dropped; at least one must remain.
    """
    content = (decision_content or "").strip()
    opinion = (decision_opinion or "").strip()
    reasons = tuple(r.strip() for r in (decision_reasons or ()) if r and r.strip())
    if not content:
        raise ValidationError("decision content must not be empty")
    if not reasons:
        raise ValidationError("at least one decision reason is required")
    if not opinion:
        raise ValidationError("decision opinion must not be empty")
    return content, reasons, opinion


def merge(pr: PullRequest) -> PullRequest:
    _require_open(pr, "merge")
    return replace(pr, status=PullRequestStatus.MERGED)
