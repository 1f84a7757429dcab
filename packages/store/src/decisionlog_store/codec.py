"""JSON-friendly dict codec for the entity model.

Shared by every backend that serializes entities (SQLite rows, the Gist
document). Timestamps travel as ISO-8601 strings, enums as their values.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from decisionlog_store.models import (
    Branch,
    BranchStatus,
    Commit,
    CommitType,
    DecisionRecord,
    Issue,
    IssueStatus,
    PullRequest,
    PullRequestStatus,
    Review,
    ReviewVerdict,
)

ISSUE = "issue"
BRANCH = "branch"
PULL_REQUEST = "pull_request"
DECISION = "decision"

KINDS = (ISSUE, BRANCH, PULL_REQUEST, DECISION)

_TYPES: dict[type, str] = {
    Issue: ISSUE,
    Branch: BRANCH,
    PullRequest: PULL_REQUEST,
    DecisionRecord: DECISION,
}


def kind_of(entity) -> str:
    try:
        return _TYPES[type(entity)]
    except KeyError:
        raise TypeError(f"Not a storable entity: {type(entity).__name__}") from None


def _ts(value: datetime) -> str:
    return value.isoformat()


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _commit_to_dict(c: Commit) -> dict:
    return {
        "id": c.id,
        "type": c.type.value,
        "author_id": c.author_id,
        "message": c.message,
        "timestamp": _ts(c.timestamp),
        "replies_to": c.replies_to,
        "tags": list(c.tags),
    }


def _commit_from_dict(d: dict) -> Commit:
    return Commit(
        id=d["id"],
        type=CommitType(d.get("type", "NONE")),
        author_id=d.get("author_id", ""),
        message=d.get("message", ""),
        timestamp=_parse_ts(d["timestamp"]),
        replies_to=d.get("replies_to"),
        tags=tuple(d.get("tags", [])),
    )


def _review_to_dict(r: Review) -> dict:
    return {
        "id": r.id,
        "reviewer_id": r.reviewer_id,
        "comment": r.comment,
        "verdict": r.verdict.value,
        "created_at": _ts(r.created_at),
    }


def _review_from_dict(d: dict) -> Review:
    return Review(
        id=d["id"],
        reviewer_id=d.get("reviewer_id", ""),
        comment=d.get("comment", ""),
        verdict=ReviewVerdict(d.get("verdict", "COMMENT")),
        created_at=_parse_ts(d["created_at"]),
    )


def to_dict(entity) -> dict[str, Any]:
    """Serialize any storable entity to a plain dict."""
    if isinstance(entity, Issue):
        return {
            "id": entity.id,
            "title": entity.title,
            "author_id": entity.author_id,
            "status": entity.status.value,
            "created_at": _ts(entity.created_at),
            "branch_ids": list(entity.branch_ids),
            "description": entity.description,
        }
    if isinstance(entity, Branch):
        return {
            "id": entity.id,
            "name": entity.name,
            "issue_id": entity.issue_id,
            "status": entity.status.value,
            "created_at": _ts(entity.created_at),
            "commits": [_commit_to_dict(c) for c in entity.commits],
            "description": entity.description,
            "created_by": entity.created_by,
        }
    if isinstance(entity, PullRequest):
        return {
            "id": entity.id,
            "title": entity.title,
            "description": entity.description,
            "branch_ids": list(entity.branch_ids),
            "target": entity.target,
            "issue_id": entity.issue_id,
            "author_id": entity.author_id,
            "status": entity.status.value,
            "created_at": _ts(entity.created_at),
            "reviews": [_review_to_dict(r) for r in entity.reviews],
        }
    if isinstance(entity, DecisionRecord):
        return {
            "id": entity.id,
            "issue_id": entity.issue_id,
            "issue_title": entity.issue_title,
            "team_path": entity.team_path,
            "decision": entity.decision,
            "decision_maker": entity.decision_maker,
            "decision_opinion": entity.decision_opinion,
            "decision_reasons": list(entity.decision_reasons),
            "pr_rationale": list(entity.pr_rationale),
            "evidence_summary": list(entity.evidence_summary),
            "evidence_commit_ids": list(entity.evidence_commit_ids),
            "merged_branch_ids": list(entity.merged_branch_ids),
            "pr_id": entity.pr_id,
            "created_at": _ts(entity.created_at),
            "reviews": [_review_to_dict(r) for r in entity.reviews],
            "digest": list(entity.digest),
        }
    raise TypeError(f"Not a storable entity: {type(entity).__name__}")


def from_dict(kind: str, d: dict):
    """Rebuild an entity of ``kind`` from the output of to_dict()."""
    if kind == ISSUE:
        return Issue(
            id=d["id"],
            title=d.get("title", ""),
            author_id=d.get("author_id", ""),
            status=IssueStatus(d.get("status", "OPEN")),
            created_at=_parse_ts(d["created_at"]),
            branch_ids=tuple(d.get("branch_ids", [])),
            description=d.get("description", ""),
        )
    if kind == BRANCH:
        return Branch(
            id=d["id"],
            name=d.get("name", ""),
            issue_id=d["issue_id"],
            status=BranchStatus(d.get("status", "ACTIVE")),
            created_at=_parse_ts(d["created_at"]),
            commits=tuple(_commit_from_dict(c) for c in d.get("commits", [])),
            description=d.get("description", ""),
            created_by=d.get("created_by", ""),
        )
    if kind == PULL_REQUEST:
        return PullRequest(
            id=d["id"],
            title=d.get("title", ""),
            description=d.get("description", ""),
            branch_ids=tuple(d.get("branch_ids", [])),
            target=d.get("target", "main"),
            issue_id=d["issue_id"],
            author_id=d.get("author_id", ""),
            status=PullRequestStatus(d.get("status", "OPEN")),
            created_at=_parse_ts(d["created_at"]),
            reviews=tuple(_review_from_dict(r) for r in d.get("reviews", [])),
        )
    if kind == DECISION:
        return DecisionRecord(
            id=d["id"],
            issue_id=d["issue_id"],
            issue_title=d.get("issue_title", ""),
            team_path=d.get("team_path", ""),
            decision=d.get("decision", ""),
            decision_maker=d.get("decision_maker", ""),
            decision_opinion=d.get("decision_opinion", ""),
            decision_reasons=tuple(d.get("decision_reasons", [])),
            pr_rationale=tuple(d.get("pr_rationale", [])),
            evidence_summary=tuple(d.get("evidence_summary", [])),
            evidence_commit_ids=tuple(d.get("evidence_commit_ids", [])),
            merged_branch_ids=tuple(d.get("merged_branch_ids", [])),
            pr_id=d.get("pr_id", ""),
            created_at=_parse_ts(d["created_at"]),
            reviews=tuple(_review_from_dict(r) for r in d.get("reviews", [])),
            digest=tuple(d.get("digest", [])),
        )
    raise ValueError(f"Unknown entity kind: {kind!r}")
