"""Decision record synthesis.

Turns a pull request that is being merged, plus the merging actor's input,
into the immutable DecisionRecord. No store access and no clock of its own:
the caller passes the id and timestamp, so the same inputs always give the
same record.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Iterable, Sequence

from decisionlog_core.ledger import evidence_set, select_evidence
from decisionlog_store.models import Branch, DecisionRecord, Issue, PullRequest

_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")


def split_rationale(description: str) -> tuple[str, ...]:
    """Split a PR description into discrete rationale lines.

    Leading bullet or numbering markers are removed; blank lines dropped.
    """
    lines = []
    for raw in (description or "").splitlines():
        line = _BULLET_RE.sub("", raw).strip()
        if line:
            lines.append(line)
    return tuple(lines)


def order_branches(pr: PullRequest, branches: Iterable[Branch]) -> list[Branch]:
    """Return the PR's source branches in the PR's own order."""
    by_id = {b.id: b for b in branches}
    return [by_id[bid] for bid in pr.branch_ids if bid in by_id]


def synthesize(
    record_id: str,
    created_at: datetime,
    pr: PullRequest,
    issue: Issue,
    branches: Sequence[Branch],
    actor_id: str,
    selected_commit_ids: Iterable[str],
    decision: str,
    decision_reasons: Sequence[str],
    decision_opinion: str,
    team_path: str = "",
    digest: Sequence[str] = (),
) -> DecisionRecord:
    evidence = select_evidence(evidence_set(order_branches(pr, branches)), selected_commit_ids)
    return DecisionRecord(
        id=record_id,
        issue_id=issue.id,
        issue_title=issue.title,
        team_path=team_path,
        decision=decision,
        decision_maker=actor_id,
        decision_opinion=decision_opinion,
        decision_reasons=tuple(decision_reasons),
        pr_rationale=split_rationale(pr.description),
        evidence_summary=tuple(c.message for c in evidence),
        evidence_commit_ids=tuple(c.id for c in evidence),
        merged_branch_ids=pr.branch_ids,
        pr_id=pr.id,
        created_at=created_at,
        reviews=pr.reviews,
        digest=tuple(digest),
    )
