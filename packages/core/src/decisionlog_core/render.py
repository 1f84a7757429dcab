"""Plain-text / markdown export of a decision record."""

from __future__ import annotations

from typing import Mapping

from decisionlog_store.models import DecisionRecord

_RULE = "─" * 40


def _bullets(items) -> list[str]:
    return [f"  - {item}" for item in items] or ["  -"]


def render_decision_record(record: DecisionRecord, names: Mapping[str, str] | None = None) -> str:
    """Render ``record`` for copy-paste into a wiki or chat.

    Every field value appears verbatim. ``names`` optionally maps actor ids
    to display names for the decision maker and reviewers.
    """
    names = names or {}

    def who(actor_id: str) -> str:
        return names.get(actor_id, actor_id)

    lines = [
        _RULE,
        "Decision Record",
        _RULE,
        f"Issue: {record.issue_title} ({record.issue_id})",
    ]
    if record.team_path:
        lines.append(record.team_path)
    lines += [
        f"Decision maker: {who(record.decision_maker)}",
        f"Decided: {record.created_at.isoformat()}",
        "",
        "Decision:",
        f"  {record.decision}",
        "",
        "Decision opinion:",
        f"  {record.decision_opinion}",
        "  Evidence:",
        *[f"    - {message}" for message in record.evidence_summary],
        "",
        "Decision reasons (decision maker):",
        *_bullets(record.decision_reasons),
    ]
    if record.reviews:
        lines += ["", "Reviews:"]
        lines += [f"  - [{r.verdict.value}] {who(r.reviewer_id)}: {r.comment}" for r in record.reviews]
    lines += [
        "",
        "Rationale (PR author):",
        *_bullets(record.pr_rationale),
    ]
    if record.digest:
        lines += ["", "Digest:", *_bullets(record.digest)]
    lines += [
        "",
        f"PR: {record.pr_id}  Branches: {', '.join(record.merged_branch_ids)}",
        _RULE,
    ]
    return "\n".join(lines)
