"""Tests for the plain-text decision record export."""

from datetime import datetime, timezone

from decisionlog_core.render import render_decision_record
from decisionlog_store.models import DecisionRecord, Review, ReviewVerdict

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _record(**overrides):
    fields = dict(
        id="dr-1",
        issue_id="iss-1",
        issue_title="배포를 언제 할까?",
        team_path="Platform > Backend",
        decision="내일 오전 배포 진행",
        decision_maker="dave",
        decision_opinion="deploy_tomorrow 의견 채택",
        decision_reasons=("안전성 우선",),
        pr_rationale=("둘 다 검토",),
        evidence_summary=("오늘 트래픽이 낮음", "내일 오전이 안전함"),
        evidence_commit_ids=("c-1", "c-2"),
        merged_branch_ids=("br-1", "br-2"),
        pr_id="pr-1",
        created_at=T0,
    )
    fields.update(overrides)
    return DecisionRecord(**fields)


def test_every_field_appears_verbatim():
    text = render_decision_record(_record())
    for value in (
        "배포를 언제 할까?",
        "Platform > Backend",
        "내일 오전 배포 진행",
        "deploy_tomorrow 의견 채택",
        "안전성 우선",
        "둘 다 검토",
        "오늘 트래픽이 낮음",
        "내일 오전이 안전함",
        "dave",
        "pr-1",
        "br-1, br-2",
    ):
        assert value in text


def test_opinion_set_apart_from_evidence():
    lines = render_decision_record(_record()).splitlines()
    start = lines.index("Decision opinion:")
    assert lines[start + 1 : start + 6] == [
        "  deploy_tomorrow 의견 채택",
        "  Evidence:",
        "    - 오늘 트래픽이 낮음",
        "    - 내일 오전이 안전함",
        "",
    ]


def test_no_evidence_leaves_label_empty():
    lines = render_decision_record(_record(evidence_summary=(), evidence_commit_ids=())).splitlines()
    start = lines.index("  Evidence:")
    assert lines[start - 1] == "  deploy_tomorrow 의견 채택"
    assert lines[start + 1] == ""


def test_names_map_actor_ids():
    text = render_decision_record(_record(), names={"dave": "Dave Kim"})
    assert "Decision maker: Dave Kim" in text


def test_reviews_section_only_when_present():
    assert "Reviews:" not in render_decision_record(_record())
    review = Review(id="rv-1", reviewer_id="carol", comment="좋아요", verdict=ReviewVerdict.APPROVE, created_at=T0)
    assert "  - [APPROVE] carol: 좋아요" in render_decision_record(_record(reviews=(review,)))


def test_empty_rationale_renders_placeholder():
    lines = render_decision_record(_record(pr_rationale=())).splitlines()
    start = lines.index("Rationale (PR author):")
    assert lines[start + 1] == "  -"


def test_no_team_path_line_when_unset():
    text = render_decision_record(_record(team_path=""))
    assert "Platform" not in text


def test_digest_section():
    text = render_decision_record(_record(digest=("Tomorrow is safer",)))
    assert "Digest:\n  - Tomorrow is safer" in text
