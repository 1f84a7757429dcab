"""Tests for decisionlog-store implementations."""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from decisionlog_store.base import StoreError
from decisionlog_store.codec import BRANCH, DECISION, ISSUE, PULL_REQUEST, from_dict, kind_of, to_dict
from decisionlog_store.gist import GistStore
from decisionlog_store.memory import MemoryStore
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
from decisionlog_store.sqlite import SQLiteStore

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _issue(issue_id="iss-1", title="Pick a queue", branch_ids=()):
    return Issue(
        id=issue_id,
        title=title,
        author_id="alice",
        status=IssueStatus.OPEN,
        created_at=T0,
        branch_ids=tuple(branch_ids),
    )


def _branch(branch_id="br-1", issue_id="iss-1", name="Redis", commits=()):
    return Branch(
        id=branch_id,
        name=name,
        issue_id=issue_id,
        status=BranchStatus.ACTIVE,
        created_at=T0,
        commits=tuple(commits),
        created_by="alice",
    )


def _commit(commit_id="c-1", message="Is it durable?", type=CommitType.QUESTION, replies_to=None, minutes=0):
    return Commit(
        id=commit_id,
        type=type,
        author_id="bob",
        message=message,
        timestamp=T0 + timedelta(minutes=minutes),
        replies_to=replies_to,
        tags=("infra",),
    )


def _pr(pr_id="pr-1", issue_id="iss-1", branch_ids=("br-1",), status=PullRequestStatus.OPEN, reviews=()):
    return PullRequest(
        id=pr_id,
        title="Redis",
        description="- cheap\n- fast",
        branch_ids=tuple(branch_ids),
        target="main",
        issue_id=issue_id,
        author_id="alice",
        status=status,
        created_at=T0,
        reviews=tuple(reviews),
    )


def _review(review_id="rv-1"):
    return Review(id=review_id, reviewer_id="carol", comment="LGTM", verdict=ReviewVerdict.APPROVE, created_at=T0)


def _record(record_id="dr-1", issue_id="iss-1"):
    return DecisionRecord(
        id=record_id,
        issue_id=issue_id,
        issue_title="Pick a queue",
        team_path="Platform > Backend",
        decision="Use Redis",
        decision_maker="alice",
        decision_opinion="Redis",
        decision_reasons=("Already deployed",),
        pr_rationale=("cheap", "fast"),
        evidence_summary=("Is it durable?",),
        evidence_commit_ids=("c-1",),
        merged_branch_ids=("br-1",),
        pr_id="pr-1",
        created_at=T0,
        reviews=(_review(),),
        digest=("Redis wins on ops cost",),
    )


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


class TestCodec:
    def test_kind_of_each_entity(self):
        assert kind_of(_issue()) == ISSUE
        assert kind_of(_branch()) == BRANCH
        assert kind_of(_pr()) == PULL_REQUEST
        assert kind_of(_record()) == DECISION

    def test_kind_of_rejects_nested_values(self):
        with pytest.raises(TypeError):
            kind_of(_commit())

    def test_branch_with_commits_survives_json(self):
        reply = _commit("c-2", "Yes, with AOF", type=CommitType.NONE, replies_to="c-1", minutes=1)
        branch = _branch(commits=[_commit(), reply])
        restored = from_dict(BRANCH, json.loads(json.dumps(to_dict(branch))))
        assert restored == branch
        assert restored.commits[1].is_reply

    def test_decision_record_survives_json(self):
        record = _record()
        assert from_dict(DECISION, json.loads(json.dumps(to_dict(record)))) == record

    def test_enums_serialized_as_values(self):
        data = to_dict(_pr(reviews=[_review()]))
        assert data["status"] == "OPEN"
        assert data["reviews"][0]["verdict"] == "APPROVE"
        assert data["created_at"] == T0.isoformat()

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError, match="Unknown entity kind"):
            from_dict("commit", {})


# ---------------------------------------------------------------------------
# Behaviour shared by every backend
# ---------------------------------------------------------------------------


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = MemoryStore()
    else:
        s = SQLiteStore(db_path=str(tmp_path / "test.db"))
    yield s
    s.close()


class TestStoreContract:
    def test_create_and_get_issue(self, store):
        store.create_issue(_issue())
        assert store.get_issue("iss-1") == _issue()

    def test_get_missing_returns_none(self, store):
        assert store.get_issue("nope") is None
        assert store.get_branch("nope") is None
        assert store.get_pull_request("nope") is None
        assert store.get_decision("nope") is None

    def test_create_existing_raises(self, store):
        store.create_issue(_issue())
        with pytest.raises(StoreError, match="already exists"):
            store.create_issue(_issue())

    def test_update_missing_raises(self, store):
        with pytest.raises(StoreError, match="does not exist"):
            store.update_branch(_branch())

    def test_update_replaces_value(self, store):
        store.create_branch(_branch())
        store.update_branch(_branch(commits=[_commit()]))
        assert store.get_branch("br-1").commits == (_commit(),)

    def test_lists_keep_creation_order_after_update(self, store):
        store.create_issue(_issue("iss-1"))
        store.create_issue(_issue("iss-2"))
        store.update_issue(replace(_issue("iss-1"), status=IssueStatus.CLOSED))
        assert [i.id for i in store.list_issues()] == ["iss-1", "iss-2"]

    def test_list_branches_by_issue(self, store):
        store.create_branch(_branch("br-1", issue_id="iss-1"))
        store.create_branch(_branch("br-2", issue_id="iss-2"))
        store.create_branch(_branch("br-3", issue_id="iss-1"))
        assert [b.id for b in store.list_branches("iss-1")] == ["br-1", "br-3"]
        assert len(store.list_branches()) == 3

    def test_list_pull_requests_filters(self, store):
        store.create_pull_request(_pr("pr-1"))
        store.create_pull_request(_pr("pr-2", status=PullRequestStatus.REJECTED))
        store.create_pull_request(_pr("pr-3", issue_id="iss-2"))
        assert [p.id for p in store.list_pull_requests(status=PullRequestStatus.OPEN)] == ["pr-1", "pr-3"]
        assert [p.id for p in store.list_pull_requests(issue_id="iss-1")] == ["pr-1", "pr-2"]

    def test_reviews_travel_with_pull_request(self, store):
        store.create_pull_request(_pr(reviews=[_review("rv-1"), _review("rv-2")]))
        assert [r.id for r in store.get_pull_request("pr-1").reviews] == ["rv-1", "rv-2"]

    def test_decisions_by_issue(self, store):
        store.create_decision(_record("dr-1", issue_id="iss-1"))
        store.create_decision(_record("dr-2", issue_id="iss-2"))
        assert [r.id for r in store.list_decisions(issue_id="iss-2")] == ["dr-2"]


class TestTransactions:
    def test_writes_apply_on_exit(self, store):
        with store.transaction():
            store.create_issue(_issue())
            store.create_branch(_branch())
        assert store.get_issue("iss-1") is not None
        assert store.get_branch("br-1") is not None

    def test_reads_see_staged_writes(self, store):
        store.create_issue(_issue())
        with store.transaction():
            store.update_issue(replace(_issue(), status=IssueStatus.CLOSED))
            store.create_issue(_issue("iss-2"))
            assert store.get_issue("iss-1").status == IssueStatus.CLOSED
            assert [i.id for i in store.list_issues()] == ["iss-1", "iss-2"]

    def test_exception_discards_every_write(self, store):
        store.create_issue(_issue())
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.update_issue(replace(_issue(), status=IssueStatus.CLOSED))
                store.create_decision(_record())
                raise RuntimeError("boom")
        assert store.get_issue("iss-1").status == IssueStatus.OPEN
        assert store.get_decision("dr-1") is None

    def test_nested_transactions_join_the_outer_one(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                with store.transaction():
                    store.create_issue(_issue())
                assert store.get_issue("iss-1") is not None
                raise RuntimeError("boom")
        assert store.get_issue("iss-1") is None

    def test_batch_applied_once(self, mocker):
        store = MemoryStore()
        spy = mocker.spy(store, "_apply")
        with store.transaction():
            store.create_issue(_issue())
            store.create_branch(_branch())
            store.create_pull_request(_pr())
        spy.assert_called_once()
        assert len(spy.call_args.args[0]) == 3

    def test_failed_apply_leaves_state_untouched(self, mocker):
        store = MemoryStore()
        store.create_issue(_issue())
        mocker.patch.object(store, "_apply", side_effect=StoreError("disk full"))
        with pytest.raises(StoreError):
            with store.transaction():
                store.update_issue(replace(_issue(), status=IssueStatus.CLOSED))
        assert store.get_issue("iss-1").status == IssueStatus.OPEN


# ---------------------------------------------------------------------------
# SQLiteStore
# ---------------------------------------------------------------------------


class TestSQLiteStore:
    def test_persists_across_connections(self, tmp_path):
        """Data written by one SQLiteStore instance must be readable by another."""
        db = str(tmp_path / "test.db")
        store1 = SQLiteStore(db_path=db)
        store1.create_issue(_issue())
        store1.create_branch(_branch(commits=[_commit()]))
        store1.create_decision(_record())
        store1.close()

        store2 = SQLiteStore(db_path=db)
        assert store2.get_issue("iss-1") == _issue()
        assert store2.get_branch("br-1").commits[0].tags == ("infra",)
        assert store2.get_decision("dr-1") == _record()
        store2.close()

    def test_status_column_tracks_updates(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        store.create_pull_request(_pr())
        store.update_pull_request(_pr(status=PullRequestStatus.MERGED))
        row = store._conn.execute("SELECT status FROM entities WHERE kind='pull_request'").fetchone()
        assert row["status"] == "MERGED"
        store.close()

    def test_rolled_back_transaction_is_not_persisted(self, tmp_path):
        db = str(tmp_path / "test.db")
        store = SQLiteStore(db_path=db)
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.create_issue(_issue())
                raise RuntimeError("boom")
        store.close()

        assert SQLiteStore(db_path=db).list_issues() == []


# ---------------------------------------------------------------------------
# GistStore
# ---------------------------------------------------------------------------


def _gist_store(mocker, document=None):
    """GistStore over a mocked PyGithub client; InputFileContent passes content through."""
    github_cls = mocker.patch("decisionlog_store.gist.Github")
    mocker.patch("decisionlog_store.gist.InputFileContent", side_effect=lambda content: content)
    gist = MagicMock()
    if document is None:
        gist.files = {}
    else:
        gist.files = {"decisionlog.json": MagicMock(content=json.dumps(document))}
    github_cls.return_value.get_gist.return_value = gist
    return GistStore(gist_id="abc123", token="tok"), gist


def _written(gist) -> dict:
    return json.loads(gist.edit.call_args.kwargs["files"]["decisionlog.json"])


class TestGistStore:
    def test_missing_file_reads_as_empty(self, mocker):
        store, _ = _gist_store(mocker)
        assert store.list_issues() == []
        assert store.get_issue("iss-1") is None

    def test_reads_existing_document(self, mocker):
        doc = {"issue": [to_dict(_issue())], "branch": [to_dict(_branch())]}
        store, _ = _gist_store(mocker, document=doc)
        assert store.get_issue("iss-1") == _issue()
        assert [b.id for b in store.list_branches("iss-1")] == ["br-1"]
        assert store.list_pull_requests() == []

    def test_create_appends_to_document(self, mocker):
        doc = {"issue": [to_dict(_issue("iss-0"))]}
        store, gist = _gist_store(mocker, document=doc)
        store.create_issue(_issue("iss-1"))

        written = _written(gist)
        assert [d["id"] for d in written["issue"]] == ["iss-0", "iss-1"]
        assert set(written) == {"issue", "branch", "pull_request", "decision"}

    def test_update_replaces_in_place(self, mocker):
        doc = {"issue": [to_dict(_issue("iss-1")), to_dict(_issue("iss-2"))]}
        store, gist = _gist_store(mocker, document=doc)
        store.update_issue(replace(_issue("iss-1"), status=IssueStatus.CLOSED))

        written = _written(gist)
        assert [d["id"] for d in written["issue"]] == ["iss-1", "iss-2"]
        assert written["issue"][0]["status"] == "CLOSED"

    def test_transaction_is_one_gist_edit(self, mocker):
        store, gist = _gist_store(mocker, document={"issue": [to_dict(_issue())]})
        with store.transaction():
            store.create_branch(_branch())
            store.update_issue(_issue(branch_ids=["br-1"]))
        gist.edit.assert_called_once()
        written = _written(gist)
        assert written["issue"][0]["branch_ids"] == ["br-1"]
        assert written["branch"][0]["id"] == "br-1"

    def test_read_failure_raises_store_error(self, mocker):
        store, _ = _gist_store(mocker)
        store._gh.get_gist.side_effect = Exception("network error")
        with pytest.raises(StoreError, match="could not read gist"):
            store.list_issues()

    def test_write_failure_raises_store_error(self, mocker):
        store, gist = _gist_store(mocker)
        gist.edit.side_effect = Exception("403 Forbidden")
        with pytest.raises(StoreError, match="could not write gist"):
            store.create_issue(_issue())

    def test_invalid_json_raises_store_error(self, mocker):
        store, gist = _gist_store(mocker)
        gist.files = {"decisionlog.json": MagicMock(content="{not json")}
        with pytest.raises(StoreError, match="not valid JSON"):
            store.get_issue("iss-1")
