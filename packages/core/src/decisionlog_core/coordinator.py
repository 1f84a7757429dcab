"""Workflow coordinator — the single entry point for every state change.

Sequences the cross-entity effects of each command:

  create_branch   registers the branch under its issue
  append_commit   appends to one branch's ledger
  merge           flips PR, source branches and issue together and emits
                  exactly one DecisionRecord
  reject          changes only the PR (and any branches it names)

Every command validates its input, takes the locks of the aggregate it
touches (see decisionlog_core.locks), re-reads current state under those
locks, and writes through the store, inside a store transaction whenever
more than one entity changes.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterable, Protocol, Sequence

from decisionlog_core import ledger
from decisionlog_core import pull_request as lifecycle
from decisionlog_core.errors import InvalidState, NotFound, ValidationError
from decisionlog_core.ids import new_id, utcnow
from decisionlog_core.locks import LockRegistry, branch_key, issue_key, pr_key
from decisionlog_core.synthesizer import order_branches, synthesize
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

if TYPE_CHECKING:
    from decisionlog_store.base import BaseStore

logger = logging.getLogger(__name__)

_ISSUE_TRANSITIONS: dict[IssueStatus, frozenset[IssueStatus]] = {
    IssueStatus.OPEN: frozenset({IssueStatus.REVIEW, IssueStatus.CLOSED}),
    IssueStatus.REVIEW: frozenset({IssueStatus.CLOSED}),
    IssueStatus.CLOSED: frozenset(),
}


class Digester(Protocol):
    def digest(self, issue_title: str, decision: str, commits: Sequence[Commit]) -> list[str]: ...


def _require_actor(actor_id: str) -> str:
    actor = (actor_id or "").strip()
    if not actor:
        raise ValidationError("an actor id is required")
    return actor


def _coerce(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"unknown {label} {value!r}; expected one of: {choices}") from None


class WorkflowCoordinator:
    """Façade over the ledger, PR lifecycle and decision synthesizer.

    Safe to share between threads. ``clock`` exists so tests can pin
    timestamps; ``digester`` optionally adds a generated summary to each
    decision record.
    """

    def __init__(
        self,
        store: BaseStore,
        team_path: str = "",
        target: str = "main",
        digester: Digester | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._store = store
        self._team_path = team_path
        self._target = target
        self._digester = digester
        self._clock = clock or utcnow
        self._locks = LockRegistry()

    @property
    def store(self) -> BaseStore:
        return self._store

    # ------------------------------------------------------------------ #
    # Lookups                                                              #
    # ------------------------------------------------------------------ #

    def get_issue(self, issue_id: str) -> Issue:
        issue = self._store.get_issue(issue_id)
        if issue is None:
            raise NotFound("issue", issue_id)
        return issue

    def get_branch(self, branch_id: str) -> Branch:
        branch = self._store.get_branch(branch_id)
        if branch is None:
            raise NotFound("branch", branch_id)
        return branch

    def get_pull_request(self, pr_id: str) -> PullRequest:
        pr = self._store.get_pull_request(pr_id)
        if pr is None:
            raise NotFound("pull request", pr_id)
        return pr

    def get_decision(self, record_id: str) -> DecisionRecord:
        record = self._store.get_decision(record_id)
        if record is None:
            raise NotFound("decision record", record_id)
        return record

    def list_issues(self) -> list[Issue]:
        return self._store.list_issues()

    def list_branches(self, issue_id: str) -> list[Branch]:
        """Branches of an issue in discussion (creation) order."""
        issue = self.get_issue(issue_id)
        by_id = {b.id: b for b in self._store.list_branches(issue_id)}
        return [by_id[bid] for bid in issue.branch_ids if bid in by_id]

    def list_pull_requests(
        self,
        issue_id: str | None = None,
        status: PullRequestStatus | str | None = None,
    ) -> list[PullRequest]:
        if status is not None:
            status = _coerce(PullRequestStatus, status, "PR status")
        return self._store.list_pull_requests(issue_id=issue_id, status=status)

    def list_decisions(self, issue_id: str | None = None) -> list[DecisionRecord]:
        return self._store.list_decisions(issue_id=issue_id)

    def evidence_candidates(self, pr_id: str) -> list[Commit]:
        """Every commit a merge of ``pr_id`` could cite as evidence."""
        pr = self.get_pull_request(pr_id)
        branches = [self.get_branch(bid) for bid in pr.branch_ids]
        return ledger.evidence_set(branches)

    # ------------------------------------------------------------------ #
    # Issues and branches                                                  #
    # ------------------------------------------------------------------ #

    def create_issue(self, title: str, author_id: str, description: str = "") -> Issue:
        author = _require_actor(author_id)
        title = (title or "").strip()
        if not title:
            raise ValidationError("issue title must not be blank")
        issue = Issue(
            id=new_id("iss"),
            title=title,
            author_id=author,
            status=IssueStatus.OPEN,
            created_at=self._clock(),
            description=(description or "").strip(),
        )
        self._store.create_issue(issue)
        logger.info("Issue %s created by %s: %s", issue.id, author, title)
        return issue

    def create_branch(self, issue_id: str, name: str, creator_id: str, description: str = "") -> Branch:
        creator = _require_actor(creator_id)
        name = (name or "").strip()
        if not name:
            raise ValidationError("branch name must not be blank")
        with self._locks.hold([issue_key(issue_id)]):
            issue = self.get_issue(issue_id)
            if issue.status == IssueStatus.CLOSED:
                raise InvalidState(f"cannot open a branch on closed issue {issue.id}")
            branch = Branch(
                id=new_id("br"),
                name=name,
                issue_id=issue.id,
                status=BranchStatus.ACTIVE,
                created_at=self._clock(),
                description=(description or "").strip(),
                created_by=creator,
            )
            with self._store.transaction():
                self._store.create_branch(branch)
                self._store.update_issue(replace(issue, branch_ids=issue.branch_ids + (branch.id,)))
        logger.info("Branch %s (%s) opened on issue %s by %s", branch.id, name, issue.id, creator)
        return branch

    def update_issue_status(self, issue_id: str, status: IssueStatus | str, actor_id: str) -> Issue:
        """Administrative override; only forward moves along OPEN → REVIEW → CLOSED."""
        actor = _require_actor(actor_id)
        status = _coerce(IssueStatus, status, "issue status")
        with self._locks.hold([issue_key(issue_id)]):
            issue = self.get_issue(issue_id)
            if status not in _ISSUE_TRANSITIONS[issue.status]:
                raise InvalidState(f"cannot move issue {issue.id} from {issue.status.value} to {status.value}")
            updated = replace(issue, status=status)
            self._store.update_issue(updated)
        logger.info("Issue %s moved %s -> %s by %s", issue.id, issue.status.value, status.value, actor)
        return updated

    # ------------------------------------------------------------------ #
    # Ledger                                                               #
    # ------------------------------------------------------------------ #

    def append_commit(
        self,
        branch_id: str,
        author_id: str,
        message: str,
        type: CommitType | str = CommitType.NONE,
        replies_to: str | None = None,
        tags: Iterable[str] = (),
    ) -> Branch:
        """Append a commit and return the updated branch."""
        author = _require_actor(author_id)
        commit_type = _coerce(CommitType, type, "commit type")
        # A branch never changes issue; the issue lock excludes a concurrent close.
        issue_id = self.get_branch(branch_id).issue_id
        with self._locks.hold([issue_key(issue_id), branch_key(branch_id)]):
            branch = self.get_branch(branch_id)
            issue = self.get_issue(branch.issue_id)
            if issue.status == IssueStatus.CLOSED:
                raise InvalidState(f"cannot commit on closed issue {issue.id}")
            timestamp = self._clock()
            if branch.commits and timestamp < branch.commits[-1].timestamp:
                timestamp = branch.commits[-1].timestamp
            commit = Commit(
                id=new_id("c"),
                type=commit_type,
                author_id=author,
                message=(message or "").strip(),
                timestamp=timestamp,
                replies_to=replies_to or None,
                tags=tuple(t.strip() for t in tags if t and t.strip()),
            )
            updated = ledger.append_commit(branch, commit)
            self._store.update_branch(updated)
        logger.info("Commit %s (%s) appended to branch %s by %s", commit.id, commit_type.value, branch.id, author)
        return updated

    # ------------------------------------------------------------------ #
    # Pull requests                                                        #
    # ------------------------------------------------------------------ #

    def create_pull_request(
        self,
        issue_id: str,
        branch_ids: Sequence[str],
        author_id: str,
        rationale: str = "",
        title: str | None = None,
    ) -> PullRequest:
        author = _require_actor(author_id)
        ids = list(branch_ids or ())
        if not ids:
            raise ValidationError("a pull request needs at least one branch")
        if len(set(ids)) != len(ids):
            raise ValidationError("the same branch is listed more than once")
        keys = [issue_key(issue_id)] + [branch_key(b) for b in ids]
        with self._locks.hold(keys):
            issue = self.get_issue(issue_id)
            branches = [self.get_branch(b) for b in ids]
            pr = lifecycle.open_pull_request(
                new_id("pr"),
                issue,
                branches,
                author,
                (rationale or "").strip(),
                self._clock(),
                title=title,
                target=self._target,
            )
            self._store.create_pull_request(pr)
        logger.info("PR %s opened on issue %s over %s by %s", pr.id, issue.id, ", ".join(ids), author)
        return pr

    def add_review(
        self,
        pr_id: str,
        reviewer_id: str,
        comment: str,
        verdict: ReviewVerdict | str = ReviewVerdict.COMMENT,
    ) -> PullRequest:
        reviewer = _require_actor(reviewer_id)
        verdict = _coerce(ReviewVerdict, verdict, "review verdict")
        with self._locks.hold([pr_key(pr_id)]):
            pr = self.get_pull_request(pr_id)
            review = Review(
                id=new_id("rv"),
                reviewer_id=reviewer,
                comment=(comment or "").strip(),
                verdict=verdict,
                created_at=self._clock(),
            )
            updated = lifecycle.add_review(pr, review)
            self._store.update_pull_request(updated)
        logger.info("Review %s (%s) added to PR %s by %s", review.id, verdict.value, pr_id, reviewer)
        return updated

    def delete_review(self, pr_id: str, review_id: str) -> PullRequest:
        """Remove a review; a missing review id is a no-op."""
        with self._locks.hold([pr_key(pr_id)]):
            pr = self.get_pull_request(pr_id)
            updated = lifecycle.delete_review(pr, review_id)
            if updated.reviews == pr.reviews:
                logger.debug("Review %s not on PR %s; nothing to delete", review_id, pr_id)
                return pr
            self._store.update_pull_request(updated)
        logger.info("Review %s deleted from PR %s", review_id, pr_id)
        return updated

    def reject(self, pr_id: str, actor_id: str, rejected_branch_ids: Sequence[str] = ()) -> PullRequest:
        """Decline a PR. The issue stays open for further branches and PRs.

        Source branches are left ACTIVE unless named in ``rejected_branch_ids``,
        in which case those become REJECTED along with the PR.
        """
        actor = _require_actor(actor_id)
        pr = self.get_pull_request(pr_id)
        named = list(dict.fromkeys(rejected_branch_ids or ()))
        outside = [b for b in named if b not in pr.branch_ids]
        if outside:
            raise ValidationError(f"branches {', '.join(outside)} are not part of PR {pr.id}")
        keys = [pr_key(pr_id)]
        if named:
            keys += [issue_key(pr.issue_id)] + [branch_key(b) for b in named]
        with self._locks.hold(keys):
            pr = self.get_pull_request(pr_id)
            rejected = lifecycle.reject(pr)
            branches = [self.get_branch(b) for b in named]
            for branch in branches:
                if branch.status != BranchStatus.ACTIVE:
                    raise InvalidState(f"branch {branch.name!r} is already {branch.status.value}")
            with self._store.transaction():
                self._store.update_pull_request(rejected)
                for branch in branches:
                    self._store.update_branch(replace(branch, status=BranchStatus.REJECTED))
        logger.info("PR %s rejected by %s", pr.id, actor)
        return rejected

    def merge(
        self,
        pr_id: str,
        selected_commit_ids: Iterable[str],
        decision_content: str,
        decision_reasons: Sequence[str],
        decision_opinion: str,
        actor_id: str,
    ) -> DecisionRecord:
        """Resolve a PR into a DecisionRecord.

        PR → MERGED, every source branch → MERGED, issue → CLOSED and the
        record is created, all in one store transaction under the issue's
        lock. Selected ids outside the PR's branches are ignored.
        """
        actor = _require_actor(actor_id)
        content, reasons, opinion = lifecycle.normalize_decision(decision_content, decision_reasons, decision_opinion)
        selected = list(selected_commit_ids or ())

        # A PR's issue and branch set never change, so they can be read
        # before locking to decide which locks to take.
        pr = self.get_pull_request(pr_id)
        digest = self._digest(pr, content, selected) if pr.status == PullRequestStatus.OPEN else ()

        keys = [issue_key(pr.issue_id), pr_key(pr.id)] + [branch_key(b) for b in pr.branch_ids]
        with self._locks.hold(keys):
            pr = self.get_pull_request(pr_id)
            merged_pr = lifecycle.merge(pr)
            issue = self.get_issue(pr.issue_id)
            if issue.status == IssueStatus.CLOSED:
                raise InvalidState(f"issue {issue.id} is already closed")
            branches = [self.get_branch(b) for b in pr.branch_ids]
            for branch in branches:
                if branch.status != BranchStatus.ACTIVE:
                    raise InvalidState(f"branch {branch.name!r} is {branch.status.value}, cannot merge")
            record = synthesize(
                new_id("dr"),
                self._clock(),
                pr,
                issue,
                branches,
                actor,
                selected,
                content,
                reasons,
                opinion,
                team_path=self._team_path,
                digest=digest,
            )
            with self._store.transaction():
                self._store.update_pull_request(merged_pr)
                for branch in branches:
                    self._store.update_branch(replace(branch, status=BranchStatus.MERGED))
                self._store.update_issue(replace(issue, status=IssueStatus.CLOSED))
                self._store.create_decision(record)
        logger.info(
            "PR %s merged by %s; issue %s closed, decision %s cites %d commit(s)",
            pr.id,
            actor,
            issue.id,
            record.id,
            len(record.evidence_commit_ids),
        )
        return record

    def _digest(self, pr: PullRequest, decision: str, selected: list[str]) -> tuple[str, ...]:
        if self._digester is None:
            return ()
        issue = self.get_issue(pr.issue_id)
        branches = order_branches(pr, (self.get_branch(b) for b in pr.branch_ids))
        commits = ledger.select_evidence(ledger.evidence_set(branches), selected)
        if not commits:
            return ()
        return tuple(self._digester.digest(issue.title, decision, commits))
