"""Abstract store interface.

The workflow engine consumes persistence only through BaseStore, so
backends (memory, SQLite, Gist) are swappable without touching core code.

Backends implement three primitives: fetch one entity, fetch all entities
of a kind, and apply a batch of writes atomically. Everything else lives
here: the per-kind CRUD surface, create/update existence checks, and the
per-thread unit of work behind transaction().
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from decisionlog_store.codec import BRANCH, DECISION, ISSUE, PULL_REQUEST, kind_of

if TYPE_CHECKING:
    from decisionlog_store.models import Branch, DecisionRecord, Issue, PullRequest, PullRequestStatus


class StoreError(Exception):
    """Raised when a backend cannot honour a read or write."""


class _UnitOfWork:
    def __init__(self):
        self.depth = 0
        self.staged: dict[tuple[str, str], object] = {}


class BaseStore(ABC):
    """Pluggable persistence layer for issues, branches, PRs and decisions.

    Reviews are persisted inside their owning PullRequest and commits inside
    their owning Branch; neither has a top-level key of its own.

    Outside a transaction each create/update is applied immediately. Inside
    one, writes are staged per thread, reads see the staged values, and the
    whole batch is handed to _apply() once on successful exit.
    """

    def __init__(self):
        self._local = threading.local()

    # ------------------------------------------------------------------ #
    # Backend primitives                                                   #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _fetch(self, kind: str, entity_id: str):
        """Return the stored entity or None."""

    @abstractmethod
    def _fetch_all(self, kind: str, issue_id: str | None = None) -> list:
        """Return every stored entity of ``kind`` in creation order.

        When ``issue_id`` is given, only entities owned by (or, for issues,
        identified by) that issue are returned.
        """

    @abstractmethod
    def _apply(self, batch: list) -> None:
        """Persist every entity in ``batch`` as one atomic step.

        Entities whose id already exists replace the stored value; the
        rest are inserted. Must raise StoreError and leave the stored state
        untouched on failure.
        """

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """

    # ------------------------------------------------------------------ #
    # Transactions                                                         #
    # ------------------------------------------------------------------ #

    def _uow(self) -> _UnitOfWork | None:
        return getattr(self._local, "uow", None)

    @contextmanager
    def transaction(self) -> Iterator[BaseStore]:
        """Group writes so they are applied all together or not at all.

        Nested calls on the same thread join the outermost transaction.
        """
        uow = self._uow()
        if uow is None:
            uow = _UnitOfWork()
            self._local.uow = uow
        uow.depth += 1
        try:
            yield self
        except BaseException:
            uow.depth -= 1
            if uow.depth == 0:
                self._local.uow = None
            raise
        uow.depth -= 1
        if uow.depth == 0:
            self._local.uow = None
            if uow.staged:
                self._apply(list(uow.staged.values()))

    # ------------------------------------------------------------------ #
    # Generic read/write helpers                                           #
    # ------------------------------------------------------------------ #

    def _get(self, kind: str, entity_id: str):
        uow = self._uow()
        if uow is not None and (kind, entity_id) in uow.staged:
            return uow.staged[(kind, entity_id)]
        return self._fetch(kind, entity_id)

    def _list(self, kind: str, issue_id: str | None = None) -> list:
        results = self._fetch_all(kind, issue_id)
        uow = self._uow()
        if uow is None or not uow.staged:
            return results
        staged = {eid: e for (k, eid), e in uow.staged.items() if k == kind}
        merged = [staged.pop(e.id, e) for e in results]
        for entity in staged.values():
            owner = entity.id if kind == ISSUE else entity.issue_id
            if issue_id is None or owner == issue_id:
                merged.append(entity)
        return merged

    def _write(self, entity, create: bool) -> None:
        kind = kind_of(entity)
        exists = self._get(kind, entity.id) is not None
        if create and exists:
            raise StoreError(f"{kind} {entity.id!r} already exists")
        if not create and not exists:
            raise StoreError(f"{kind} {entity.id!r} does not exist")
        uow = self._uow()
        if uow is not None:
            uow.staged[(kind, entity.id)] = entity
        else:
            self._apply([entity])

    # ------------------------------------------------------------------ #
    # Issues                                                               #
    # ------------------------------------------------------------------ #

    def get_issue(self, issue_id: str) -> Issue | None:
        return self._get(ISSUE, issue_id)

    def list_issues(self) -> list[Issue]:
        return self._list(ISSUE)

    def create_issue(self, issue: Issue) -> None:
        self._write(issue, create=True)

    def update_issue(self, issue: Issue) -> None:
        self._write(issue, create=False)

    # ------------------------------------------------------------------ #
    # Branches                                                             #
    # ------------------------------------------------------------------ #

    def get_branch(self, branch_id: str) -> Branch | None:
        return self._get(BRANCH, branch_id)

    def list_branches(self, issue_id: str | None = None) -> list[Branch]:
        return self._list(BRANCH, issue_id)

    def create_branch(self, branch: Branch) -> None:
        self._write(branch, create=True)

    def update_branch(self, branch: Branch) -> None:
        self._write(branch, create=False)

    # ------------------------------------------------------------------ #
    # Pull requests (reviews travel inside)                                #
    # ------------------------------------------------------------------ #

    def get_pull_request(self, pr_id: str) -> PullRequest | None:
        return self._get(PULL_REQUEST, pr_id)

    def list_pull_requests(
        self,
        issue_id: str | None = None,
        status: PullRequestStatus | None = None,
    ) -> list[PullRequest]:
        prs = self._list(PULL_REQUEST, issue_id)
        if status is not None:
            prs = [p for p in prs if p.status == status]
        return prs

    def create_pull_request(self, pr: PullRequest) -> None:
        self._write(pr, create=True)

    def update_pull_request(self, pr: PullRequest) -> None:
        self._write(pr, create=False)

    # ------------------------------------------------------------------ #
    # Decision records (create-only)                                       #
    # ------------------------------------------------------------------ #

    def get_decision(self, record_id: str) -> DecisionRecord | None:
        return self._get(DECISION, record_id)

    def list_decisions(self, issue_id: str | None = None) -> list[DecisionRecord]:
        return self._list(DECISION, issue_id)

    def create_decision(self, record: DecisionRecord) -> None:
        self._write(record, create=True)
