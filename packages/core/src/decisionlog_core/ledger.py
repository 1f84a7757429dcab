"""Branch/commit ledger.

Branches are append-only logs of typed commits. This module holds the pure
rules for appending to a branch and for deriving the evidence pool a
decision can draw from; it never touches the store.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from decisionlog_core.errors import InvalidState, ValidationError
from decisionlog_store.models import Branch, BranchStatus, Commit, CommitType

logger = logging.getLogger(__name__)


def _check_reply(branch: Branch, commit: Commit) -> None:
    """Replies are one level deep: NONE-typed, aimed at a root QUESTION of the same branch."""
    if commit.type != CommitType.NONE:
        raise ValidationError(f"a reply must be of type NONE, not {commit.type.value}")
    parent = next((c for c in branch.commits if c.id == commit.replies_to), None)
    if parent is None:
        raise ValidationError(f"commit {commit.replies_to!r} is not part of branch {branch.name!r}")
    if parent.is_reply:
        raise ValidationError("cannot reply to a reply")
    if parent.type != CommitType.QUESTION:
        raise ValidationError(f"only QUESTION commits can be replied to, {parent.id!r} is {parent.type.value}")


def append_commit(branch: Branch, commit: Commit) -> Branch:
    """Return ``branch`` with ``commit`` appended after every existing commit.

    Raises InvalidState if the branch is no longer ACTIVE.
    """
    if branch.status != BranchStatus.ACTIVE:
        raise InvalidState(f"cannot commit to a {branch.status.value.lower()} branch")
    if not commit.message.strip():
        raise ValidationError("commit message must not be blank")
    if any(c.id == commit.id for c in branch.commits):
        raise ValidationError(f"commit {commit.id!r} already exists in branch {branch.name!r}")
    if commit.is_reply:
        _check_reply(branch, commit)
    return replace(branch, commits=branch.commits + (commit,))


def evidence_set(branches: Iterable[Branch]) -> list[Commit]:
    """Union of commits across ``branches``, deduplicated, in branch-then-append order."""
    seen: set[str] = set()
    pool: list[Commit] = []
    for branch in branches:
        for commit in branch.commits:
            if commit.id in seen:
                continue
            seen.add(commit.id)
            pool.append(commit)
    return pool


def select_evidence(pool: list[Commit], selected_ids: Iterable[str]) -> list[Commit]:
    """Pick the commits named in ``selected_ids`` out of ``pool``.

    Ids that are not in the pool are ignored. The result follows commit
    timestamp order (ties keep pool order), never the order of the ids.
    """
    wanted = set(selected_ids)
    known = {c.id for c in pool}
    stray = wanted - known
    if stray:
        logger.debug("Ignoring %d selected commit id(s) outside the evidence pool: %s", len(stray), sorted(stray))
    picked = [c for c in pool if c.id in wanted]
    return sorted(picked, key=lambda c: c.timestamp)
