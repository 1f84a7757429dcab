"""Per-aggregate serialization points.

One lock per key, created on first use. Callers that need several locks go
through hold(), which always acquires issue locks before branch locks before
PR locks, and sorts within each group, so two commands can never wait on
each other in a cycle.
"""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator

_ORDER = {"issue": 0, "branch": 1, "pr": 2}


def issue_key(issue_id: str) -> str:
    return f"issue:{issue_id}"


def branch_key(branch_id: str) -> str:
    return f"branch:{branch_id}"


def pr_key(pr_id: str) -> str:
    return f"pr:{pr_id}"


def _sort_key(key: str) -> tuple[int, str]:
    scope, _, ident = key.partition(":")
    return _ORDER.get(scope, len(_ORDER)), ident


class LockRegistry:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock_for(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[None]:
        """Acquire every lock in ``keys`` in canonical order, release on exit."""
        with ExitStack() as stack:
            for key in sorted(set(keys), key=_sort_key):
                stack.enter_context(self._lock_for(key))
            yield
