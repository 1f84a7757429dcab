"""In-memory store for tests and embedding.

Holds frozen entities in per-kind dicts guarded by a single lock. Because
entities are immutable, handing out the stored objects directly is safe.
Used by tests and by callers that embed the engine in a long-running
process and persist elsewhere.
"""

from __future__ import annotations

import threading

from decisionlog_store.base import BaseStore
from decisionlog_store.codec import ISSUE, KINDS, kind_of


class MemoryStore(BaseStore):
    """Keeps everything in process memory; state is lost on exit."""

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._data: dict[str, dict[str, object]] = {kind: {} for kind in KINDS}

    def _fetch(self, kind: str, entity_id: str):
        with self._lock:
            return self._data[kind].get(entity_id)

    def _fetch_all(self, kind: str, issue_id: str | None = None) -> list:
        with self._lock:
            entities = list(self._data[kind].values())
        if issue_id is None:
            return entities
        if kind == ISSUE:
            return [e for e in entities if e.id == issue_id]
        return [e for e in entities if e.issue_id == issue_id]

    def _apply(self, batch: list) -> None:
        with self._lock:
            for entity in batch:
                self._data[kind_of(entity)][entity.id] = entity
