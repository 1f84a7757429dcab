"""SQLiteStore — local file-based store for single-team use.

Why SQLite as the default persistent store:
- Batteries included: ships with Python, no extra dependencies.
- Real transactions: a merge batch (PR, branches, issue, decision record)
  commits or rolls back as one unit.
- Indexed reads by kind and owning issue, no full document parse per call.

Schema:
  entities — one row per issue / branch / pull request / decision record.
             The entity itself is a JSON body; kind, issue_id and status are
             duplicated into columns for filtering. Commits and reviews live
             inside their owning entity's body.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading

from decisionlog_store.base import BaseStore, StoreError
from decisionlog_store.codec import ISSUE, from_dict, kind_of, to_dict

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS entities (
    seq         INTEGER PRIMARY KEY AUTOINCREMENT,
    kind        TEXT NOT NULL,
    id          TEXT NOT NULL,
    issue_id    TEXT NOT NULL,
    status      TEXT,
    created_at  TEXT,
    body        TEXT NOT NULL,
    UNIQUE (kind, id)
);
CREATE INDEX IF NOT EXISTS idx_entities_issue ON entities (kind, issue_id);
"""

_UPSERT = """
INSERT INTO entities (kind, id, issue_id, status, created_at, body)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT (kind, id) DO UPDATE SET
    status = excluded.status,
    body   = excluded.body
"""


class SQLiteStore(BaseStore):
    """Stores the decision log in a local SQLite database file.

    The database file path defaults to `.decisionlog.db` in the current
    working directory. Configure via .decisionlog.yml: `store_path: /path/to/db`.

    One connection is shared between threads; every statement runs under an
    internal lock.
    """

    def __init__(self, db_path: str = ".decisionlog.db"):
        super().__init__()
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def _fetch(self, kind: str, entity_id: str):
        with self._lock:
            row = self._conn.execute(
                "SELECT body FROM entities WHERE kind=? AND id=?",
                (kind, entity_id),
            ).fetchone()
        if row is None:
            return None
        return from_dict(kind, json.loads(row["body"]))

    def _fetch_all(self, kind: str, issue_id: str | None = None) -> list:
        with self._lock:
            if issue_id is not None:
                rows = self._conn.execute(
                    "SELECT body FROM entities WHERE kind=? AND issue_id=? ORDER BY seq",
                    (kind, issue_id),
                ).fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT body FROM entities WHERE kind=? ORDER BY seq",
                    (kind,),
                ).fetchall()
        return [from_dict(kind, json.loads(r["body"])) for r in rows]

    def _apply(self, batch: list) -> None:
        params = []
        for entity in batch:
            kind = kind_of(entity)
            data = to_dict(entity)
            params.append(
                (
                    kind,
                    entity.id,
                    entity.id if kind == ISSUE else entity.issue_id,
                    data.get("status"),
                    data["created_at"],
                    json.dumps(data, ensure_ascii=False),
                )
            )
        with self._lock:
            try:
                # The connection context manager commits on success and rolls
                # back the whole batch on any error.
                with self._conn:
                    self._conn.executemany(_UPSERT, params)
            except sqlite3.Error as e:
                logger.error("SQLiteStore write of %d entities failed: %s", len(params), e)
                raise StoreError(f"SQLite write failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            self._conn.close()
