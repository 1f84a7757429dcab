"""GistStore — zero-infrastructure shared decision log via GitHub Gist.

Why Gist as the team store:
- Zero infra: no DB to provision, no server to maintain.
- Built-in access control: Gist ACL == GitHub account access, so everyone
  on the team can read the decision history without a separate login.
- Human-inspectable: the whole log is one JSON file anyone can open.

Data format: a single JSON file named `decisionlog.json` inside the Gist,
holding one array per entity kind in creation order:

    {"issue": [...], "branch": [...], "pull_request": [...], "decision": [...]}

Workflow state must never be dropped silently, so every failure here
surfaces as StoreError.
"""

from __future__ import annotations

import json
import logging
import threading

from github import Github, InputFileContent

from decisionlog_store.base import BaseStore, StoreError
from decisionlog_store.codec import ISSUE, KINDS, from_dict, kind_of, to_dict

logger = logging.getLogger(__name__)

_GIST_FILENAME = "decisionlog.json"


class GistStore(BaseStore):
    """Stores the decision log in a GitHub Gist as one JSON document.

    Reads fetch and parse the whole document; each write batch is a single
    read-modify-write gist.edit() call, so a merge lands in one revision.
    Suitable for teams with hundreds of issues; switch to SQLiteStore for
    larger logs.

    The Gist ID is stored in .decisionlog.yml under `gist_id`. Running
    `decisionlog init` creates the Gist and writes the ID automatically.
    """

    def __init__(self, gist_id: str, token: str):
        super().__init__()
        self._gist_id = gist_id
        self._gh = Github(token)
        self._lock = threading.Lock()

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def _read_document(self, gist) -> dict[str, list[dict]]:
        """Read the current document from the Gist file, or an empty one."""
        doc: dict[str, list[dict]] = {kind: [] for kind in KINDS}
        file_obj = gist.files.get(_GIST_FILENAME)
        if file_obj is None:
            return doc
        try:
            loaded = json.loads(file_obj.content) or {}
        except json.JSONDecodeError as e:
            raise StoreError(f"{_GIST_FILENAME} in gist {self._gist_id} is not valid JSON: {e}") from e
        for kind in KINDS:
            doc[kind] = list(loaded.get(kind, []))
        return doc

    def _load(self) -> dict[str, list[dict]]:
        try:
            return self._read_document(self._get_gist())
        except StoreError:
            raise
        except Exception as e:
            logger.warning("GistStore read failed (%s): %s", type(e).__name__, e)
            raise StoreError(f"could not read gist {self._gist_id}: {e}") from e

    def _fetch(self, kind: str, entity_id: str):
        for d in self._load()[kind]:
            if d.get("id") == entity_id:
                return from_dict(kind, d)
        return None

    def _fetch_all(self, kind: str, issue_id: str | None = None) -> list:
        entities = [from_dict(kind, d) for d in self._load()[kind]]
        if issue_id is None:
            return entities
        if kind == ISSUE:
            return [e for e in entities if e.id == issue_id]
        return [e for e in entities if e.issue_id == issue_id]

    def _apply(self, batch: list) -> None:
        with self._lock:
            try:
                gist = self._get_gist()
                doc = self._read_document(gist)
                for entity in batch:
                    rows = doc[kind_of(entity)]
                    data = to_dict(entity)
                    for i, existing in enumerate(rows):
                        if existing.get("id") == entity.id:
                            rows[i] = data
                            break
                    else:
                        rows.append(data)
                content = json.dumps(doc, indent=2, ensure_ascii=False)
                gist.edit(files={_GIST_FILENAME: InputFileContent(content)})
            except StoreError:
                raise
            except Exception as e:
                logger.warning("GistStore write failed (%s): %s", type(e).__name__, e)
                raise StoreError(f"could not write gist {self._gist_id}: {e}") from e
