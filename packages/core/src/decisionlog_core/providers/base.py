"""Base digester implementing the Template Method pattern.

All providers share the same digest algorithm:
    digest() → _build_system_prompt() + _build_user_prompt()
             → _call_with_retry() → _call_api()   ← only this differs per provider
             → _parse()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

Prompt construction, JSON parsing and retry logic live here so every
provider behaves the same way.
"""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from decisionlog_store.models import Commit

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_MAX_TOKENS = 1024
_MAX_BULLETS = 5


class BaseDigester(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    MAX_BULLETS: int = _MAX_BULLETS

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def digest(self, issue_title: str, decision: str, commits: Sequence[Commit]) -> list[str]:
        """Summarize the evidence behind a decision as a few bullet lines.

        Returns [] when the provider keeps failing or answers with something
        that is not a JSON list of strings; a merge never waits on this.
        """
        if not commits:
            return []
        system = self._build_system_prompt()
        user = self._build_user_prompt(issue_title, decision, commits)
        raw = self._call_with_retry(system, user)
        if raw is None:
            return []
        return self._parse(raw)

    # ------------------------------------------------------------------ #
    # Abstract — implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        Should raise on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str | None:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    return None
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        return None

    def _build_system_prompt(self) -> str:
        return f"""You are the minute-taker of a team decision meeting.
Summarize the discussion evidence that led to the decision.

Rules:
- At most {self.MAX_BULLETS} bullets, one sentence each.
- Only use facts present in the evidence; do not invent details.
- Write in the language the evidence is written in."""

    def _build_user_prompt(self, issue_title: str, decision: str, commits: Sequence[Commit]) -> str:
        evidence = "\n".join(f"- [{c.type.value}] {c.author_id}: {c.message}" for c in commits)
        return f"""## Issue
{issue_title}

## Decision
{decision}

## Evidence (chronological)
{evidence}

### Output Format:
Respond with **only** a valid JSON list of strings:

["<bullet>", "<bullet>", ...]

Do not return any text outside the JSON block."""

    def _parse(self, raw: str) -> list[str]:
        """Parse the model's raw text response into a list of bullet strings."""
        try:
            cleaned = re.sub(r"^```(?:json)?\s*", "", raw.strip())
            cleaned = re.sub(r"\s*```$", "", cleaned.strip())
            data = json.loads(cleaned)
        except json.JSONDecodeError:
            logger.warning(
                "%s: failed to parse response as JSON: %s",
                self.__class__.__name__,
                raw[:200],
            )
            return []
        if not isinstance(data, list):
            logger.warning("%s: expected a JSON list, got %s", self.__class__.__name__, type(data).__name__)
            return []
        bullets = [str(item).strip() for item in data if isinstance(item, (str, int, float)) and str(item).strip()]
        return bullets[: self.MAX_BULLETS]
