"""Actor and GitHub token resolution with gh CLI fallback.

Every mutation carries the id of the actor performing it. The actor is
not authenticated here; we only need a stable, human-meaningful id.

Actor resolution order (stops at first success):
  1. --actor option / `actor:` in .decisionlog.yml / DECISIONLOG_ACTOR
     (resolved by load_config before we get here)
  2. `gh api user --jq .login` (the GitHub login of the current gh session)
  3. The operating-system user name

Token resolution order (only needed for the Gist store):
  1. GITHUB_TOKEN environment variable
  2. `gh auth token`
"""

from __future__ import annotations

import getpass
import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def _gh(*args: str) -> str | None:
    """Run a gh subcommand and return its trimmed stdout, or None."""
    try:
        result = subprocess.run(
            ["gh", *args],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh missing or too slow; fall through to the next source.
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no valid source is available.

    Never raises — callers should check for None and emit a UsageError.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    gh_token = _gh("auth", "token")
    if gh_token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return gh_token


def resolve_actor() -> str | None:
    """Best-effort id for the person running the command. Never raises."""
    login = _gh("api", "user", "--jq", ".login")
    if login:
        logger.debug("Resolved actor via gh CLI session: %s", login)
        return login
    try:
        return getpass.getuser() or None
    except (KeyError, OSError):
        return None
