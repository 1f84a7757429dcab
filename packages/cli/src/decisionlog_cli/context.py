"""Shared plumbing for commands: coordinator construction, actor lookup, error mapping."""

from __future__ import annotations

import functools

import click

from decisionlog_core.coordinator import WorkflowCoordinator
from decisionlog_core.errors import WorkflowError
from decisionlog_store.base import StoreError


def get_coordinator(ctx: click.Context, with_digest: bool = False) -> WorkflowCoordinator:
    """Build a coordinator over the store the group callback opened.

    The digest provider is only built on request so that commands other
    than merge never need an LLM API key.
    """
    from decisionlog_core.config import build_digester

    config = ctx.obj["config"]
    digester = None
    if with_digest:
        try:
            digester = build_digester(config)
        except (ImportError, ValueError) as e:
            raise click.UsageError(str(e))
    return WorkflowCoordinator(
        ctx.obj["store"],
        team_path=config.get("team_path") or "",
        target=config.get("target") or "main",
        digester=digester,
    )


def require_actor(ctx: click.Context) -> str:
    from decisionlog_cli.auth import resolve_actor

    config = ctx.obj["config"]
    actor = config.get("actor") or resolve_actor()
    if not actor:
        raise click.UsageError("Could not determine who you are. Pass --actor or set DECISIONLOG_ACTOR.")
    config["actor"] = actor
    return actor


def workflow_errors(func):
    """Turn workflow and store failures into clean CLI errors, message verbatim."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except WorkflowError as e:
            raise click.ClickException(str(e))
        except StoreError as e:
            raise click.ClickException(f"Store error: {e}")

    return wrapper
