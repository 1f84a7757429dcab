"""commit commands — add typed discussion entries to a branch."""

from __future__ import annotations

import click
from rich.console import Console

from decisionlog_cli.commands.branch import commit_line
from decisionlog_cli.context import get_coordinator, require_actor, workflow_errors
from decisionlog_store.models import CommitType

console = Console()


@click.group("commit")
def commit_group():
    """Add typed discussion entries to a branch."""


@commit_group.command("add")
@click.argument("branch_id")
@click.argument("message")
@click.option(
    "--type",
    "commit_type",
    type=click.Choice([t.value for t in CommitType], case_sensitive=False),
    default=CommitType.NONE.value,
    show_default=True,
    help="Kind of entry.",
)
@click.option("--reply-to", "reply_to", default=None, help="Answer the QUESTION commit with this id.")
@click.option("--tag", "tags", multiple=True, help="Free-form tag; repeat for several.")
@click.pass_context
@workflow_errors
def commit_add(ctx, branch_id: str, message: str, commit_type: str, reply_to: str | None, tags: tuple[str, ...]):
    """Append MESSAGE to BRANCH_ID."""
    actor = require_actor(ctx)
    branch = get_coordinator(ctx).append_commit(
        branch_id,
        actor,
        message,
        type=commit_type.upper(),
        replies_to=reply_to,
        tags=tags,
    )
    console.print(f"[green]Committed to {branch.name}:[/green] {commit_line(branch.commits[-1])}")
