"""branch commands — propose options under an issue."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from decisionlog_cli.commands.issue import short_time, styled
from decisionlog_cli.context import get_coordinator, require_actor, workflow_errors

console = Console()

_TYPE_STYLE = {
    "INFO": "blue",
    "OPINION": "magenta",
    "QUESTION": "yellow",
    "TODO": "red",
    "NONE": "dim",
}


def commit_line(commit) -> str:
    style = _TYPE_STYLE.get(commit.type.value, "white")
    tags = f" [dim]#{' #'.join(commit.tags)}[/dim]" if commit.tags else ""
    return (
        f"[{style}]{commit.type.value:<8}[/{style}] [bold]{commit.author_id}[/bold]: {escape(commit.message)}{tags}"
        f"  [dim]{commit.id}[/dim]"
    )


@click.group("branch")
def branch_group():
    """Propose options under an issue."""


@branch_group.command("create")
@click.argument("issue_id")
@click.argument("name")
@click.option("--description", "-d", default="", help="One-line summary of the option.")
@click.pass_context
@workflow_errors
def branch_create(ctx, issue_id: str, name: str, description: str):
    """Open a new branch under ISSUE_ID."""
    actor = require_actor(ctx)
    branch = get_coordinator(ctx).create_branch(issue_id, name, actor, description=description)
    console.print(f"[green]Created branch[/green] [bold]{branch.id}[/bold] ({branch.name}) on {branch.issue_id}")


@branch_group.command("list")
@click.argument("issue_id")
@click.pass_context
@workflow_errors
def branch_list(ctx, issue_id: str):
    """List the branches of ISSUE_ID in discussion order."""
    branches = get_coordinator(ctx).list_branches(issue_id)
    if not branches:
        console.print("[yellow]No branches found.[/yellow]")
        return
    table = Table(title=f"Branches — {issue_id}", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Description", max_width=40)
    table.add_column("Status")
    table.add_column("Commits", justify="right")
    for b in branches:
        table.add_row(b.id, b.name, b.description, styled(b.status.value), str(len(b.commits)))
    console.print(table)


@branch_group.command("show")
@click.argument("branch_id")
@click.pass_context
@workflow_errors
def branch_show(ctx, branch_id: str):
    """Show a branch and its commit log, replies under their questions."""
    branch = get_coordinator(ctx).get_branch(branch_id)
    console.print(f"\n[bold]{branch.name}[/bold]  ({branch.id})  {styled(branch.status.value)}")
    console.print(f"[dim]Issue {branch.issue_id} · opened by {branch.created_by or '?'} at {short_time(branch.created_at)}[/dim]")
    if branch.description:
        console.print(branch.description)
    if not branch.commits:
        console.print("\n[dim]No commits yet.[/dim]")
        return
    console.print()
    for commit in branch.commits:
        if commit.is_reply:
            continue
        console.print(f"  {commit_line(commit)}")
        for reply in (c for c in branch.commits if c.replies_to == commit.id):
            console.print(f"      ↳ [bold]{reply.author_id}[/bold]: {escape(reply.message)}  [dim]{reply.id}[/dim]")
