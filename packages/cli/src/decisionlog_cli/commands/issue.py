"""issue commands — raise and inspect decision topics."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from decisionlog_cli.context import get_coordinator, require_actor, workflow_errors
from decisionlog_store.models import IssueStatus

console = Console()

_STATUS_STYLE = {
    "OPEN": "green",
    "REVIEW": "yellow",
    "CLOSED": "dim",
    "ACTIVE": "green",
    "MERGED": "magenta",
    "REJECTED": "red",
}


def styled(status: str) -> str:
    style = _STATUS_STYLE.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def short_time(value) -> str:
    return value.isoformat()[:19].replace("T", " ")


@click.group("issue")
def issue_group():
    """Raise and inspect decision topics."""


@issue_group.command("create")
@click.argument("title")
@click.option("--description", "-d", default="", help="Longer context for the decision.")
@click.pass_context
@workflow_errors
def issue_create(ctx, title: str, description: str):
    """Raise a new issue (a decision to make)."""
    actor = require_actor(ctx)
    issue = get_coordinator(ctx).create_issue(title, actor, description=description)
    console.print(f"[green]Created issue[/green] [bold]{issue.id}[/bold]: {issue.title}")


@issue_group.command("list")
@click.pass_context
@workflow_errors
def issue_list(ctx):
    """List every issue, oldest first."""
    issues = get_coordinator(ctx).list_issues()
    if not issues:
        console.print("[yellow]No issues found.[/yellow]")
        return

    table = Table(title="Issues", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold")
    table.add_column("Title", max_width=50)
    table.add_column("Status", width=8)
    table.add_column("Branches", justify="right")
    table.add_column("Author")
    table.add_column("Created At", width=20)
    for issue in issues:
        table.add_row(
            issue.id,
            issue.title,
            styled(issue.status.value),
            str(len(issue.branch_ids)),
            issue.author_id,
            short_time(issue.created_at),
        )
    console.print(table)


@issue_group.command("show")
@click.argument("issue_id")
@click.pass_context
@workflow_errors
def issue_show(ctx, issue_id: str):
    """Show an issue with its branches and pull requests."""
    coordinator = get_coordinator(ctx)
    issue = coordinator.get_issue(issue_id)
    console.print(f"\n[bold]{issue.title}[/bold]  ({issue.id})  {styled(issue.status.value)}")
    console.print(f"[dim]Raised by {issue.author_id} at {short_time(issue.created_at)}[/dim]")
    if issue.description:
        console.print(f"\n{issue.description}")

    branches = coordinator.list_branches(issue.id)
    if branches:
        table = Table(title="Branches", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="bold")
        table.add_column("Name")
        table.add_column("Status")
        table.add_column("Commits", justify="right")
        for b in branches:
            table.add_row(b.id, b.name, styled(b.status.value), str(len(b.commits)))
        console.print(table)
    else:
        console.print("\n[dim]No branches yet.[/dim]")

    prs = coordinator.list_pull_requests(issue_id=issue.id)
    if prs:
        table = Table(title="Pull Requests", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="bold")
        table.add_column("Title")
        table.add_column("Status")
        table.add_column("Reviews", justify="right")
        for pr in prs:
            table.add_row(pr.id, pr.title, styled(pr.status.value), str(len(pr.reviews)))
        console.print(table)


@issue_group.command("status")
@click.argument("issue_id")
@click.argument("status", type=click.Choice([s.value for s in IssueStatus], case_sensitive=False))
@click.pass_context
@workflow_errors
def issue_status(ctx, issue_id: str, status: str):
    """Administratively move an issue forward (OPEN → REVIEW → CLOSED)."""
    actor = require_actor(ctx)
    issue = get_coordinator(ctx).update_issue_status(issue_id, status.upper(), actor)
    console.print(f"Issue [bold]{issue.id}[/bold] is now {styled(issue.status.value)}")
