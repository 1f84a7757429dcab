"""pr commands — propose, review, reject and merge branches."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from decisionlog_cli.commands.branch import commit_line
from decisionlog_cli.commands.issue import short_time, styled
from decisionlog_cli.context import get_coordinator, require_actor, workflow_errors
from decisionlog_core.render import render_decision_record
from decisionlog_store.models import PullRequestStatus, ReviewVerdict

console = Console()

_VERDICT_STYLE = {
    "APPROVE": "green",
    "COMMENT": "yellow",
    "REQUEST_CHANGES": "red",
}


@click.group("pr")
def pr_group():
    """Propose, review, reject and merge branches."""


@pr_group.command("create")
@click.argument("issue_id")
@click.argument("branch_ids", nargs=-1, required=True)
@click.option("--title", default=None, help="PR title. Defaults to the branch names.")
@click.option(
    "--rationale",
    "-r",
    "rationale",
    multiple=True,
    help="One rationale line; repeat for several. Copied into the decision record.",
)
@click.pass_context
@workflow_errors
def pr_create(ctx, issue_id: str, branch_ids: tuple[str, ...], title: str | None, rationale: tuple[str, ...]):
    """Propose BRANCH_IDS of ISSUE_ID for a decision.

    Pass one branch for a single-branch PR or several for a multi-branch PR.
    """
    actor = require_actor(ctx)
    pr = get_coordinator(ctx).create_pull_request(
        issue_id, list(branch_ids), actor, rationale="\n".join(rationale), title=title
    )
    kind = "multi-branch PR" if pr.is_multi_branch else "PR"
    console.print(f"[green]Opened {kind}[/green] [bold]{pr.id}[/bold]: {pr.title}")


@pr_group.command("list")
@click.option("--issue", "issue_id", default=None, help="Only PRs of this issue.")
@click.option(
    "--status",
    type=click.Choice([s.value for s in PullRequestStatus], case_sensitive=False),
    default=None,
    help="Only PRs in this status.",
)
@click.pass_context
@workflow_errors
def pr_list(ctx, issue_id: str | None, status: str | None):
    """List pull requests, newest first."""
    prs = get_coordinator(ctx).list_pull_requests(issue_id=issue_id, status=status.upper() if status else None)
    if not prs:
        console.print("[yellow]No pull requests found.[/yellow]")
        return

    table = Table(title="Pull Requests", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold")
    table.add_column("Title", max_width=40)
    table.add_column("Issue")
    table.add_column("Branches", justify="right")
    table.add_column("Status")
    table.add_column("Reviews", justify="right")
    table.add_column("Created At", width=20)
    for pr in reversed(prs):
        table.add_row(
            pr.id,
            pr.title,
            pr.issue_id,
            str(len(pr.branch_ids)),
            styled(pr.status.value),
            str(len(pr.reviews)),
            short_time(pr.created_at),
        )
    console.print(table)


@pr_group.command("show")
@click.argument("pr_id")
@click.pass_context
@workflow_errors
def pr_show(ctx, pr_id: str):
    """Show a PR, its reviews and the commits it can cite as evidence."""
    coordinator = get_coordinator(ctx)
    pr = coordinator.get_pull_request(pr_id)
    console.print(f"\n[bold]{pr.title}[/bold]  ({pr.id})  {styled(pr.status.value)}")
    console.print(
        f"[dim]Issue {pr.issue_id} · {', '.join(pr.branch_ids)} → {pr.target} · "
        f"by {pr.author_id} at {short_time(pr.created_at)}[/dim]"
    )
    if pr.description:
        console.print(f"\n[bold]Rationale[/bold]\n{pr.description}")

    if pr.reviews:
        console.print("\n[bold]Reviews[/bold]")
        for r in pr.reviews:
            style = _VERDICT_STYLE.get(r.verdict.value, "white")
            console.print(f"  [{style}]{r.verdict.value}[/{style}] [bold]{r.reviewer_id}[/bold]: {r.comment}  [dim]{r.id}[/dim]")

    candidates = coordinator.evidence_candidates(pr.id)
    console.print(f"\n[bold]Evidence candidates[/bold] ({len(candidates)})")
    for commit in candidates:
        console.print(f"  {commit_line(commit)}")


@pr_group.command("review")
@click.argument("pr_id")
@click.argument("comment")
@click.option(
    "--verdict",
    type=click.Choice([v.value for v in ReviewVerdict], case_sensitive=False),
    default=ReviewVerdict.COMMENT.value,
    show_default=True,
)
@click.pass_context
@workflow_errors
def pr_review(ctx, pr_id: str, comment: str, verdict: str):
    """Add a review COMMENT to an open PR."""
    actor = require_actor(ctx)
    pr = get_coordinator(ctx).add_review(pr_id, actor, comment, verdict=verdict.upper())
    review = pr.reviews[-1]
    console.print(f"[green]Review added[/green] [bold]{review.id}[/bold] ({review.verdict.value})")


@pr_group.command("unreview")
@click.argument("pr_id")
@click.argument("review_id")
@click.pass_context
@workflow_errors
def pr_unreview(ctx, pr_id: str, review_id: str):
    """Delete a review. Deleting a review that is already gone is not an error."""
    get_coordinator(ctx).delete_review(pr_id, review_id)
    console.print(f"Review {review_id} removed from {pr_id}.")


@pr_group.command("reject")
@click.argument("pr_id")
@click.option(
    "--branch",
    "branch_ids",
    multiple=True,
    help="Also mark this source branch REJECTED; repeat for several.",
)
@click.pass_context
@workflow_errors
def pr_reject(ctx, pr_id: str, branch_ids: tuple[str, ...]):
    """Decline a PR. The issue stays open for other proposals."""
    actor = require_actor(ctx)
    pr = get_coordinator(ctx).reject(pr_id, actor, rejected_branch_ids=branch_ids)
    console.print(f"PR [bold]{pr.id}[/bold] is now {styled(pr.status.value)}")


@pr_group.command("merge")
@click.argument("pr_id")
@click.option("--content", required=True, help="What was decided.")
@click.option("--opinion", required=True, help="The adopted option, e.g. the winning branch.")
@click.option("--reason", "reasons", multiple=True, required=True, help="Why; repeat for several reasons.")
@click.option("--select", "selected", multiple=True, help="Commit id to cite as evidence; repeat for several.")
@click.option("--all", "select_all", is_flag=True, help="Cite every commit of the PR's branches.")
@click.option("--digest/--no-digest", default=None, help="Generate a digest with the configured provider.")
@click.pass_context
@workflow_errors
def pr_merge(
    ctx,
    pr_id: str,
    content: str,
    opinion: str,
    reasons: tuple[str, ...],
    selected: tuple[str, ...],
    select_all: bool,
    digest: bool | None,
):
    """Merge a PR, close its issue and print the resulting decision record."""
    if selected and select_all:
        raise click.UsageError("--select and --all are mutually exclusive.")
    actor = require_actor(ctx)
    config = ctx.obj["config"]
    use_digest = bool(config.get("digest")) if digest is None else digest
    if digest and not config.get("digest"):
        raise click.UsageError("No digest provider configured. Set 'digest: anthropic' or 'digest: openai'.")

    coordinator = get_coordinator(ctx, with_digest=use_digest)
    if select_all:
        selected = tuple(c.id for c in coordinator.evidence_candidates(pr_id))

    record = coordinator.merge(pr_id, selected, content, list(reasons), opinion, actor)
    console.print(f"[green]Merged {pr_id}.[/green] Decision record [bold]{record.id}[/bold]\n")
    console.print(render_decision_record(record, names=config.get("names")), markup=False, highlight=False)
