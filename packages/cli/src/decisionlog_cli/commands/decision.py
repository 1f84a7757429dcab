"""decision commands — browse and export decision records."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from decisionlog_cli.commands.issue import short_time
from decisionlog_cli.context import get_coordinator, workflow_errors
from decisionlog_core.render import render_decision_record

console = Console()


@click.group("decision")
def decision_group():
    """Browse and export decision records."""


@decision_group.command("list")
@click.option("--issue", "issue_id", default=None, help="Only records of this issue.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of records to show.")
@click.pass_context
@workflow_errors
def decision_list(ctx, issue_id: str | None, limit: int):
    """List decision records, most recent first."""
    records = get_coordinator(ctx).list_decisions(issue_id=issue_id)
    if not records:
        console.print("[yellow]No decision records found.[/yellow]")
        return

    records = list(reversed(records))[:limit]

    table = Table(title="Decision Records", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold")
    table.add_column("Issue", max_width=40)
    table.add_column("Decision", max_width=40)
    table.add_column("Decided By")
    table.add_column("Evidence", justify="right")
    table.add_column("Decided At", width=20)
    for r in records:
        table.add_row(
            r.id,
            r.issue_title,
            r.decision,
            r.decision_maker,
            str(len(r.evidence_summary)),
            short_time(r.created_at),
        )
    console.print(table)


@decision_group.command("show")
@click.argument("record_id")
@click.pass_context
@workflow_errors
def decision_show(ctx, record_id: str):
    """Print a decision record."""
    record = get_coordinator(ctx).get_decision(record_id)
    text = render_decision_record(record, names=ctx.obj["config"].get("names"))
    console.print(text, markup=False, highlight=False)


@decision_group.command("export")
@click.argument("record_id")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Write to this file instead of stdout.")
@click.pass_context
@workflow_errors
def decision_export(ctx, record_id: str, output: str | None):
    """Export a decision record as plain markdown text."""
    record = get_coordinator(ctx).get_decision(record_id)
    text = render_decision_record(record, names=ctx.obj["config"].get("names"))
    if output is None:
        click.echo(text)
        return
    Path(output).write_text(text + "\n", encoding="utf-8")
    console.print(f"[green]Wrote {output}[/green]")
