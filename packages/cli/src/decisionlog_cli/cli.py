"""CLI entry point for decisionlog.

Commands:
  init      — interactive setup wizard
  issue     — raise and inspect decision topics
  branch    — propose options under an issue
  commit    — add typed discussion entries to a branch
  pr        — propose, review, reject and merge branches
  decision  — browse and export decision records
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from decisionlog_cli.commands.branch import branch_group
from decisionlog_cli.commands.commit import commit_group
from decisionlog_cli.commands.decision import decision_group
from decisionlog_cli.commands.init import init_cmd
from decisionlog_cli.commands.issue import issue_group
from decisionlog_cli.commands.pr import pr_group

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .decisionlog.yml settings.

    Store selection hierarchy:
      store: gist   → GistStore   (requires gist_id and github_token)
      store: memory → MemoryStore (nothing survives the process)
      (default)     → SQLiteStore (store_path, or .decisionlog.db)

    This factory lives in cli.py so neither decisionlog_core nor
    decisionlog_store know about the CLI config format.
    """
    from decisionlog_store.sqlite import SQLiteStore

    store_type = config.get("store", "sqlite")

    if store_type == "memory":
        from decisionlog_store.memory import MemoryStore

        return MemoryStore()

    db_path = config.get("store_path") or ".decisionlog.db"

    if store_type == "gist":
        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            console.print(
                f"[yellow]GistStore requires gist_id and a GitHub token. Falling back to SQLite at {db_path}.[/yellow]"
            )
            return SQLiteStore(db_path=db_path)
        from decisionlog_store.gist import GistStore

        return GistStore(gist_id=gist_id, token=token)

    return SQLiteStore(db_path=db_path)


@click.group()
@click.version_option(
    version=importlib.metadata.version("decisionlog"),
    prog_name="decisionlog",
)
@click.option(
    "--config",
    "config_path",
    default=".decisionlog.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="DECISIONLOG_CONFIG",
)
@click.option("--actor", default=None, help="Id recorded as the author of every change. Overrides config.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, actor: str | None, verbose: bool):
    """Log team decisions: issues, branches, pull requests and decision records."""
    from decisionlog_cli.auth import resolve_github_token
    from decisionlog_core.config import load_config

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )

    ctx.ensure_object(dict)

    config = load_config(config_path, cli_overrides={"actor": actor})

    if config.get("store") == "gist" and not config.get("github_token"):
        config["github_token"] = resolve_github_token()

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(init_cmd)
main.add_command(issue_group)
main.add_command(branch_group)
main.add_command(commit_group)
main.add_command(pr_group)
main.add_command(decision_group)
