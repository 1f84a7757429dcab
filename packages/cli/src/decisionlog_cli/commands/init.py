"""init command — interactive setup wizard for a team's decision log.

Writes .decisionlog.yml once so every subsequent teammate just clones and
runs. For the shared Gist store it also creates the team Gist through the
gh CLI, so nobody has to touch the GitHub API by hand.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from pathlib import Path

import click
import yaml
from rich.console import Console

_GIST_FILENAME = "decisionlog.json"  # must match GistStore

console = Console()
logger = logging.getLogger(__name__)


@click.command("init")
@click.option("--path", "config_path", default=".decisionlog.yml", show_default=True, help="Config file to write.")
def init_cmd(config_path: str):
    """Set up decisionlog for your team.

    Chooses a store, the team path shown on decision records and an
    optional digest provider, then writes .decisionlog.yml.
    """
    console.print("\n[bold cyan]decisionlog init[/bold cyan] — team setup wizard\n")

    # --- Choose store backend ---
    console.print("Decision log store:")
    console.print("  [bold]sqlite[/bold]  — local SQLite file (default, good for solo use)")
    console.print("  [bold]gist[/bold]    — shared GitHub Gist, zero infrastructure (recommended for teams)")
    console.print("  [bold]memory[/bold]  — nothing is kept after the command exits (demos)")
    store_type = click.prompt(
        "Store backend",
        type=click.Choice(["sqlite", "gist", "memory"]),
        default="sqlite",
    )

    config: dict = {"store": store_type}

    if store_type == "sqlite":
        db_path = click.prompt("SQLite database path", default=".decisionlog.db")
        if db_path != ".decisionlog.db":
            config["store_path"] = db_path
        console.print(f"[green]SQLite store configured at {db_path}[/green]")

    elif store_type == "gist":
        console.print(
            "\n[yellow]Note:[/yellow] the Gist store needs a token with [bold]gist[/bold] scope, "
            "from GITHUB_TOKEN or an authenticated gh CLI session."
        )
        gist_id = _create_team_gist()
        if gist_id:
            console.print(f"[green]Created team Gist: {gist_id}[/green]")
            config["gist_id"] = gist_id
        else:
            console.print(f"[yellow]Gist creation failed — add gist_id manually to {config_path}[/yellow]")

    # --- Team path ---
    team_path = click.prompt("Team path shown on decision records (e.g. Platform > Backend)", default="")
    if team_path.strip():
        config["team_path"] = team_path.strip()

    # --- Digest provider ---
    digest = click.prompt(
        "Generated digest on merge",
        type=click.Choice(["none", "anthropic", "openai"]),
        default="none",
    )
    if digest != "none":
        config["digest"] = digest
        api_key_env = "ANTHROPIC_API_KEY" if digest == "anthropic" else "OPENAI_API_KEY"
        console.print(
            f"[yellow]Install the extra with [bold]pip install 'decisionlog[{digest}]'[/bold] "
            f"and export [bold]{api_key_env}[/bold].[/yellow]"
        )

    _write_config(config, config_path)
    console.print(f"[green]Wrote {config_path}[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print('Raise your first issue with: [bold]decisionlog issue create "What should we decide?"[/bold]')


def _create_team_gist() -> str | None:
    """Create a private Gist holding an empty decision log and return its ID."""
    tmp_dir = tempfile.mkdtemp()
    # gh names gist files after their path.
    named_path = os.path.join(tmp_dir, _GIST_FILENAME)
    with open(named_path, "w") as f:
        json.dump({}, f)

    try:
        result = subprocess.run(
            ["gh", "gist", "create", "--public=false", "--desc", "decisionlog team decision log", named_path],
            capture_output=True,
            text=True,
            timeout=15,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.warning("gh gist create could not run: %s", e)
        return None
    finally:
        os.unlink(named_path)
        os.rmdir(tmp_dir)

    if result.returncode != 0:
        logger.warning("gh gist create failed: %s", result.stderr.strip())
        return None
    gist_url = result.stdout.strip()
    return gist_url.rstrip("/").split("/")[-1] or None


def _write_config(config: dict, config_path: str) -> None:
    """Write or update the config file, preserving any existing keys."""
    path = Path(config_path)
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
