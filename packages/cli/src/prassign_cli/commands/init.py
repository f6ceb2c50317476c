"""init command — interactive setup wizard.

Writes .prassign.yml once so every later invocation picks up the same database
and reviewer settings without flags.
"""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()


@click.command("init")
@click.pass_context
def init_cmd(ctx):
    """Set up prassign in the current directory.

    Chooses the SQLite database path and reviewer settings and writes them to
    the configuration file (.prassign.yml unless --config says otherwise).
    """
    config_path = Path(ctx.obj.get("config_path", ".prassign.yml")) if ctx.obj else Path(".prassign.yml")

    console.print("\n[bold cyan]prassign init[/bold cyan] — setup wizard\n")

    # --- Store ---
    db_path = click.prompt("SQLite database path", default=".prassign.db")
    config: dict = {"store": "sqlite", "store_path": db_path}
    console.print(f"[green]SQLite store configured at {db_path}[/green]")

    # --- Reviewer settings ---
    config["max_reviewers"] = click.prompt(
        "Reviewers assigned per new pull request",
        type=click.IntRange(0, 2),
        default=2,
    )

    # --- Write config ---
    _write_config(config_path, config)
    console.print(f"[green]Created {config_path}[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Create a team with: [bold]prassign team create <name>[/bold]")


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        loaded = yaml.safe_load(path.read_text())
        # A file that is not a mapping cannot be merged; the wizard replaces it.
        if isinstance(loaded, dict):
            existing = loaded
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
