"""CLI entry point for prassign.

Commands:
  pr     — create, inspect, reassign and merge pull requests
  team   — team CRUD and bulk deactivation
  user   — user CRUD and the reviews assigned to a user
  stats  — reviewer assignment statistics
  init   — interactive setup wizard
"""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prassign_cli.commands.init import init_cmd
from prassign_cli.commands.pr import pr_group
from prassign_cli.commands.stats import stats_cmd
from prassign_cli.commands.team import team_group
from prassign_cli.commands.user import user_group
from prassign_core.errors import AssignmentError

console = Console()

# Error kind → process exit code. Mirrors the HTTP mapping 400/409/404/500.
_EXIT_CODES = {
    "invalid": 2,
    "invalid_state": 3,
    "no_candidates": 3,
    "conflict": 3,
    "not_found": 4,
}


class EngineError(click.ClickException):
    """An AssignmentError surfaced to the terminal with a kind-specific exit code."""

    def __init__(self, error: AssignmentError):
        super().__init__(str(error))
        self.kind = error.kind
        self.exit_code = _EXIT_CODES.get(error.kind, 1)


class _EngineGroup(click.Group):
    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except AssignmentError as e:
            raise EngineError(e) from e


def _build_store(config: dict):
    """Instantiate the configured store from .prassign.yml settings.

    store: sqlite → SQLiteStore (store_path, default .prassign.db). Every
    invocation is a separate process, so the CLI only offers a backend that
    persists; InMemoryStore is for library use and tests.

    This factory lives in cli.py so neither prassign_core nor prassign_store
    know about the CLI config format.
    """
    from prassign_store.sqlite import SQLiteStore

    db_path = config.get("store_path", ".prassign.db")
    return SQLiteStore(db_path=db_path, busy_timeout=float(config.get("busy_timeout", 5.0)))


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    logging.getLogger().setLevel(level)


@click.group(cls=_EngineGroup)
@click.version_option(package_name="prassign", prog_name="prassign")
@click.option(
    "--config",
    "config_path",
    default=".prassign.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRASSIGN_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log engine decisions at DEBUG level.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Assign and manage code reviewers for pull requests within teams."""
    from prassign_core.config import load_config, validate_config
    from prassign_core.deactivation import TeamDeactivationOrchestrator
    from prassign_core.lifecycle import PRLifecycleEngine
    from prassign_core.membership import MembershipService
    from prassign_store.errors import StoreError

    ctx.ensure_object(dict)

    # init only rewrites the config file; it must run even when that file is invalid.
    if ctx.invoked_subcommand == "init":
        ctx.obj["config_path"] = config_path
        return

    try:
        config = load_config(config_path)
        validate_config(config)
    except (ValueError, OSError) as e:
        raise click.UsageError(str(e))

    _configure_logging("DEBUG" if verbose else str(config["log_level"]).upper())

    try:
        store = _build_store(config)
    except StoreError as e:
        raise click.ClickException(str(e))

    engine = PRLifecycleEngine(store, max_reviewers=int(config["max_reviewers"]))
    ctx.obj["config"] = config
    ctx.obj["store"] = store
    ctx.obj["engine"] = engine
    ctx.obj["orchestrator"] = TeamDeactivationOrchestrator(store, engine)
    ctx.obj["membership"] = MembershipService(store)
    ctx.call_on_close(store.close)


main.add_command(pr_group)
main.add_command(team_group)
main.add_command(user_group)
main.add_command(stats_cmd)
main.add_command(init_cmd)
