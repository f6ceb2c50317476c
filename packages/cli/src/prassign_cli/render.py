"""Shared terminal rendering for the command modules."""

from __future__ import annotations

import dataclasses
import enum
import json
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from prassign_store.models import PRStatus, PullRequest, Team, User

console = Console()

_STATUS_STYLE = {PRStatus.OPEN: "green", PRStatus.MERGED: "magenta"}


def _default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def echo_json(obj) -> None:
    """Print dataclasses (or lists of them) as JSON on stdout, unstyled."""
    if isinstance(obj, list):
        data = [dataclasses.asdict(o) for o in obj]
    elif dataclasses.is_dataclass(obj):
        data = dataclasses.asdict(obj)
    else:
        data = obj
    click.echo(json.dumps(data, indent=2, default=_default))


def _fmt_ts(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "—"


def _names(ids: list[str], usernames: dict[str, str]) -> str:
    return ", ".join(usernames.get(i, i) for i in ids) or "[dim]none[/dim]"


def print_prs(prs: list[PullRequest], usernames: dict[str, str], title: str = "Pull Requests") -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", max_width=40)
    table.add_column("Author")
    table.add_column("Status", width=8)
    table.add_column("Reviewers")
    table.add_column("Created", width=19)
    table.add_column("Merged", width=19)

    for pr in prs:
        style = _STATUS_STYLE.get(pr.status, "white")
        table.add_row(
            pr.id,
            pr.title,
            usernames.get(pr.author_id, pr.author_id),
            f"[{style}]{pr.status.value}[/{style}]",
            _names(pr.reviewers, usernames),
            _fmt_ts(pr.created_at),
            _fmt_ts(pr.merged_at),
        )
    console.print(table)


def print_pr(pr: PullRequest, usernames: dict[str, str]) -> None:
    style = _STATUS_STYLE.get(pr.status, "white")
    console.print(f"\n[bold]{pr.title}[/bold]  [dim]{pr.id}[/dim]")
    console.print(f"  Status:    [{style}]{pr.status.value}[/{style}]")
    console.print(f"  Author:    {usernames.get(pr.author_id, pr.author_id)}")
    console.print(f"  Reviewers: {_names(pr.reviewers, usernames)}")
    console.print(f"  Created:   {_fmt_ts(pr.created_at)}")
    console.print(f"  Merged:    {_fmt_ts(pr.merged_at)}")


def print_users(users: list[User], teams: dict[str, str], title: str = "Users") -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Username", style="bold")
    table.add_column("Team")
    table.add_column("Active", justify="center")
    for user in users:
        table.add_row(
            user.id,
            user.username,
            teams.get(user.team_id, user.team_id) if user.team_id else "—",
            "[green]yes[/green]" if user.is_active else "[red]no[/red]",
        )
    console.print(table)


def print_team(team: Team) -> None:
    active = sum(1 for m in team.members if m.is_active)
    console.print(f"\n[bold]{team.name}[/bold]  [dim]{team.id}[/dim]")
    console.print(f"  Members: {len(team.members)} ({active} active)")
    if team.members:
        print_users(team.members, {team.id: team.name}, title=f"Members of {team.name}")
