"""team commands — team CRUD and bulk deactivation."""

from __future__ import annotations

import click
from rich.table import Table

from prassign_cli.refs import membership, resolve_team, usernames
from prassign_cli.render import console, echo_json, print_team


@click.group("team")
def team_group():
    """Create, inspect, rename, delete and deactivate teams."""


@team_group.command("create")
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Print the created team as JSON.")
@click.pass_context
def create_cmd(ctx, name: str, as_json: bool):
    """Create a team with a unique NAME."""
    team = membership(ctx).create_team(name)
    if as_json:
        echo_json(team)
        return
    console.print(f"[green]Created team {team.name}[/green] [dim]{team.id}[/dim]")


@team_group.command("get")
@click.argument("team")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON.")
@click.pass_context
def get_cmd(ctx, team: str, as_json: bool):
    """Show a team (by id or name) and its members."""
    found = membership(ctx).get_team(resolve_team(ctx, team))
    if as_json:
        echo_json(found)
        return
    print_team(found)


@team_group.command("update")
@click.argument("team")
@click.option("--name", required=True, help="New team name.")
@click.option("--json", "as_json", is_flag=True, help="Print the updated team as JSON.")
@click.pass_context
def update_cmd(ctx, team: str, name: str, as_json: bool):
    """Rename a team."""
    updated = membership(ctx).update_team(resolve_team(ctx, team), name)
    if as_json:
        echo_json(updated)
        return
    console.print(f"[green]Renamed team to {updated.name}[/green]")


@team_group.command("delete")
@click.argument("team")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def delete_cmd(ctx, team: str, yes: bool):
    """Delete a team. Its members stay, without a team."""
    team_id = resolve_team(ctx, team)
    if not yes:
        click.confirm(f"Delete team {team}?", abort=True)
    membership(ctx).delete_team(team_id)
    console.print(f"[green]Deleted team {team}[/green]")


@team_group.command("deactivate")
@click.argument("team")
@click.option("--json", "as_json", is_flag=True, help="Print the deactivation report as JSON.")
@click.pass_context
def deactivate_cmd(ctx, team: str, as_json: bool):
    """Deactivate every active member of a team.

    Open pull requests reviewed by those members are reassigned first, one
    by one. Reassignments that cannot be made are reported and left as is.
    """
    report = ctx.obj["orchestrator"].deactivate_team_members(resolve_team(ctx, team))

    if as_json:
        echo_json(report)
        return

    console.print(f"[bold]Deactivated {report.deactivated} member(s)[/bold]")
    if not report.outcomes:
        return

    names = usernames(ctx)
    table = Table(title="Reassignments", show_header=True, header_style="bold cyan")
    table.add_column("PR", style="dim", no_wrap=True)
    table.add_column("Reviewer")
    table.add_column("Outcome")
    table.add_column("Detail")
    for outcome in report.outcomes:
        if outcome.new_reviewer_id:
            result, detail = "[green]reassigned[/green]", f"→ {names.get(outcome.new_reviewer_id, outcome.new_reviewer_id)}"
        else:
            result, detail = "[yellow]skipped[/yellow]", outcome.reason or ""
        table.add_row(outcome.pr_id, names.get(outcome.reviewer_id, outcome.reviewer_id), result, detail)
    console.print(table)
