"""user commands — user CRUD and review assignments."""

from __future__ import annotations

import click

from prassign_cli.refs import membership, resolve_team, resolve_user, usernames
from prassign_cli.render import console, echo_json, print_prs, print_users
from prassign_core.membership import KEEP


@click.group("user")
def user_group():
    """Create, inspect, update and delete users."""


def _team_names(ctx) -> dict[str, str]:
    teams = {}
    for user in membership(ctx).list_users():
        if user.team_id and user.team_id not in teams:
            teams[user.team_id] = membership(ctx).get_team(user.team_id).name
    return teams


@user_group.command("create")
@click.argument("username")
@click.option("--team", default=None, help="Team id or name.")
@click.option("--inactive", is_flag=True, help="Create the user inactive (never picked as reviewer).")
@click.option("--json", "as_json", is_flag=True, help="Print the created user as JSON.")
@click.pass_context
def create_cmd(ctx, username: str, team: str | None, inactive: bool, as_json: bool):
    """Create a user, optionally in a team."""
    team_id = resolve_team(ctx, team) if team else None
    user = membership(ctx).create_user(username, team_id=team_id, is_active=not inactive)
    if as_json:
        echo_json(user)
        return
    console.print(f"[green]Created user {user.username}[/green] [dim]{user.id}[/dim]")


@user_group.command("get")
@click.argument("user")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON.")
@click.pass_context
def get_cmd(ctx, user: str, as_json: bool):
    """Show a user (by id or username)."""
    found = membership(ctx).get_user(resolve_user(ctx, user))
    if as_json:
        echo_json(found)
        return
    print_users([found], _team_names(ctx), title=found.username)


@user_group.command("list")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON.")
@click.pass_context
def list_cmd(ctx, as_json: bool):
    """List every user."""
    users = membership(ctx).list_users()
    if as_json:
        echo_json(users)
        return
    if not users:
        console.print("[yellow]No users found.[/yellow]")
        return
    print_users(users, _team_names(ctx))


@user_group.command("update")
@click.argument("user")
@click.option("--username", default=None, help="New username.")
@click.option("--team", default=None, help="Move to this team (id or name).")
@click.option("--no-team", is_flag=True, help="Remove the user from their team.")
@click.option("--active/--inactive", "is_active", default=None, help="Set the active flag.")
@click.option("--json", "as_json", is_flag=True, help="Print the updated user as JSON.")
@click.pass_context
def update_cmd(ctx, user: str, username: str | None, team: str | None, no_team: bool, is_active, as_json: bool):
    """Change a user's name, team or active flag.

    Deactivating a single user does not reassign their open reviews; use
    `prassign team deactivate` for that.
    """
    if team and no_team:
        raise click.UsageError("--team and --no-team are mutually exclusive.")

    team_id = KEEP
    if no_team:
        team_id = None
    elif team:
        team_id = resolve_team(ctx, team)

    updated = membership(ctx).update_user(
        resolve_user(ctx, user),
        username=username,
        team_id=team_id,
        is_active=is_active,
    )
    if as_json:
        echo_json(updated)
        return
    console.print(f"[green]Updated user {updated.username}[/green]")


@user_group.command("delete")
@click.argument("user")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def delete_cmd(ctx, user: str, yes: bool):
    """Delete a user, their reviewer assignments and the PRs they authored."""
    user_id = resolve_user(ctx, user)
    if not yes:
        click.confirm(f"Delete user {user} and the pull requests they authored?", abort=True)
    membership(ctx).delete_user(user_id)
    console.print(f"[green]Deleted user {user}[/green]")


@user_group.command("reviews")
@click.argument("user")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON.")
@click.pass_context
def reviews_cmd(ctx, user: str, as_json: bool):
    """List pull requests the user is assigned to review, newest first."""
    user_id = resolve_user(ctx, user)
    prs = membership(ctx).get_reviews_assigned_to_user(user_id)
    if as_json:
        echo_json(prs)
        return
    if not prs:
        console.print("[yellow]No pull requests assigned.[/yellow]")
        return
    print_prs(prs, usernames(ctx), title=f"Reviews assigned to {user}")
