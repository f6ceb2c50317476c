"""pr commands — create, inspect, reassign and merge pull requests."""

from __future__ import annotations

import dataclasses

import click

from prassign_cli.refs import resolve_user, usernames
from prassign_cli.render import console, echo_json, print_pr, print_prs
from prassign_store.models import PRStatus


@click.group("pr")
def pr_group():
    """Pull request lifecycle: create → reassign* → merge."""


@pr_group.command("create")
@click.option("--title", required=True, help="Pull request title.")
@click.option("--author", required=True, help="Author user id or username.")
@click.option("--json", "as_json", is_flag=True, help="Print the created PR as JSON.")
@click.pass_context
def create_cmd(ctx, title: str, author: str, as_json: bool):
    """Create a pull request and assign up to two reviewers from the author's team."""
    author_id = resolve_user(ctx, author)
    pr = ctx.obj["engine"].create_pr(title, author_id)

    if as_json:
        echo_json(pr)
        return
    console.print(f"[green]Created pull request {pr.id}[/green]")
    if not pr.reviewers:
        console.print("[yellow]No active teammates available — no reviewers assigned.[/yellow]")
    print_pr(pr, usernames(ctx))


@pr_group.command("get")
@click.argument("pr_id")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON.")
@click.pass_context
def get_cmd(ctx, pr_id: str, as_json: bool):
    """Show one pull request."""
    pr = ctx.obj["engine"].get_pr(pr_id)
    if as_json:
        echo_json(pr)
        return
    print_pr(pr, usernames(ctx))


@pr_group.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in PRStatus], case_sensitive=False),
    default=None,
    help="Only show pull requests in this state.",
)
@click.option("--json", "as_json", is_flag=True, help="Print as JSON.")
@click.pass_context
def list_cmd(ctx, status: str | None, as_json: bool):
    """List pull requests, newest first."""
    prs = ctx.obj["engine"].list_prs()
    if status is not None:
        prs = [pr for pr in prs if pr.status == PRStatus(status.upper())]

    if as_json:
        echo_json(prs)
        return
    if not prs:
        console.print("[yellow]No pull requests found.[/yellow]")
        return
    print_prs(prs, usernames(ctx))


@pr_group.command("reassign")
@click.argument("pr_id")
@click.option("--reviewer", required=True, help="Reviewer to replace (user id or username).")
@click.option("--json", "as_json", is_flag=True, help="Print the updated PR as JSON.")
@click.pass_context
def reassign_cmd(ctx, pr_id: str, reviewer: str, as_json: bool):
    """Replace one reviewer with another active member of that reviewer's team."""
    old_id = resolve_user(ctx, reviewer)
    result = ctx.obj["engine"].reassign_reviewer(pr_id, old_id)

    if as_json:
        echo_json({"pr": dataclasses.asdict(result.pr), "replaced_by": result.new_reviewer_id})
        return
    names = usernames(ctx)
    console.print(
        f"[green]Reassigned:[/green] {names.get(old_id, old_id)} → "
        f"{names.get(result.new_reviewer_id, result.new_reviewer_id)}"
    )
    print_pr(result.pr, names)


@pr_group.command("merge")
@click.argument("pr_id")
@click.option("--json", "as_json", is_flag=True, help="Print the merged PR as JSON.")
@click.pass_context
def merge_cmd(ctx, pr_id: str, as_json: bool):
    """Mark a pull request merged. Safe to repeat."""
    pr = ctx.obj["engine"].merge_pr(pr_id)
    if as_json:
        echo_json(pr)
        return
    console.print(f"[magenta]Merged[/magenta] {pr.id} at {pr.merged_at:%Y-%m-%d %H:%M:%S}")
