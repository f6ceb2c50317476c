"""stats command — aggregate reviewer assignment patterns."""

from __future__ import annotations

import click
from rich.table import Table

from prassign_cli.render import console, echo_json


@click.command("stats")
@click.option("--top", default=20, show_default=True, help="Number of top entries to show per category.")
@click.option("--json", "as_json", is_flag=True, help="Print as JSON.")
@click.pass_context
def stats_cmd(ctx, top: int, as_json: bool):
    """Show reviewer assignment statistics.

    Reports how many reviews each user currently holds and how many reviewers
    each pull request has. Use it to spot overloaded reviewers and PRs that
    could not be staffed.
    """
    from prassign_core.stats import compute_review_stats

    stats = compute_review_stats(ctx.obj["store"], top=top)

    if as_json:
        echo_json(stats)
        return

    if not stats.total_prs and not stats.by_user:
        console.print("[yellow]No users or pull requests yet.[/yellow]")
        return

    # --- Summary ---
    console.print("\n[bold]Reviewer assignment stats[/bold]")
    console.print(f"  Pull requests:   {stats.total_prs} ({stats.open_prs} open, {stats.merged_prs} merged)")
    console.print(f"  Assignments:     {stats.total_assignments}")
    console.print(f"  Avg per PR:      {stats.average_reviewers_per_pr:.2f}")

    # --- Per user ---
    if stats.by_user:
        user_table = Table(title=f"Top {top} Reviewers by Assignments", show_header=True)
        user_table.add_column("User", style="bold")
        user_table.add_column("Assignments", justify="right")
        for entry in stats.by_user:
            user_table.add_row(entry.username, str(entry.assignments))
        console.print(user_table)

    # --- Per PR ---
    if stats.by_pr:
        pr_table = Table(title=f"Top {top} Pull Requests by Reviewers", show_header=True)
        pr_table.add_column("Title", max_width=40)
        pr_table.add_column("Status")
        pr_table.add_column("Reviewers", justify="right")
        for entry in stats.by_pr:
            pr_table.add_row(entry.title, entry.status.value, str(entry.reviewers_count))
        console.print(pr_table)
