"""Resolve command-line references (id or name) to store ids."""

from __future__ import annotations

import click

from prassign_core.errors import NotFoundError, TeamNotFoundError, UserNotFoundError
from prassign_core.membership import MembershipService


def membership(ctx: click.Context) -> MembershipService:
    return ctx.obj["membership"]


def resolve_team(ctx: click.Context, ref: str) -> str:
    """Accept a team id or a team name."""
    service = membership(ctx)
    try:
        return service.get_team(ref).id
    except NotFoundError:
        pass
    try:
        return service.get_team_by_name(ref).id
    except NotFoundError:
        raise TeamNotFoundError(ref) from None


def resolve_user(ctx: click.Context, ref: str) -> str:
    """Accept a user id or a username."""
    service = membership(ctx)
    try:
        return service.get_user(ref).id
    except NotFoundError:
        pass
    for user in service.list_users():
        if user.username == ref:
            return user.id
    raise UserNotFoundError(ref)


def usernames(ctx: click.Context) -> dict[str, str]:
    return {u.id: u.username for u in membership(ctx).list_users()}
