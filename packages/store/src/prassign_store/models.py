"""Membership and pull request data models.

Decoupled from prassign_core so the store layer can be used independently
and prassign_core only ever sees these plain dataclasses, never rows.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime


class PRStatus(str, enum.Enum):
    """Pull request lifecycle state. OPEN is initial, MERGED is terminal."""

    OPEN = "OPEN"
    MERGED = "MERGED"


@dataclass
class User:
    """A team member. Only active users are eligible as reviewers."""

    id: str
    username: str
    team_id: str | None = None
    is_active: bool = True


@dataclass
class Team:
    """A named group of users who review each other's pull requests.

    ``members`` is derived from users.team_id and only populated by reads that
    ask for it (get_team with members, the CLI `team get` command).
    """

    id: str
    name: str
    members: list[User] = field(default_factory=list)


@dataclass
class PullRequest:
    """A pull request and its currently assigned reviewers.

    ``reviewers`` holds user ids ordered by assignment time, oldest first.
    """

    id: str
    title: str
    author_id: str
    status: PRStatus = PRStatus.OPEN
    created_at: datetime | None = None
    merged_at: datetime | None = None
    reviewers: list[str] = field(default_factory=list)

    @property
    def is_merged(self) -> bool:
        return self.status == PRStatus.MERGED

