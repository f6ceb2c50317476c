"""In-memory store — zero configuration, nothing survives the process.

Used by the test suite and by `store: memory` for throwaway sessions. It
follows the same contracts as SQLiteStore: one re-entrant lock stands in for
the database write lock, so every method is atomic with respect to the others
and guarded writes (swap_reviewer, merge_pr) re-check state under that lock.
"""

from __future__ import annotations

import copy
import itertools
import threading
from datetime import datetime
from typing import Iterable

from prassign_store.base import BaseStore
from prassign_store.errors import DuplicateError, StaleStateError, StoreError
from prassign_store.models import PRStatus, PullRequest, Team, User


class InMemoryStore(BaseStore):
    """Keeps every row in dicts; returns copies so callers cannot mutate state."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._teams: dict[str, Team] = {}
        self._users: dict[str, User] = {}
        self._prs: dict[str, PullRequest] = {}
        # pr_id -> [(assigned_at, seq, reviewer_id)]; seq breaks timestamp ties
        self._links: dict[str, list[tuple[datetime, int, str]]] = {}
        self._pr_seq: dict[str, int] = {}
        self._seq = itertools.count()

    # ------------------------------------------------------------------ #
    # Teams                                                                #
    # ------------------------------------------------------------------ #

    def create_team(self, team: Team) -> None:
        with self._lock:
            if team.id in self._teams:
                raise DuplicateError(f"team id {team.id} already exists")
            if any(t.name == team.name for t in self._teams.values()):
                raise DuplicateError(f"team name {team.name!r} already exists")
            self._teams[team.id] = Team(id=team.id, name=team.name)

    def get_team(self, team_id: str) -> Team | None:
        with self._lock:
            team = self._teams.get(team_id)
            return copy.deepcopy(team) if team else None

    def get_team_by_name(self, name: str) -> Team | None:
        with self._lock:
            for team in self._teams.values():
                if team.name == name:
                    return copy.deepcopy(team)
            return None

    def update_team(self, team: Team) -> bool:
        with self._lock:
            if team.id not in self._teams:
                return False
            if any(t.name == team.name and t.id != team.id for t in self._teams.values()):
                raise DuplicateError(f"team name {team.name!r} already exists")
            self._teams[team.id].name = team.name
            return True

    def delete_team(self, team_id: str) -> bool:
        with self._lock:
            if self._teams.pop(team_id, None) is None:
                return False
            for user in self._users.values():
                if user.team_id == team_id:
                    user.team_id = None
            return True

    def get_team_members(self, team_id: str) -> list[User]:
        with self._lock:
            members = [u for u in self._users.values() if u.team_id == team_id]
            return [copy.copy(u) for u in sorted(members, key=lambda u: u.username)]

    def get_active_team_members(self, team_id: str, exclude_ids: Iterable[str] | None = None) -> list[User]:
        exclude = set(exclude_ids or ())
        return [u for u in self.get_team_members(team_id) if u.is_active and u.id not in exclude]

    def deactivate_team_users(self, team_id: str) -> int:
        with self._lock:
            changed = 0
            for user in self._users.values():
                if user.team_id == team_id and user.is_active:
                    user.is_active = False
                    changed += 1
            return changed

    # ------------------------------------------------------------------ #
    # Users                                                                #
    # ------------------------------------------------------------------ #

    def create_user(self, user: User) -> None:
        with self._lock:
            if user.id in self._users:
                raise DuplicateError(f"user id {user.id} already exists")
            if any(u.username == user.username for u in self._users.values()):
                raise DuplicateError(f"username {user.username!r} already exists")
            self._check_team(user.team_id)
            self._users[user.id] = copy.copy(user)

    def get_user(self, user_id: str) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return copy.copy(user) if user else None

    def update_user(self, user: User) -> bool:
        with self._lock:
            if user.id not in self._users:
                return False
            if any(u.username == user.username and u.id != user.id for u in self._users.values()):
                raise DuplicateError(f"username {user.username!r} already exists")
            self._check_team(user.team_id)
            self._users[user.id] = copy.copy(user)
            return True

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            if self._users.pop(user_id, None) is None:
                return False
            for pr_id in [p.id for p in self._prs.values() if p.author_id == user_id]:
                del self._prs[pr_id]
                self._links.pop(pr_id, None)
                self._pr_seq.pop(pr_id, None)
            for pr_id, links in self._links.items():
                self._links[pr_id] = [link for link in links if link[2] != user_id]
            return True

    def list_users(self) -> list[User]:
        with self._lock:
            return [copy.copy(u) for u in sorted(self._users.values(), key=lambda u: u.username)]

    # ------------------------------------------------------------------ #
    # Pull requests                                                        #
    # ------------------------------------------------------------------ #

    def create_pr_with_reviewers(self, pr: PullRequest, reviewer_ids: list[str]) -> None:
        with self._lock:
            # Validate everything before the first write so a failure leaves no trace.
            if pr.id in self._prs:
                raise DuplicateError(f"pull request {pr.id} already exists")
            if pr.author_id not in self._users:
                raise StoreError(f"author {pr.author_id} does not exist")
            if len(set(reviewer_ids)) != len(reviewer_ids):
                raise DuplicateError(f"duplicate reviewer in {reviewer_ids}")
            for reviewer_id in reviewer_ids:
                if reviewer_id not in self._users:
                    raise StoreError(f"reviewer {reviewer_id} does not exist")

            stored = copy.copy(pr)
            stored.reviewers = []
            self._prs[pr.id] = stored
            self._pr_seq[pr.id] = next(self._seq)
            self._links[pr.id] = [(pr.created_at, next(self._seq), rid) for rid in reviewer_ids]

    def get_pr(self, pr_id: str) -> PullRequest | None:
        with self._lock:
            return self._snapshot(pr_id) if pr_id in self._prs else None

    def list_prs(self) -> list[PullRequest]:
        with self._lock:
            return [self._snapshot(pr_id) for pr_id in self._newest_first(self._prs)]

    def list_prs_by_reviewer(self, user_id: str) -> list[PullRequest]:
        with self._lock:
            ids = [pr_id for pr_id, links in self._links.items() if any(link[2] == user_id for link in links)]
            return [self._snapshot(pr_id) for pr_id in self._newest_first(ids)]

    def swap_reviewer(self, pr_id: str, old_id: str, new_id: str, assigned_at: datetime) -> None:
        with self._lock:
            pr = self._prs.get(pr_id)
            if pr is None:
                raise StaleStateError(StaleStateError.NOT_FOUND, f"pull request {pr_id} not found")
            if pr.status == PRStatus.MERGED:
                raise StaleStateError(StaleStateError.MERGED, f"pull request {pr_id} is merged")
            links = self._links.setdefault(pr_id, [])
            current = [link[2] for link in links]
            if old_id not in current:
                raise StaleStateError(StaleStateError.NOT_ASSIGNED, f"reviewer {old_id} is not assigned to {pr_id}")
            new_user = self._users.get(new_id)
            if new_user is None or not new_user.is_active:
                raise StaleStateError(StaleStateError.UNAVAILABLE, f"reviewer {new_id} is missing or inactive")
            if new_id in current:
                raise DuplicateError(f"reviewer {new_id} is already assigned to {pr_id}")
            self._links[pr_id] = [link for link in links if link[2] != old_id]
            self._links[pr_id].append((assigned_at, next(self._seq), new_id))

    def merge_pr(self, pr_id: str, merged_at: datetime) -> PullRequest | None:
        with self._lock:
            pr = self._prs.get(pr_id)
            if pr is None:
                return None
            if pr.status == PRStatus.OPEN:
                pr.status = PRStatus.MERGED
                pr.merged_at = merged_at
            return self._snapshot(pr_id)

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _check_team(self, team_id: str | None) -> None:
        if team_id is not None and team_id not in self._teams:
            raise StoreError(f"team {team_id} does not exist")

    def _newest_first(self, pr_ids: Iterable[str]) -> list[str]:
        return sorted(
            pr_ids,
            key=lambda pr_id: (self._prs[pr_id].created_at, self._pr_seq[pr_id]),
            reverse=True,
        )

    def _snapshot(self, pr_id: str) -> PullRequest:
        pr = copy.copy(self._prs[pr_id])
        pr.reviewers = [rid for _, _, rid in sorted(self._links.get(pr_id, []), key=lambda link: link[:2])]
        return pr
