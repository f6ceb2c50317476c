"""Abstract store interface.

Any storage backend (SQLite, in-memory, Postgres) implements this interface.
prassign_core depends on BaseStore, not on a concrete backend, so backends
are swappable without touching the engine.

Reads return None (single object) or an empty list (collections) when nothing
matches; they never raise for "not found". Writes that must be atomic say so
in their docstring, and every backend is required to honour that.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from prassign_store.models import PullRequest, Team, User


class BaseStore(ABC):
    """Pluggable persistence for users, teams, pull requests and reviewer links."""

    # ------------------------------------------------------------------ #
    # Teams                                                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def create_team(self, team: Team) -> None:
        """Persist a new team. Raises DuplicateError if the name is taken."""

    @abstractmethod
    def get_team(self, team_id: str) -> Team | None:
        """Return the team without members, or None."""

    @abstractmethod
    def get_team_by_name(self, name: str) -> Team | None:
        """Return the team with this exact name, or None."""

    @abstractmethod
    def update_team(self, team: Team) -> bool:
        """Rename a team. Returns False if it does not exist."""

    @abstractmethod
    def delete_team(self, team_id: str) -> bool:
        """Delete a team; its users become teamless. Returns False if absent."""

    @abstractmethod
    def get_team_members(self, team_id: str) -> list[User]:
        """Return every member (active or not), ordered by username."""

    @abstractmethod
    def get_active_team_members(self, team_id: str, exclude_ids: Iterable[str] | None = None) -> list[User]:
        """Return active members not in exclude_ids, ordered by username."""

    @abstractmethod
    def deactivate_team_users(self, team_id: str) -> int:
        """Set is_active=False for every active member in one statement.

        Returns the number of users that actually changed state.
        """

    # ------------------------------------------------------------------ #
    # Users                                                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def create_user(self, user: User) -> None:
        """Persist a new user. Raises DuplicateError if the username is taken."""

    @abstractmethod
    def get_user(self, user_id: str) -> User | None:
        """Return the user, or None."""

    @abstractmethod
    def update_user(self, user: User) -> bool:
        """Overwrite username, team and active flag. Returns False if absent."""

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        """Delete a user with their reviewer links and authored PRs."""

    @abstractmethod
    def list_users(self) -> list[User]:
        """Return every user, ordered by username."""

    # ------------------------------------------------------------------ #
    # Pull requests                                                        #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def create_pr_with_reviewers(self, pr: PullRequest, reviewer_ids: list[str]) -> None:
        """Insert the PR row and its initial reviewer links atomically.

        Either everything is written or nothing is. Reviewer links are
        stamped with pr.created_at, in the order given.
        """

    @abstractmethod
    def get_pr(self, pr_id: str) -> PullRequest | None:
        """Return the PR with reviewers ordered by assignment time, or None."""

    @abstractmethod
    def list_prs(self) -> list[PullRequest]:
        """Return every PR, newest first."""

    @abstractmethod
    def list_prs_by_reviewer(self, user_id: str) -> list[PullRequest]:
        """Return PRs the user is currently assigned to review, newest first."""

    @abstractmethod
    def swap_reviewer(self, pr_id: str, old_id: str, new_id: str, assigned_at: datetime) -> None:
        """Replace one reviewer link with another in a single transaction.

        The PR status, the presence of old_id and new_id being an existing
        active user are re-checked inside the same transaction as the write;
        on failure nothing is changed and StaleStateError is raised with the
        matching reason. A new_id that is already assigned raises
        DuplicateError.
        """

    @abstractmethod
    def merge_pr(self, pr_id: str, merged_at: datetime) -> PullRequest | None:
        """Mark the PR merged unless it already is, then return it.

        Idempotent: an already merged PR keeps its original merged_at.
        Returns None if the PR does not exist.
        """

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional — subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
