"""Membership service — team and user CRUD over the store.

Uniqueness and existence checks live here so front ends get
typed errors, everything else is a pass-through. Deleting a team leaves its
users teamless; deleting a user drops their reviewer links and the PRs they
authored (the store's cascade policy).
"""

from __future__ import annotations

import logging
import uuid

from prassign_core.errors import (
    TeamNameTakenError,
    TeamNotFoundError,
    UsernameTakenError,
    UserNotFoundError,
    ValidationError,
    storage_errors,
)
from prassign_store.base import BaseStore
from prassign_store.errors import DuplicateError
from prassign_store.models import PullRequest, Team, User

logger = logging.getLogger(__name__)

# Sentinel for update_user: "leave team_id alone", distinct from None ("remove from team").
KEEP = object()


def _clean(value: str, what: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{what} must not be empty")
    return value


class MembershipService:
    def __init__(self, store: BaseStore) -> None:
        self._store = store

    # ------------------------------------------------------------------ #
    # Teams                                                                #
    # ------------------------------------------------------------------ #

    def create_team(self, name: str) -> Team:
        name = _clean(name, "team name")
        team = Team(id=str(uuid.uuid4()), name=name)
        with storage_errors():
            if self._store.get_team_by_name(name) is not None:
                raise TeamNameTakenError(name)
            try:
                self._store.create_team(team)
            except DuplicateError as e:
                raise TeamNameTakenError(name) from e
        logger.info("Created team %s (%s)", team.name, team.id)
        return team

    def get_team(self, team_id: str) -> Team:
        """Return the team with its members (active and inactive)."""
        with storage_errors():
            team = self._store.get_team(team_id)
            if team is None:
                raise TeamNotFoundError(team_id)
            team.members = self._store.get_team_members(team_id)
        return team

    def get_team_by_name(self, name: str) -> Team:
        with storage_errors():
            team = self._store.get_team_by_name(name)
            if team is None:
                raise TeamNotFoundError(name)
            team.members = self._store.get_team_members(team.id)
        return team

    def update_team(self, team_id: str, name: str) -> Team:
        name = _clean(name, "team name")
        with storage_errors():
            if self._store.get_team(team_id) is None:
                raise TeamNotFoundError(team_id)
            existing = self._store.get_team_by_name(name)
            if existing is not None and existing.id != team_id:
                raise TeamNameTakenError(name)
            try:
                updated = self._store.update_team(Team(id=team_id, name=name))
            except DuplicateError as e:
                raise TeamNameTakenError(name) from e
        if not updated:
            raise TeamNotFoundError(team_id)
        return self.get_team(team_id)

    def delete_team(self, team_id: str) -> None:
        with storage_errors():
            deleted = self._store.delete_team(team_id)
        if not deleted:
            raise TeamNotFoundError(team_id)
        logger.info("Deleted team %s", team_id)

    # ------------------------------------------------------------------ #
    # Users                                                                #
    # ------------------------------------------------------------------ #

    def create_user(self, username: str, team_id: str | None = None, is_active: bool = True) -> User:
        username = _clean(username, "username")
        user = User(id=str(uuid.uuid4()), username=username, team_id=team_id, is_active=is_active)
        with storage_errors():
            self._require_team(team_id)
            try:
                self._store.create_user(user)
            except DuplicateError as e:
                raise UsernameTakenError(username) from e
        logger.info("Created user %s (%s) in team %s", user.username, user.id, team_id)
        return user

    def get_user(self, user_id: str) -> User:
        with storage_errors():
            user = self._store.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def update_user(
        self,
        user_id: str,
        username: str | None = None,
        team_id=KEEP,
        is_active: bool | None = None,
    ) -> User:
        """Change any subset of username, team and active flag.

        Pass ``team_id=None`` to remove the user from their team. Deactivating
        a user here does not touch their existing reviewer assignments.
        """
        with storage_errors():
            user = self._store.get_user(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            if username is not None:
                user.username = _clean(username, "username")
            if team_id is not KEEP:
                self._require_team(team_id)
                user.team_id = team_id
            if is_active is not None:
                user.is_active = is_active
            try:
                updated = self._store.update_user(user)
            except DuplicateError as e:
                raise UsernameTakenError(user.username) from e
        if not updated:
            raise UserNotFoundError(user_id)
        return user

    def delete_user(self, user_id: str) -> None:
        with storage_errors():
            deleted = self._store.delete_user(user_id)
        if not deleted:
            raise UserNotFoundError(user_id)
        logger.info("Deleted user %s", user_id)

    def get_reviews_assigned_to_user(self, user_id: str) -> list[PullRequest]:
        """PRs the user currently reviews, newest first."""
        with storage_errors():
            if self._store.get_user(user_id) is None:
                raise UserNotFoundError(user_id)
            return self._store.list_prs_by_reviewer(user_id)

    def list_users(self) -> list[User]:
        with storage_errors():
            return self._store.list_users()

    def _require_team(self, team_id: str | None) -> None:
        if team_id is not None and self._store.get_team(team_id) is None:
            raise TeamNotFoundError(team_id)
