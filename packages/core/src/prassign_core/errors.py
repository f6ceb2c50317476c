"""Engine exceptions.

Every error the engine raises derives from AssignmentError and carries a
``kind`` that front ends map onto their own status codes. The engine never
retries; callers decide what to do with each kind.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from prassign_store.errors import StoreError


class AssignmentError(Exception):
    kind = "error"


class NotFoundError(AssignmentError):
    kind = "not_found"


class AuthorNotFoundError(NotFoundError):
    def __init__(self, author_id: str):
        super().__init__(f"author {author_id} not found")
        self.author_id = author_id


class PRNotFoundError(NotFoundError):
    def __init__(self, pr_id: str):
        super().__init__(f"pull request {pr_id} not found")
        self.pr_id = pr_id


class TeamNotFoundError(NotFoundError):
    def __init__(self, team_ref: str):
        super().__init__(f"team {team_ref} not found")
        self.team_ref = team_ref


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__(f"user {user_id} not found")
        self.user_id = user_id


class InvalidStateError(AssignmentError):
    """The caller asked for something the current state forbids."""

    kind = "invalid_state"


class PRMergedError(InvalidStateError):
    def __init__(self, pr_id: str):
        super().__init__(f"cannot reassign reviewers for merged pull request {pr_id}")
        self.pr_id = pr_id


class ReviewerNotAssignedError(InvalidStateError):
    def __init__(self, pr_id: str, reviewer_id: str):
        super().__init__(f"reviewer {reviewer_id} is not assigned to pull request {pr_id}")
        self.pr_id = pr_id
        self.reviewer_id = reviewer_id


class NoCandidatesError(AssignmentError):
    """A legitimate outcome: nobody is eligible. Not a system fault."""

    kind = "no_candidates"


class NoAvailableReviewersError(NoCandidatesError):
    def __init__(self, pr_id: str, reviewer_id: str):
        super().__init__(f"no available reviewers in the team to replace {reviewer_id} on {pr_id}")
        self.pr_id = pr_id
        self.reviewer_id = reviewer_id


class ConflictError(AssignmentError):
    kind = "conflict"


class TeamNameTakenError(ConflictError):
    def __init__(self, name: str):
        super().__init__(f"team with name {name!r} already exists")
        self.name = name


class UsernameTakenError(ConflictError):
    def __init__(self, username: str):
        super().__init__(f"user with username {username!r} already exists")
        self.username = username


class ReviewerConflictError(ConflictError):
    """A concurrent change took the picked replacement first. Safe to retry."""

    def __init__(self, pr_id: str, reviewer_id: str):
        super().__init__(f"reviewer {reviewer_id} became unavailable for {pr_id} during reassignment; retry")
        self.pr_id = pr_id
        self.reviewer_id = reviewer_id


class ValidationError(AssignmentError):
    kind = "invalid"


class StorageFailure(AssignmentError):
    """Opaque persistence failure. The original StoreError is the __cause__."""

    kind = "storage"


@contextmanager
def storage_errors() -> Iterator[None]:
    """Re-raise any StoreError escaping the body as StorageFailure."""
    try:
        yield
    except StoreError as e:
        raise StorageFailure(f"storage failure: {e}") from e
