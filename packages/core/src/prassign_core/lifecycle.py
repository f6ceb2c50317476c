"""PR lifecycle engine — create, reassign, merge.

State machine: OPEN → MERGED, nothing leads out of MERGED. The reviewer set
may only change while OPEN and never holds the author, a duplicate, or more
than MAX_REVIEWERS ids.

The engine owns the business rules; atomicity is the store's job. Every
multi-row write goes through a single store call that is documented as
transactional (create_pr_with_reviewers, swap_reviewer, merge_pr), and the
store re-checks state inside that transaction, so a merge that commits first
always wins over a concurrent reassignment.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from prassign_core.errors import (
    AuthorNotFoundError,
    InvalidStateError,
    NoAvailableReviewersError,
    PRMergedError,
    PRNotFoundError,
    ReviewerConflictError,
    ReviewerNotAssignedError,
    UserNotFoundError,
    ValidationError,
    storage_errors,
)
from prassign_core.selection import pick_one, select_reviewers
from prassign_store.base import BaseStore
from prassign_store.errors import DuplicateError, StaleStateError
from prassign_store.models import PRStatus, PullRequest

logger = logging.getLogger(__name__)

MAX_REVIEWERS = 2


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReassignResult:
    """Returned by reassign_reviewer: the PR after the swap and who joined it."""

    pr: PullRequest
    new_reviewer_id: str


class PRLifecycleEngine:
    """Pull request state transitions over an injected store.

    Usage:
        engine = PRLifecycleEngine(SQLiteStore(".prassign.db"))
        pr = engine.create_pr("Fix login redirect", author_id)
        result = engine.reassign_reviewer(pr.id, pr.reviewers[0])
        engine.merge_pr(pr.id)

    ``rng_factory`` is called once per operation to get a fresh random
    source; pass ``lambda: random.Random(seed)`` for reproducible runs.
    ``clock`` supplies every timestamp the engine writes.
    """

    def __init__(
        self,
        store: BaseStore,
        rng_factory: Callable[[], random.Random] = random.Random,
        clock: Callable[[], datetime] = utcnow,
        max_reviewers: int = MAX_REVIEWERS,
    ) -> None:
        if not 0 <= max_reviewers <= MAX_REVIEWERS:
            raise ValueError(f"max_reviewers must be between 0 and {MAX_REVIEWERS}, got {max_reviewers}")
        self._store = store
        self._rng_factory = rng_factory
        self._clock = clock
        self._max_reviewers = max_reviewers

    # ------------------------------------------------------------------ #
    # Transitions                                                          #
    # ------------------------------------------------------------------ #

    def create_pr(self, title: str, author_id: str) -> PullRequest:
        """Create an OPEN pull request with up to max_reviewers teammates assigned.

        Candidates are the author's active teammates, author excluded. Fewer
        candidates than slots is not an error: the PR gets whoever exists,
        possibly nobody.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("pull request title must not be empty")

        with storage_errors():
            author = self._store.get_user(author_id)
            if author is None:
                raise AuthorNotFoundError(author_id)

            candidates = []
            if author.team_id is not None:
                candidates = self._store.get_active_team_members(author.team_id, exclude_ids={author.id})
            logger.debug("create_pr: %d candidate(s) in team %s", len(candidates), author.team_id)

            reviewers = select_reviewers(candidates, self._max_reviewers, rng=self._rng_factory())
            pr = PullRequest(
                id=str(uuid.uuid4()),
                title=title,
                author_id=author.id,
                status=PRStatus.OPEN,
                created_at=self._clock(),
                reviewers=list(reviewers),
            )
            self._store.create_pr_with_reviewers(pr, reviewers)

        logger.info("Created PR %s by %s with %d reviewer(s)", pr.id, author.id, len(reviewers))
        return pr

    def reassign_reviewer(self, pr_id: str, old_reviewer_id: str) -> ReassignResult:
        """Replace one reviewer with a random active member of that reviewer's team.

        The replacement is never the author, the outgoing reviewer, or anyone
        already on the PR, so the reviewer count is unchanged.
        """
        with storage_errors():
            pr = self._store.get_pr(pr_id)
            if pr is None:
                raise PRNotFoundError(pr_id)
            if pr.is_merged:
                raise PRMergedError(pr_id)
            if old_reviewer_id not in pr.reviewers:
                raise ReviewerNotAssignedError(pr_id, old_reviewer_id)

            old_reviewer = self._store.get_user(old_reviewer_id)
            if old_reviewer is None:
                raise UserNotFoundError(old_reviewer_id)

            exclude = {pr.author_id, old_reviewer_id, *pr.reviewers}
            candidates = []
            if old_reviewer.team_id is not None:
                candidates = self._store.get_active_team_members(old_reviewer.team_id, exclude_ids=exclude)
            logger.debug("reassign %s on %s: %d candidate(s)", old_reviewer_id, pr_id, len(candidates))

            new_reviewer_id = pick_one(candidates, rng=self._rng_factory())
            if new_reviewer_id is None:
                raise NoAvailableReviewersError(pr_id, old_reviewer_id)

            try:
                self._store.swap_reviewer(pr_id, old_reviewer_id, new_reviewer_id, self._clock())
            except StaleStateError as e:
                raise self._stale_state_error(e, pr_id, old_reviewer_id, new_reviewer_id) from e
            except DuplicateError as e:
                # Another reassignment on this PR added the same user first.
                raise ReviewerConflictError(pr_id, new_reviewer_id) from e

            updated = self._store.get_pr(pr_id)

        if updated is None:
            raise PRNotFoundError(pr_id)
        logger.info("Reassigned PR %s: %s -> %s", pr_id, old_reviewer_id, new_reviewer_id)
        return ReassignResult(pr=updated, new_reviewer_id=new_reviewer_id)

    def merge_pr(self, pr_id: str) -> PullRequest:
        """Mark the PR merged. Calling it again returns the PR unchanged."""
        with storage_errors():
            pr = self._store.get_pr(pr_id)
            if pr is None:
                raise PRNotFoundError(pr_id)
            if pr.is_merged:
                logger.debug("merge_pr: %s already merged at %s", pr_id, pr.merged_at)
                return pr
            merged = self._store.merge_pr(pr_id, self._clock())

        if merged is None:
            raise PRNotFoundError(pr_id)
        logger.info("Merged PR %s", pr_id)
        return merged

    # ------------------------------------------------------------------ #
    # Reads                                                                #
    # ------------------------------------------------------------------ #

    def get_pr(self, pr_id: str) -> PullRequest:
        with storage_errors():
            pr = self._store.get_pr(pr_id)
        if pr is None:
            raise PRNotFoundError(pr_id)
        return pr

    def list_prs(self) -> list[PullRequest]:
        """All pull requests, newest first."""
        with storage_errors():
            return self._store.list_prs()

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _stale_state_error(error: StaleStateError, pr_id: str, reviewer_id: str, new_reviewer_id: str) -> Exception:
        """Map a guard failure inside swap_reviewer onto the engine's error."""
        if error.reason == StaleStateError.MERGED:
            return PRMergedError(pr_id)
        if error.reason == StaleStateError.NOT_ASSIGNED:
            return ReviewerNotAssignedError(pr_id, reviewer_id)
        if error.reason == StaleStateError.NOT_FOUND:
            return PRNotFoundError(pr_id)
        if error.reason == StaleStateError.UNAVAILABLE:
            return ReviewerConflictError(pr_id, new_reviewer_id)
        return InvalidStateError(str(error))
