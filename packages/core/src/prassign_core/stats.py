"""Review assignment statistics, aggregated from the store in one pass."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from prassign_core.errors import storage_errors
from prassign_store.base import BaseStore
from prassign_store.models import PRStatus


@dataclass
class UserAssignmentStats:
    user_id: str
    username: str
    assignments: int


@dataclass
class PRAssignmentStats:
    pr_id: str
    title: str
    reviewers_count: int
    status: PRStatus


@dataclass
class ReviewStats:
    total_assignments: int = 0
    total_prs: int = 0
    open_prs: int = 0
    merged_prs: int = 0
    average_reviewers_per_pr: float = 0.0
    by_user: list[UserAssignmentStats] = field(default_factory=list)
    by_pr: list[PRAssignmentStats] = field(default_factory=list)


def compute_review_stats(store: BaseStore, top: int = 20) -> ReviewStats:
    """Count current reviewer assignments per user and per PR.

    ``by_user`` includes users with zero assignments and, like ``by_pr``, is
    sorted by count descending and capped at ``top`` entries. Ties keep the
    store's order (username for users, newest first for PRs).
    """
    with storage_errors():
        prs = store.list_prs()
        users = store.list_users()

    per_user: Counter[str] = Counter()
    for pr in prs:
        per_user.update(pr.reviewers)

    stats = ReviewStats(
        total_assignments=sum(per_user.values()),
        total_prs=len(prs),
        open_prs=sum(1 for pr in prs if pr.status == PRStatus.OPEN),
        merged_prs=sum(1 for pr in prs if pr.status == PRStatus.MERGED),
    )
    if prs:
        stats.average_reviewers_per_pr = stats.total_assignments / len(prs)

    by_user = [UserAssignmentStats(user_id=u.id, username=u.username, assignments=per_user[u.id]) for u in users]
    stats.by_user = sorted(by_user, key=lambda s: s.assignments, reverse=True)[:top]

    by_pr = [
        PRAssignmentStats(pr_id=pr.id, title=pr.title, reviewers_count=len(pr.reviewers), status=pr.status)
        for pr in prs
    ]
    stats.by_pr = sorted(by_pr, key=lambda s: s.reviewers_count, reverse=True)[:top]
    return stats
