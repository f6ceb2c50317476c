"""Team deactivation — bulk-deactivate a team after moving its review duties.

Best-effort: each (PR, reviewer) pair is reassigned in its own
transaction through the lifecycle engine, failures are recorded and logged
instead of aborting the run, and only then are the members deactivated in
one statement. A crash part-way leaves some PRs reassigned and the members
still active; running it again is safe because already-moved reviewers no
longer match and already-inactive users are skipped.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from prassign_core.errors import AssignmentError, StorageFailure, TeamNotFoundError, storage_errors
from prassign_core.lifecycle import PRLifecycleEngine
from prassign_store.base import BaseStore
from prassign_store.models import PRStatus

logger = logging.getLogger(__name__)


class ReassignmentStatus(str, enum.Enum):
    REASSIGNED = "reassigned"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ReassignmentOutcome:
    """What happened to one reviewer slot during deactivation."""

    pr_id: str
    reviewer_id: str
    status: ReassignmentStatus
    new_reviewer_id: str | None = None
    reason: str | None = None


@dataclass
class DeactivationReport:
    team_id: str
    deactivated: int = 0
    outcomes: list[ReassignmentOutcome] = field(default_factory=list)

    @property
    def reassigned(self) -> list[ReassignmentOutcome]:
        return [o for o in self.outcomes if o.status == ReassignmentStatus.REASSIGNED]

    @property
    def skipped(self) -> list[ReassignmentOutcome]:
        return [o for o in self.outcomes if o.status == ReassignmentStatus.SKIPPED]


class TeamDeactivationOrchestrator:
    def __init__(self, store: BaseStore, engine: PRLifecycleEngine) -> None:
        self._store = store
        self._engine = engine

    def deactivate_team_members(self, team_id: str) -> DeactivationReport:
        """Reassign the team's open review duties, then deactivate every active member.

        Reassignment failures (no candidates, PR merged meanwhile, reviewer
        already moved) are recorded as SKIPPED; the stale assignment stays in
        place. Storage failures propagate.
        """
        report = DeactivationReport(team_id=team_id)

        with storage_errors():
            if self._store.get_team(team_id) is None:
                raise TeamNotFoundError(team_id)
            active_ids = {u.id for u in self._store.get_active_team_members(team_id)}
            if not active_ids:
                logger.info("Team %s has no active members; nothing to deactivate", team_id)
                return report
            open_prs = [
                pr
                for pr in self._store.list_prs()
                if pr.status == PRStatus.OPEN and active_ids.intersection(pr.reviewers)
            ]

        logger.debug("Team %s: %d active member(s), %d affected open PR(s)", team_id, len(active_ids), len(open_prs))

        for pr in open_prs:
            for reviewer_id in pr.reviewers:
                if reviewer_id not in active_ids:
                    continue
                report.outcomes.append(self._reassign(pr.id, reviewer_id))

        with storage_errors():
            report.deactivated = self._store.deactivate_team_users(team_id)

        logger.info(
            "Deactivated %d member(s) of team %s (%d reassigned, %d skipped)",
            report.deactivated,
            team_id,
            len(report.reassigned),
            len(report.skipped),
        )
        return report

    def _reassign(self, pr_id: str, reviewer_id: str) -> ReassignmentOutcome:
        try:
            result = self._engine.reassign_reviewer(pr_id, reviewer_id)
        except StorageFailure:
            raise
        except AssignmentError as e:
            logger.warning("Could not reassign %s on PR %s (%s): %s", reviewer_id, pr_id, e.kind, e)
            return ReassignmentOutcome(
                pr_id=pr_id,
                reviewer_id=reviewer_id,
                status=ReassignmentStatus.SKIPPED,
                reason=str(e),
            )
        return ReassignmentOutcome(
            pr_id=pr_id,
            reviewer_id=reviewer_id,
            status=ReassignmentStatus.REASSIGNED,
            new_reviewer_id=result.new_reviewer_id,
        )
