"""Tests for the PR lifecycle engine: create, reassign, merge."""

import random

import pytest

from prassign_core.errors import (
    AuthorNotFoundError,
    NoAvailableReviewersError,
    PRMergedError,
    PRNotFoundError,
    ReviewerConflictError,
    ReviewerNotAssignedError,
    StorageFailure,
    ValidationError,
)
from prassign_core.lifecycle import PRLifecycleEngine
from prassign_store.errors import StoreError
from prassign_store.models import PRStatus, User

# ---------------------------------------------------------------------------
# create_pr
# ---------------------------------------------------------------------------


class TestCreatePR:
    def test_two_teammates_both_assigned(self, engine, make_team):
        _, u = make_team("backend", "author", "r1", "r2")

        pr = engine.create_pr("x", u["author"].id)

        assert sorted(pr.reviewers) == sorted([u["r1"].id, u["r2"].id])
        assert pr.status == PRStatus.OPEN
        assert pr.merged_at is None

    def test_lonely_author_gets_no_reviewers(self, engine, make_team):
        _, u = make_team("backend", "author")

        pr = engine.create_pr("x", u["author"].id)

        assert pr.reviewers == []
        assert engine.get_pr(pr.id).reviewers == []

    def test_teamless_author_gets_no_reviewers(self, engine, membership):
        author = membership.create_user("solo")
        assert engine.create_pr("x", author.id).reviewers == []

    @pytest.mark.parametrize("teammates, expected", [(0, 0), (1, 1), (2, 2), (3, 2), (6, 2)])
    def test_reviewer_count_is_min_of_teammates_and_two(self, engine, make_team, teammates, expected):
        names = ["author"] + [f"r{i}" for i in range(teammates)]
        _, u = make_team("backend", *names)

        pr = engine.create_pr("x", u["author"].id)

        assert len(pr.reviewers) == expected
        assert u["author"].id not in pr.reviewers
        assert len(set(pr.reviewers)) == len(pr.reviewers)

    def test_inactive_teammates_not_selected(self, engine, membership, make_team):
        _, u = make_team("backend", "author", "active", "gone")
        membership.update_user(u["gone"].id, is_active=False)

        pr = engine.create_pr("x", u["author"].id)

        assert pr.reviewers == [u["active"].id]

    def test_other_teams_not_selected(self, engine, make_team):
        _, u = make_team("backend", "author")
        make_team("frontend", "outsider1", "outsider2")

        assert engine.create_pr("x", u["author"].id).reviewers == []

    def test_persisted_state_matches_returned(self, engine, make_team, clock):
        _, u = make_team("backend", "author", "r1", "r2", "r3")

        pr = engine.create_pr("Fix login redirect", u["author"].id)
        stored = engine.get_pr(pr.id)

        assert stored.title == "Fix login redirect"
        assert stored.reviewers == pr.reviewers
        assert stored.created_at == clock.now

    def test_title_is_stripped(self, engine, make_team):
        _, u = make_team("backend", "author")
        assert engine.create_pr("  Add cache  ", u["author"].id).title == "Add cache"

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_blank_title_rejected(self, engine, make_team, title):
        _, u = make_team("backend", "author")
        with pytest.raises(ValidationError):
            engine.create_pr(title, u["author"].id)

    def test_unknown_author(self, engine):
        with pytest.raises(AuthorNotFoundError) as exc_info:
            engine.create_pr("x", "ghost")
        assert exc_info.value.kind == "not_found"
        assert engine.list_prs() == []

    def test_seeded_rng_is_reproducible(self, store, make_team, clock):
        _, u = make_team("backend", "author", "r1", "r2", "r3", "r4")
        first = PRLifecycleEngine(store, rng_factory=lambda: random.Random(9), clock=clock)
        second = PRLifecycleEngine(store, rng_factory=lambda: random.Random(9), clock=clock)

        assert first.create_pr("a", u["author"].id).reviewers == second.create_pr("b", u["author"].id).reviewers

    def test_max_reviewers_setting_respected(self, store, make_team, clock):
        _, u = make_team("backend", "author", "r1", "r2")
        engine = PRLifecycleEngine(store, max_reviewers=1, clock=clock)

        assert len(engine.create_pr("x", u["author"].id).reviewers) == 1

    @pytest.mark.parametrize("value", [-1, 3])
    def test_max_reviewers_out_of_range_rejected(self, store, value):
        with pytest.raises(ValueError):
            PRLifecycleEngine(store, max_reviewers=value)

    def test_store_failure_surfaces_as_storage_failure(self, engine, store, make_team, mocker):
        _, u = make_team("backend", "author", "r1")
        mocker.patch.object(store, "create_pr_with_reviewers", side_effect=StoreError("disk full"))

        with pytest.raises(StorageFailure) as exc_info:
            engine.create_pr("x", u["author"].id)

        assert exc_info.value.kind == "storage"
        assert isinstance(exc_info.value.__cause__, StoreError)


# ---------------------------------------------------------------------------
# reassign_reviewer
# ---------------------------------------------------------------------------


class TestReassignReviewer:
    def test_replaces_with_other_teammate(self, engine, membership, make_team):
        team, u = make_team("backend", "author", "r1")
        pr = engine.create_pr("x", u["author"].id)
        assert pr.reviewers == [u["r1"].id]
        r2 = membership.create_user("r2", team_id=team.id)
        r3 = membership.create_user("r3", team_id=team.id)

        result = engine.reassign_reviewer(pr.id, u["r1"].id)

        assert result.new_reviewer_id in {r2.id, r3.id}
        assert result.pr.reviewers == [result.new_reviewer_id]
        assert engine.get_pr(pr.id).reviewers == [result.new_reviewer_id]

    def test_no_candidates_leaves_pr_unchanged(self, engine, make_team):
        _, u = make_team("backend", "author", "r1")
        pr = engine.create_pr("x", u["author"].id)

        with pytest.raises(NoAvailableReviewersError) as exc_info:
            engine.reassign_reviewer(pr.id, u["r1"].id)

        assert exc_info.value.kind == "no_candidates"
        assert engine.get_pr(pr.id).reviewers == [u["r1"].id]

    def test_preserves_size_and_never_picks_author_or_existing(self, engine, make_team):
        _, u = make_team("backend", "author", "r1", "r2", "r3", "r4")
        pr = engine.create_pr("x", u["author"].id)
        author_id = u["author"].id

        for _ in range(10):
            before = engine.get_pr(pr.id).reviewers
            result = engine.reassign_reviewer(pr.id, before[0])
            after = result.pr.reviewers

            assert len(after) == len(before) == 2
            assert len(set(after)) == 2
            assert author_id not in after
            assert before[0] not in after
            assert result.new_reviewer_id not in before

    def test_replacement_is_appended_last(self, engine, make_team):
        _, u = make_team("backend", "author", "r1", "r2", "r3")
        pr = engine.create_pr("x", u["author"].id)
        first, second = pr.reviewers

        result = engine.reassign_reviewer(pr.id, first)

        assert result.pr.reviewers == [second, result.new_reviewer_id]

    def test_only_other_reviewer_left_means_no_candidates(self, engine, make_team):
        _, u = make_team("backend", "author", "r1", "r2")
        pr = engine.create_pr("x", u["author"].id)

        with pytest.raises(NoAvailableReviewersError):
            engine.reassign_reviewer(pr.id, pr.reviewers[0])

    def test_candidates_come_from_old_reviewers_team(self, engine, membership, make_team):
        _, u = make_team("backend", "author", "r1")
        pr = engine.create_pr("x", u["author"].id)
        other, ou = make_team("frontend", "f1")
        membership.update_user(u["r1"].id, team_id=other.id)

        result = engine.reassign_reviewer(pr.id, u["r1"].id)

        assert result.new_reviewer_id == ou["f1"].id

    def test_inactive_teammates_not_picked(self, engine, membership, make_team):
        team, u = make_team("backend", "author", "r1")
        pr = engine.create_pr("x", u["author"].id)
        membership.create_user("sleeper", team_id=team.id, is_active=False)

        with pytest.raises(NoAvailableReviewersError):
            engine.reassign_reviewer(pr.id, u["r1"].id)

    def test_reviewer_not_assigned(self, engine, make_team):
        _, u = make_team("backend", "author", "r1", "r2", "r3")
        pr = engine.create_pr("x", u["author"].id)
        outsider = next(x.id for x in u.values() if x.id not in pr.reviewers and x.id != u["author"].id)

        with pytest.raises(ReviewerNotAssignedError) as exc_info:
            engine.reassign_reviewer(pr.id, outsider)

        assert exc_info.value.kind == "invalid_state"
        assert engine.get_pr(pr.id).reviewers == pr.reviewers

    def test_merged_pr_rejected(self, engine, make_team):
        _, u = make_team("backend", "author", "r1", "r2", "r3")
        pr = engine.create_pr("x", u["author"].id)
        engine.merge_pr(pr.id)

        with pytest.raises(PRMergedError):
            engine.reassign_reviewer(pr.id, pr.reviewers[0])

        assert engine.get_pr(pr.id).reviewers == pr.reviewers

    def test_unknown_pr(self, engine):
        with pytest.raises(PRNotFoundError):
            engine.reassign_reviewer("nope", "r1")

    def test_merge_committed_mid_reassign_wins(self, engine, store, make_team, clock, mocker):
        _, u = make_team("backend", "author", "r1", "r2", "r3")
        pr = engine.create_pr("x", u["author"].id)
        real_get_user = store.get_user

        def merge_then_get_user(user_id):
            store.merge_pr(pr.id, clock())
            return real_get_user(user_id)

        # The merge lands after the engine's status check but before its swap.
        mocker.patch.object(store, "get_user", side_effect=merge_then_get_user)

        with pytest.raises(PRMergedError):
            engine.reassign_reviewer(pr.id, pr.reviewers[0])

        final = store.get_pr(pr.id)
        assert final.status == PRStatus.MERGED
        assert final.reviewers == pr.reviewers

    def test_replacement_taken_by_concurrent_reassign_is_conflict(self, engine, store, make_team, clock, mocker):
        _, u = make_team("backend", "author", "r1", "r2", "r3")
        pr = engine.create_pr("x", u["author"].id)
        first, second = pr.reviewers
        spare = next(x.id for x in u.values() if x.id not in pr.reviewers and x.id != u["author"].id)
        real_get_user = store.get_user

        def other_reassign_then_get_user(user_id):
            # A parallel reassignment of the other reviewer lands on the only spare.
            store.swap_reviewer(pr.id, second, spare, clock())
            return real_get_user(user_id)

        mocker.patch.object(store, "get_user", side_effect=other_reassign_then_get_user)

        with pytest.raises(ReviewerConflictError) as exc_info:
            engine.reassign_reviewer(pr.id, first)

        assert exc_info.value.kind == "conflict"
        assert exc_info.value.reviewer_id == spare
        assert store.get_pr(pr.id).reviewers == [first, spare]

    def test_replacement_deactivated_before_swap_is_conflict(self, engine, store, make_team, mocker):
        team, u = make_team("backend", "author", "r1")
        pr = engine.create_pr("x", u["author"].id)
        late = User(id="late", username="late", team_id=team.id)
        store.create_user(late)
        real_candidates = store.get_active_team_members

        def candidates_then_deactivate(team_id, exclude_ids=None):
            found = real_candidates(team_id, exclude_ids=exclude_ids)
            store.update_user(User(id=late.id, username=late.username, team_id=team.id, is_active=False))
            return found

        mocker.patch.object(store, "get_active_team_members", side_effect=candidates_then_deactivate)

        with pytest.raises(ReviewerConflictError):
            engine.reassign_reviewer(pr.id, u["r1"].id)

        assert store.get_pr(pr.id).reviewers == [u["r1"].id]


# ---------------------------------------------------------------------------
# merge_pr
# ---------------------------------------------------------------------------


class TestMergePR:
    def test_merge_sets_status_and_time(self, engine, make_team, clock):
        _, u = make_team("backend", "author", "r1")
        pr = engine.create_pr("x", u["author"].id)

        merged = engine.merge_pr(pr.id)

        assert merged.status == PRStatus.MERGED
        assert merged.merged_at == clock.now
        assert merged.reviewers == pr.reviewers

    def test_merge_twice_keeps_first_timestamp(self, engine, make_team):
        _, u = make_team("backend", "author", "r1")
        pr = engine.create_pr("x", u["author"].id)

        first = engine.merge_pr(pr.id)
        second = engine.merge_pr(pr.id)

        assert second == first

    def test_unknown_pr(self, engine):
        with pytest.raises(PRNotFoundError):
            engine.merge_pr("nope")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def test_get_pr_unknown(engine):
    with pytest.raises(PRNotFoundError):
        engine.get_pr("nope")


def test_list_prs_newest_first(engine, make_team):
    _, u = make_team("backend", "author")
    older = engine.create_pr("first", u["author"].id)
    newer = engine.create_pr("second", u["author"].id)

    assert [p.id for p in engine.list_prs()] == [newer.id, older.id]
