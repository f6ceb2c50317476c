"""Tests for review assignment statistics."""

from prassign_core.stats import compute_review_stats
from prassign_store.models import PRStatus


def test_empty_store(store):
    stats = compute_review_stats(store)

    assert stats.total_prs == 0
    assert stats.total_assignments == 0
    assert stats.average_reviewers_per_pr == 0.0
    assert stats.by_user == []
    assert stats.by_pr == []


def test_counts_per_user_and_pr(store, engine, make_team):
    _, u = make_team("backend", "author", "r1")
    make_team("frontend", "loner")
    first = engine.create_pr("first", u["author"].id)
    engine.create_pr("second", u["author"].id)
    engine.merge_pr(first.id)

    stats = compute_review_stats(store)

    assert stats.total_prs == 2
    assert stats.open_prs == 1
    assert stats.merged_prs == 1
    assert stats.total_assignments == 2
    assert stats.average_reviewers_per_pr == 1.0
    assert [(s.username, s.assignments) for s in stats.by_user] == [("r1", 2), ("author", 0), ("loner", 0)]
    assert {s.status for s in stats.by_pr} == {PRStatus.OPEN, PRStatus.MERGED}
    assert all(s.reviewers_count == 1 for s in stats.by_pr)


def test_loner_pr_counted_with_zero_reviewers(store, engine, make_team):
    _, u = make_team("backend", "author")
    pr = engine.create_pr("solo", u["author"].id)

    stats = compute_review_stats(store)

    (entry,) = stats.by_pr
    assert entry.pr_id == pr.id
    assert entry.reviewers_count == 0
    assert stats.average_reviewers_per_pr == 0.0


def test_top_caps_each_list(store, engine, make_team):
    _, u = make_team("backend", "author", "r1", "r2", "r3")
    for i in range(3):
        engine.create_pr(f"pr {i}", u["author"].id)

    stats = compute_review_stats(store, top=2)

    assert len(stats.by_user) == 2
    assert len(stats.by_pr) == 2
    assert stats.total_prs == 3
    assert stats.total_assignments == 6
