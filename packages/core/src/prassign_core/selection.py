"""Reviewer selection — uniform random pick from an already-filtered pool.

The pool is expected to contain only eligible users (active, right team,
exclusions applied). Selection has no side effects: the caller's sequence is
copied before shuffling.

The randomness source is pluggable: production passes nothing and gets a
fresh ``random.Random()`` per call, tests pass a seeded ``random.Random``.
"""

from __future__ import annotations

import random
from typing import Sequence

from prassign_store.models import User


def select_reviewers(
    candidates: Sequence[User],
    max_count: int,
    rng: random.Random | None = None,
) -> list[str]:
    """Return up to max_count distinct user ids chosen uniformly at random.

    With ``len(candidates) <= max_count`` every candidate is returned, in
    random order. Duplicate users in the input are collapsed first so the
    result never repeats an id.
    """
    if max_count < 0:
        raise ValueError(f"max_count must be >= 0, got {max_count}")

    ids = list(dict.fromkeys(c.id for c in candidates))
    if rng is None:
        rng = random.Random()
    rng.shuffle(ids)
    return ids[:max_count]


def pick_one(candidates: Sequence[User], rng: random.Random | None = None) -> str | None:
    """Return one candidate id uniformly at random, or None for an empty pool."""
    picked = select_reviewers(candidates, 1, rng=rng)
    return picked[0] if picked else None
