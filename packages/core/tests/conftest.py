import random
from datetime import datetime, timedelta, timezone

import pytest

from prassign_core.lifecycle import PRLifecycleEngine
from prassign_core.membership import MembershipService
from prassign_store.memory import InMemoryStore
from prassign_store.sqlite import SQLiteStore


class FakeClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start=datetime(2025, 11, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = InMemoryStore()
    else:
        s = SQLiteStore(db_path=str(tmp_path / "engine.db"))
    yield s
    s.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(store, clock):
    return PRLifecycleEngine(store, rng_factory=lambda: random.Random(42), clock=clock)


@pytest.fixture
def membership(store):
    return MembershipService(store)


@pytest.fixture
def make_team(membership):
    """Create a team with the given usernames; returns (team, {username: user})."""

    def _make(name, *usernames):
        team = membership.create_team(name)
        users = {u: membership.create_user(u, team_id=team.id) for u in usernames}
        return team, users

    return _make
