"""SQLiteStore — file-based store for single-host deployments and CI.

Why SQLite:
- Batteries included: ships with Python, no server to provision.
- Real transactions: BEGIN IMMEDIATE takes the database write lock up front,
  so a reassignment and a merge on the same PR are serialized and the status
  re-check inside swap_reviewer always sees the committed state.
- Foreign keys with ON DELETE actions give us the cascade policy for free.

Schema:
  teams         — one row per team, unique name.
  users         — one row per user; team_id nulls out when the team is deleted.
  pull_requests — one row per PR; deleted with its author.
  pr_reviewers  — (pr_id, reviewer_id) primary key, assigned_at orders the list.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator

from prassign_store.base import BaseStore
from prassign_store.errors import DuplicateError, StaleStateError, StoreError
from prassign_store.models import PRStatus, PullRequest, Team, User

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS teams (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS users (
    id          TEXT PRIMARY KEY,
    username    TEXT NOT NULL UNIQUE,
    team_id     TEXT REFERENCES teams (id) ON DELETE SET NULL,
    is_active   INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS pull_requests (
    id          TEXT PRIMARY KEY,
    title       TEXT NOT NULL,
    author_id   TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    status      TEXT NOT NULL DEFAULT 'OPEN' CHECK (status IN ('OPEN', 'MERGED')),
    created_at  TEXT NOT NULL,
    merged_at   TEXT
);
CREATE TABLE IF NOT EXISTS pr_reviewers (
    pr_id       TEXT NOT NULL REFERENCES pull_requests (id) ON DELETE CASCADE,
    reviewer_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    assigned_at TEXT NOT NULL,
    PRIMARY KEY (pr_id, reviewer_id)
);
CREATE INDEX IF NOT EXISTS idx_users_team_active ON users (team_id, is_active);
CREATE INDEX IF NOT EXISTS idx_prs_created       ON pull_requests (created_at);
CREATE INDEX IF NOT EXISTS idx_reviewers_user    ON pr_reviewers (reviewer_id);
"""

_PR_COLUMNS = "id, title, author_id, status, created_at, merged_at"
_PR_COLUMNS_JOINED = "p.id, p.title, p.author_id, p.status, p.created_at, p.merged_at"


def _ts(value: datetime | None) -> str | None:
    # Fixed-width ISO text so lexical order in SQL matches chronological order.
    return value.isoformat(timespec="microseconds") if value is not None else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteStore(BaseStore):
    """Stores membership and pull requests in a local SQLite database file.

    The database file path defaults to `.prassign.db` in the current working
    directory. Configure via .prassign.yml: `store_path: /path/to/prassign.db`.

    One connection per store instance, guarded by a lock so the instance can
    be shared between threads. Separate instances on the same file are
    serialized by SQLite's own write lock; `busy_timeout` is how long a writer
    waits for it before the operation fails with StoreError.
    """

    def __init__(self, db_path: str = ".prassign.db", busy_timeout: float = 5.0):
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(
                db_path,
                timeout=busy_timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open SQLite store at {db_path}: {e}") from e
        logger.debug("Opened SQLite store at %s", db_path)

    # ------------------------------------------------------------------ #
    # Connection helpers                                                   #
    # ------------------------------------------------------------------ #

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the body inside BEGIN IMMEDIATE … COMMIT, rolling back on any error."""
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreError(f"cannot start transaction: {e}") from e
            try:
                yield self._conn
            except BaseException as e:
                self._conn.execute("ROLLBACK")
                if isinstance(e, sqlite3.Error):
                    raise self._translate(e) from e
                raise
            else:
                try:
                    self._conn.execute("COMMIT")
                except sqlite3.Error as e:
                    self._conn.execute("ROLLBACK")
                    raise self._translate(e) from e

    @contextmanager
    def _reading(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as e:
                raise self._translate(e) from e

    @staticmethod
    def _translate(error: sqlite3.Error) -> StoreError:
        if isinstance(error, sqlite3.IntegrityError) and "UNIQUE" in str(error):
            return DuplicateError(str(error))
        return StoreError(f"{type(error).__name__}: {error}")

    # ------------------------------------------------------------------ #
    # Teams                                                                #
    # ------------------------------------------------------------------ #

    def create_team(self, team: Team) -> None:
        with self._transaction() as conn:
            conn.execute("INSERT INTO teams (id, name) VALUES (?, ?)", (team.id, team.name))

    def get_team(self, team_id: str) -> Team | None:
        with self._reading() as conn:
            row = conn.execute("SELECT id, name FROM teams WHERE id=?", (team_id,)).fetchone()
        return Team(id=row["id"], name=row["name"]) if row else None

    def get_team_by_name(self, name: str) -> Team | None:
        with self._reading() as conn:
            row = conn.execute("SELECT id, name FROM teams WHERE name=?", (name,)).fetchone()
        return Team(id=row["id"], name=row["name"]) if row else None

    def update_team(self, team: Team) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("UPDATE teams SET name=? WHERE id=?", (team.name, team.id))
        return cur.rowcount > 0

    def delete_team(self, team_id: str) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM teams WHERE id=?", (team_id,))
        return cur.rowcount > 0

    def get_team_members(self, team_id: str) -> list[User]:
        with self._reading() as conn:
            rows = conn.execute(
                "SELECT * FROM users WHERE team_id=? ORDER BY username",
                (team_id,),
            ).fetchall()
        return [self._row_to_user(r) for r in rows]

    def get_active_team_members(self, team_id: str, exclude_ids: Iterable[str] | None = None) -> list[User]:
        exclude = sorted(set(exclude_ids or ()))
        query = "SELECT * FROM users WHERE team_id=? AND is_active=1"
        if exclude:
            query += f" AND id NOT IN ({', '.join('?' for _ in exclude)})"
        query += " ORDER BY username"
        with self._reading() as conn:
            rows = conn.execute(query, (team_id, *exclude)).fetchall()
        return [self._row_to_user(r) for r in rows]

    def deactivate_team_users(self, team_id: str) -> int:
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE users SET is_active=0 WHERE team_id=? AND is_active=1",
                (team_id,),
            )
        return cur.rowcount

    # ------------------------------------------------------------------ #
    # Users                                                                #
    # ------------------------------------------------------------------ #

    def create_user(self, user: User) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO users (id, username, team_id, is_active) VALUES (?, ?, ?, ?)",
                (user.id, user.username, user.team_id, int(user.is_active)),
            )

    def get_user(self, user_id: str) -> User | None:
        with self._reading() as conn:
            row = conn.execute("SELECT * FROM users WHERE id=?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def update_user(self, user: User) -> bool:
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE users SET username=?, team_id=?, is_active=? WHERE id=?",
                (user.username, user.team_id, int(user.is_active), user.id),
            )
        return cur.rowcount > 0

    def delete_user(self, user_id: str) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM users WHERE id=?", (user_id,))
        return cur.rowcount > 0

    def list_users(self) -> list[User]:
        with self._reading() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY username").fetchall()
        return [self._row_to_user(r) for r in rows]

    # ------------------------------------------------------------------ #
    # Pull requests                                                        #
    # ------------------------------------------------------------------ #

    def create_pr_with_reviewers(self, pr: PullRequest, reviewer_ids: list[str]) -> None:
        with self._transaction() as conn:
            conn.execute(
                f"INSERT INTO pull_requests ({_PR_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    pr.id,
                    pr.title,
                    pr.author_id,
                    pr.status.value,
                    _ts(pr.created_at),
                    _ts(pr.merged_at),
                ),
            )
            conn.executemany(
                "INSERT INTO pr_reviewers (pr_id, reviewer_id, assigned_at) VALUES (?, ?, ?)",
                [(pr.id, reviewer_id, _ts(pr.created_at)) for reviewer_id in reviewer_ids],
            )

    def get_pr(self, pr_id: str) -> PullRequest | None:
        with self._reading() as conn:
            return self._fetch_pr(conn, pr_id)

    def list_prs(self) -> list[PullRequest]:
        with self._reading() as conn:
            rows = conn.execute(f"SELECT {_PR_COLUMNS} FROM pull_requests ORDER BY created_at DESC, rowid DESC").fetchall()
            links = conn.execute("SELECT pr_id, reviewer_id FROM pr_reviewers ORDER BY assigned_at, rowid").fetchall()
        return self._assemble(rows, links)

    def list_prs_by_reviewer(self, user_id: str) -> list[PullRequest]:
        with self._reading() as conn:
            rows = conn.execute(
                f"""
                SELECT {_PR_COLUMNS_JOINED}
                FROM pull_requests p
                JOIN pr_reviewers r ON r.pr_id = p.id
                WHERE r.reviewer_id = ?
                ORDER BY p.created_at DESC, p.rowid DESC
                """,
                (user_id,),
            ).fetchall()
            links = conn.execute(
                """
                SELECT pr_id, reviewer_id FROM pr_reviewers
                WHERE pr_id IN (SELECT pr_id FROM pr_reviewers WHERE reviewer_id = ?)
                ORDER BY assigned_at, rowid
                """,
                (user_id,),
            ).fetchall()
        return self._assemble(rows, links)

    def swap_reviewer(self, pr_id: str, old_id: str, new_id: str, assigned_at: datetime) -> None:
        with self._transaction() as conn:
            row = conn.execute("SELECT status FROM pull_requests WHERE id=?", (pr_id,)).fetchone()
            if row is None:
                raise StaleStateError(StaleStateError.NOT_FOUND, f"pull request {pr_id} not found")
            if row["status"] == PRStatus.MERGED.value:
                raise StaleStateError(StaleStateError.MERGED, f"pull request {pr_id} is merged")
            cur = conn.execute(
                "DELETE FROM pr_reviewers WHERE pr_id=? AND reviewer_id=?",
                (pr_id, old_id),
            )
            if cur.rowcount == 0:
                raise StaleStateError(
                    StaleStateError.NOT_ASSIGNED,
                    f"reviewer {old_id} is not assigned to {pr_id}",
                )
            user = conn.execute("SELECT is_active FROM users WHERE id=?", (new_id,)).fetchone()
            if user is None or not user["is_active"]:
                raise StaleStateError(StaleStateError.UNAVAILABLE, f"reviewer {new_id} is missing or inactive")
            conn.execute(
                "INSERT INTO pr_reviewers (pr_id, reviewer_id, assigned_at) VALUES (?, ?, ?)",
                (pr_id, new_id, _ts(assigned_at)),
            )

    def merge_pr(self, pr_id: str, merged_at: datetime) -> PullRequest | None:
        with self._transaction() as conn:
            conn.execute(
                "UPDATE pull_requests SET status=?, merged_at=? WHERE id=? AND status=?",
                (PRStatus.MERGED.value, _ts(merged_at), pr_id, PRStatus.OPEN.value),
            )
            return self._fetch_pr(conn, pr_id)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------ #
    # Row mapping                                                          #
    # ------------------------------------------------------------------ #

    def _fetch_pr(self, conn: sqlite3.Connection, pr_id: str) -> PullRequest | None:
        row = conn.execute(f"SELECT {_PR_COLUMNS} FROM pull_requests WHERE id=?", (pr_id,)).fetchone()
        if row is None:
            return None
        links = conn.execute(
            "SELECT pr_id, reviewer_id FROM pr_reviewers WHERE pr_id=? ORDER BY assigned_at, rowid",
            (pr_id,),
        ).fetchall()
        return self._assemble([row], links)[0]

    @classmethod
    def _assemble(cls, rows: list[sqlite3.Row], links: list[sqlite3.Row]) -> list[PullRequest]:
        reviewers: dict[str, list[str]] = {}
        for link in links:
            reviewers.setdefault(link["pr_id"], []).append(link["reviewer_id"])
        return [cls._row_to_pr(r, reviewers.get(r["id"], [])) for r in rows]

    @staticmethod
    def _row_to_pr(row: sqlite3.Row, reviewers: list[str]) -> PullRequest:
        return PullRequest(
            id=row["id"],
            title=row["title"],
            author_id=row["author_id"],
            status=PRStatus(row["status"]),
            created_at=_parse_ts(row["created_at"]),
            merged_at=_parse_ts(row["merged_at"]),
            reviewers=list(reviewers),
        )

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            team_id=row["team_id"],
            is_active=bool(row["is_active"]),
        )
