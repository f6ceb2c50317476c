"""Store-level exceptions.

Backends translate their driver errors into these so prassign_core never has
to know whether it is talking to SQLite or to the in-memory store.
"""

from __future__ import annotations


class StoreError(Exception):
    """Any persistence failure not otherwise classified."""


class DuplicateError(StoreError):
    """A uniqueness constraint was violated (team name, username, reviewer link)."""


class StaleStateError(StoreError):
    """A guarded write found the row in a state that forbids it.

    Raised by swap_reviewer when the re-check inside its transaction fails.
    ``reason`` is one of NOT_FOUND, MERGED, NOT_ASSIGNED or UNAVAILABLE (the
    incoming reviewer is missing or inactive).
    """

    NOT_FOUND = "not_found"
    MERGED = "merged"
    NOT_ASSIGNED = "not_assigned"
    UNAVAILABLE = "unavailable"

    def __init__(self, reason: str, message: str | None = None):
        super().__init__(message or reason)
        self.reason = reason
