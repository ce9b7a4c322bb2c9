from __future__ import annotations

from core.tallies.groups import allocate_group
from core.tallies.store import TallyStore
from shared.logging.logger import get_logger

log = get_logger("tallies.scores")


class UnknownItemError(KeyError):
    """Raised when a score write targets an item that was never created."""


class ScoreStore:
    """
    Durable item -> score mapping.

    Creating an item also places it alone in a fresh group, in the same
    transaction, so an item never exists in one table without the other.
    """

    def __init__(self, store: TallyStore) -> None:
        self._store = store

    def ensure_item(self, name: str) -> None:
        with self._store.transaction() as conn:
            row = conn.execute(
                "SELECT 1 FROM tallies WHERE item = ?", (name,)
            ).fetchone()
            if row:
                return

            conn.execute("INSERT INTO tallies (item, score) VALUES (?, 0)", (name,))
            group_id = allocate_group(conn)
            conn.execute(
                "INSERT INTO aliases (item, group_id) VALUES (?, ?)",
                (name, group_id),
            )
            log.debug(f"Created item {name} in group {group_id}")

    def get_score(self, name: str) -> int:
        # Missing items read as 0.
        with self._store.reading() as conn:
            row = conn.execute(
                "SELECT score FROM tallies WHERE item = ?", (name,)
            ).fetchone()
        return int(row["score"]) if row else 0

    def set_score(self, name: str, value: int) -> None:
        with self._store.transaction() as conn:
            cur = conn.execute(
                "UPDATE tallies SET score = ? WHERE item = ?", (int(value), name)
            )
            if cur.rowcount == 0:
                raise UnknownItemError(name)

    def apply_delta(self, name: str, delta: int) -> int:
        if delta not in (1, -1):
            raise ValueError(f"delta must be +1 or -1, got {delta!r}")

        with self._store.transaction():
            self.ensure_item(name)
            score = self.get_score(name) + delta
            self.set_score(name, score)
        return score
