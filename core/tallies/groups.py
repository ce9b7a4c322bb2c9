"""
Group directory: a persistent partition of items into groups.

Union-find without the forest. Each item row in `aliases` points straight at
its group id, so `group_of` is a single lookup and a merge re-points the whole
absorbed group in one UPDATE. Split is not part of textbook union-find; here
`unlink(a, b)` peels only `b` off into a fresh group and leaves everyone else
where they were.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, List, Optional

from core.tallies.store import TallyStore
from shared.logging.logger import get_logger

if TYPE_CHECKING:
    from core.tallies.scores import ScoreStore

log = get_logger("tallies.groups")


def allocate_group(conn: sqlite3.Connection) -> int:
    """
    Insert a fresh group record and return its id.

    AUTOINCREMENT guarantees ids are never handed out twice, even after the
    highest one has been retired.
    """
    cur = conn.execute("INSERT INTO groups DEFAULT VALUES")
    return int(cur.lastrowid)


def _retire_if_empty(conn: sqlite3.Connection, group_id: int) -> bool:
    row = conn.execute(
        "SELECT 1 FROM aliases WHERE group_id = ? LIMIT 1", (group_id,)
    ).fetchone()
    if row:
        return False
    conn.execute("DELETE FROM groups WHERE group_id = ?", (group_id,))
    return True


class GroupDirectory:
    def __init__(self, store: TallyStore, scores: "ScoreStore") -> None:
        self._store = store
        self._scores = scores

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def group_of(self, name: str) -> Optional[int]:
        with self._store.reading() as conn:
            row = conn.execute(
                "SELECT group_id FROM aliases WHERE item = ?", (name,)
            ).fetchone()
        return int(row["group_id"]) if row else None

    def members(self, group_id: int) -> List[str]:
        """
        Items currently mapped to `group_id`, in creation order.
        """
        with self._store.reading() as conn:
            rows = conn.execute(
                "SELECT item FROM aliases WHERE group_id = ? ORDER BY rowid",
                (group_id,),
            ).fetchall()
        return [row["item"] for row in rows]

    def live_groups(self) -> List[int]:
        with self._store.reading() as conn:
            rows = conn.execute(
                "SELECT group_id FROM groups ORDER BY group_id"
            ).fetchall()
        return [int(row["group_id"]) for row in rows]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_group(self) -> int:
        with self._store.transaction() as conn:
            return allocate_group(conn)

    def link(self, a: str, b: str) -> None:
        """
        Merge b's group into a's group.

        The survivor is always a's group regardless of size; b's old group
        record is retired.
        """
        with self._store.transaction():
            self._scores.ensure_item(a)
            self._scores.ensure_item(b)
            group_a = self.group_of(a)
            group_b = self.group_of(b)
            if group_a == group_b:
                log.debug(f"link {a} {b}: already grouped (group={group_a})")
                return

            conn = self._store.conn
            conn.execute(
                "UPDATE aliases SET group_id = ? WHERE group_id = ?",
                (group_a, group_b),
            )
            conn.execute("DELETE FROM groups WHERE group_id = ?", (group_b,))
            log.debug(f"link {a} {b}: merged group {group_b} into {group_a}")

    def unlink(self, a: str, b: str) -> None:
        """
        Move only b out of a shared group into a brand-new one.

        Every other member of the former group, a included, stays put. In a
        group {a, b, c} this leaves c with a. Items in different groups are
        left alone.
        """
        with self._store.transaction():
            self._scores.ensure_item(a)
            self._scores.ensure_item(b)
            group_a = self.group_of(a)
            group_b = self.group_of(b)
            if group_a != group_b:
                log.debug(f"unlink {a} {b}: not grouped, nothing to do")
                return

            conn = self._store.conn
            new_group = allocate_group(conn)
            conn.execute(
                "UPDATE aliases SET group_id = ? WHERE item = ?",
                (new_group, b),
            )
            # Only unlink(x, x) can empty the old group.
            _retire_if_empty(conn, group_a)
            log.debug(f"unlink {a} {b}: moved {b} from group {group_a} to {new_group}")
