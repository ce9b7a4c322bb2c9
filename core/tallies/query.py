from __future__ import annotations

from typing import List

from core.tallies.groups import GroupDirectory
from core.tallies.scores import ScoreStore
from core.tallies.store import TallyStore


class QueryEngine:
    """
    Read-side aggregates over the score store and group directory.
    """

    def __init__(self, store: TallyStore, scores: ScoreStore, groups: GroupDirectory) -> None:
        self._store = store
        self._scores = scores
        self._groups = groups

    def total_score(self, name: str) -> int:
        """
        Sum of scores over every item in `name`'s group, `name` included.

        Items that were never created total 0.
        """
        # Group lookup and sum share one lock so a concurrent link cannot
        # retire the group in between.
        with self._store.reading() as conn:
            group_id = self._groups.group_of(name)
            if group_id is None:
                return self._scores.get_score(name)

            row = conn.execute(
                """
                SELECT COALESCE(SUM(t.score), 0) AS total
                FROM tallies AS t
                JOIN aliases AS a USING (item)
                WHERE a.group_id = ?
                """,
                (group_id,),
            ).fetchone()
        return int(row["total"])

    def linked_items(self, name: str) -> List[str]:
        with self._store.reading():
            group_id = self._groups.group_of(name)
            if group_id is None:
                return []
            members = self._groups.members(group_id)
        return [item for item in members if item != name]
