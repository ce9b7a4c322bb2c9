"""
Tally engine: the composition root for scores, groups and queries.

Owns no protocol knowledge. Every public operation lowercases item names,
returns a plain result value, and turns storage failures into a logged
`None` so the caller can skip the reply instead of crashing.
"""

from __future__ import annotations

import sqlite3
from typing import List, Optional

from core.tallies.groups import GroupDirectory
from core.tallies.models import (
    DELTA_OPS,
    DeltaResult,
    PairResult,
    TotalResult,
    normalize_item,
)
from core.tallies.query import QueryEngine
from core.tallies.responses import HELP_TEXT
from core.tallies.scores import ScoreStore
from core.tallies.store import TallyStore
from shared.logging.logger import get_logger

log = get_logger("tallies.engine")


class TallyEngine:
    def __init__(self, store: TallyStore) -> None:
        self.store = store
        self.scores = ScoreStore(store)
        self.groups = GroupDirectory(store, self.scores)
        self.query = QueryEngine(store, self.scores, self.groups)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def help(self) -> str:
        return HELP_TEXT

    def ensure_item(self, item: str) -> Optional[str]:
        item = normalize_item(item)
        try:
            self.scores.ensure_item(item)
        except sqlite3.Error as e:
            log.error(f"ensure_item {item} failed: {e}")
            return None
        return item

    def link(self, item1: str, item2: str) -> Optional[PairResult]:
        item1, item2 = normalize_item(item1), normalize_item(item2)
        try:
            self.groups.link(item1, item2)
        except sqlite3.Error as e:
            log.error(f"link {item1} {item2} failed: {e}")
            return None
        log.info(f"Linked {item1} and {item2}")
        return PairResult(item1, item2)

    def unlink(self, item1: str, item2: str) -> Optional[PairResult]:
        item1, item2 = normalize_item(item1), normalize_item(item2)
        try:
            self.groups.unlink(item1, item2)
        except sqlite3.Error as e:
            log.error(f"unlink {item1} {item2} failed: {e}")
            return None
        log.info(f"Unlinked {item1} and {item2}")
        return PairResult(item1, item2)

    def total(self, item: str) -> Optional[TotalResult]:
        item = normalize_item(item)
        try:
            total = self.query.total_score(item)
        except sqlite3.Error as e:
            log.error(f"total {item} failed: {e}")
            return None
        return TotalResult(item, total)

    def delta(self, item: str, op: str) -> Optional[DeltaResult]:
        """
        Apply a +1/-1 to `item`.

        `op` is "inc"/"dec" or the chat suffix "++"/"--". Anything else is a
        caller bug and raises ValueError.
        """
        if op not in DELTA_OPS:
            raise ValueError(f"Unknown delta op: {op!r}")

        item = normalize_item(item)
        try:
            with self.store.transaction():
                score = self.scores.apply_delta(item, DELTA_OPS[op])
                linked = self.query.linked_items(item)
        except sqlite3.Error as e:
            log.error(f"delta {item} {op} failed: {e}")
            return None
        log.info(f"{item} {op} -> {score}")
        return DeltaResult(item, score, linked)

    def list_linked(self, item: str) -> Optional[List[str]]:
        item = normalize_item(item)
        try:
            return self.query.linked_items(item)
        except sqlite3.Error as e:
            log.error(f"list_linked {item} failed: {e}")
            return None
