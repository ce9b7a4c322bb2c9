"""
Tallies package.

Persistent item scores plus a union-find style grouping of items whose scores
are reported together. `TallyEngine` is the entry point; the stores below it
are exposed for tests and tooling.
"""

from .engine import TallyEngine
from .groups import GroupDirectory
from .models import DeltaResult, PairResult, TotalResult
from .query import QueryEngine
from .scores import ScoreStore, UnknownItemError
from .store import MEMORY_DB, StoreInitError, TallyStore

__all__ = [
    "DeltaResult",
    "GroupDirectory",
    "MEMORY_DB",
    "PairResult",
    "QueryEngine",
    "ScoreStore",
    "StoreInitError",
    "TallyEngine",
    "TallyStore",
    "TotalResult",
    "UnknownItemError",
]
