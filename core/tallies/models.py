"""
Tallies data model.

Result shapes returned by the tally engine. These are plain values with no
formatting attached; turning them into chat text is the job of
``core.tallies.responses``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

# Item token syntax shared by every command shape.
ITEM_PATTERN = r"[\w.]+"

# Delta operations accepted by the engine. Chat suffixes map onto these.
DELTA_OPS = {
    "inc": 1,
    "dec": -1,
    "++": 1,
    "--": -1,
}


def normalize_item(name: str) -> str:
    """
    Lowercase an item name so the store is case-insensitive by construction.
    """
    return name.strip().lower()


@dataclass(frozen=True)
class PairResult:
    """
    Confirmation for link/unlink naming both items.
    """

    item1: str
    item2: str


@dataclass(frozen=True)
class TotalResult:
    item: str
    total: int


@dataclass(frozen=True)
class DeltaResult:
    """
    Outcome of a single ++/-- on an item.

    `linked` lists the other members of the item's group at the time of the
    update, in storage order.
    """

    item: str
    score: int
    linked: List[str] = field(default_factory=list)
