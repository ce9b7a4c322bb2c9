"""
Chat text for tally results.

The wording here is relayed verbatim to the channel; keep it stable.
"""

from __future__ import annotations

from core.tallies.models import DeltaResult, PairResult, TotalResult

HELP_TEXT = "\n".join(
    (
        "Commands:",
        "  <item>++ / <item>--  adjust an item's score",
        "  !link <item1> <item2>  group two items so their scores add up",
        "  !unlink <item1> <item2>  move <item2> out of <item1>'s group",
        "  !total <item>  show the combined score of an item's group",
    )
)


def format_link(result: PairResult) -> str:
    return f"Linked {result.item1} and {result.item2}."


def format_unlink(result: PairResult) -> str:
    return f"Unlinked {result.item1} and {result.item2}."


def format_total(result: TotalResult) -> str:
    return f"Total score for group including {result.item}: [{result.total}]"


def format_delta(result: DeltaResult) -> str:
    text = f"{result.item}: [{result.score}]"
    if result.linked:
        text += f" (linked with: {', '.join(result.linked)})"
    return text
