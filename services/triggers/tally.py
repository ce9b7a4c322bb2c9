"""
Chat triggers for the tally commands.

Recognized shapes (case-insensitive):
    !help
    !link <item1> <item2>
    !unlink <item1> <item2>
    !total <item>
    <item>++ / <item>--   anywhere in a line, any number of times

Triggers only describe what to do; `TallyActionExecutor` runs the engine.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterator, List, Optional, Tuple

from core.tallies.models import ITEM_PATTERN
from services.triggers.base import Trigger
from services.triggers.registry import TriggerRegistry

_HELP_RE = re.compile(r"!help", re.ASCII)
_LINK_RE = re.compile(rf"!link ({ITEM_PATTERN}) ({ITEM_PATTERN})", re.ASCII)
_UNLINK_RE = re.compile(rf"!unlink ({ITEM_PATTERN}) ({ITEM_PATTERN})", re.ASCII)
_TOTAL_RE = re.compile(rf"!total ({ITEM_PATTERN})", re.ASCII)
_DELTA_RE = re.compile(rf"({ITEM_PATTERN})(\+\+|--)", re.ASCII)


def _line(event: Dict[str, Any]) -> str:
    return (event.get("text") or "").strip()


def _action(
    trigger_id: str, event: Dict[str, Any], action_type: str, **payload: Any
) -> Dict[str, Any]:
    return {
        "action_type": action_type,
        "trigger_id": trigger_id,
        "platform": event.get("platform"),
        "payload": payload,
    }


class DeltaMatches:
    """
    Every `<item>++` / `<item>--` in a line, left to right, as (item, op).

    Iteration is lazy and can be restarted; each pass rescans the line.
    Items keep the spelling from the line until lowercased here.
    """

    def __init__(self, line: str) -> None:
        self.line = line

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        for match in _DELTA_RE.finditer(self.line):
            yield match.group(1).lower(), match.group(2)

    def __bool__(self) -> bool:
        return _DELTA_RE.search(self.line) is not None


class _PatternTrigger(Trigger):
    """
    A command that must fill the whole (lowercased) line.
    """

    pattern: re.Pattern
    action_type: str
    fields: Tuple[str, ...] = ()

    def _match(self, event: Dict[str, Any]) -> Optional[re.Match]:
        return self.pattern.fullmatch(_line(event).lower())

    def matches(self, event: Dict[str, Any]) -> bool:
        return self._match(event) is not None

    def build_action(self, event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        match = self._match(event)
        if not match:
            return None
        payload = dict(zip(self.fields, match.groups()))
        return _action(self.trigger_id, event, self.action_type, **payload)


class HelpTrigger(_PatternTrigger):
    pattern = _HELP_RE
    action_type = "tally.help"

    def __init__(self):
        super().__init__(trigger_id="tally.help")


class UnlinkTrigger(_PatternTrigger):
    pattern = _UNLINK_RE
    action_type = "tally.unlink"
    fields = ("item1", "item2")

    def __init__(self):
        super().__init__(trigger_id="tally.unlink")


class LinkTrigger(_PatternTrigger):
    pattern = _LINK_RE
    action_type = "tally.link"
    fields = ("item1", "item2")

    def __init__(self):
        super().__init__(trigger_id="tally.link")


class TotalTrigger(_PatternTrigger):
    pattern = _TOTAL_RE
    action_type = "tally.total"
    fields = ("item",)

    def __init__(self):
        super().__init__(trigger_id="tally.total")


class DeltaTrigger(Trigger):
    """
    Fires once per ++/-- occurrence, in line order.
    """

    def __init__(self):
        super().__init__(trigger_id="tally.delta")

    def matches(self, event: Dict[str, Any]) -> bool:
        return bool(DeltaMatches(_line(event)))

    def build_action(self, event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        actions = self.build_actions(event)
        return actions[0] if actions else None

    def build_actions(self, event: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            _action(self.trigger_id, event, "tally.delta", item=item, op=op)
            for item, op in DeltaMatches(_line(event))
        ]


def build_tally_registry(channel: str) -> TriggerRegistry:
    """
    Registry with the tally triggers in priority order.
    """
    registry = TriggerRegistry(channel=channel)
    for trigger in (
        HelpTrigger(),
        UnlinkTrigger(),
        LinkTrigger(),
        TotalTrigger(),
        DeltaTrigger(),
    ):
        registry.register(trigger)
    return registry
