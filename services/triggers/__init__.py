from services.triggers.base import Trigger
from services.triggers.registry import TriggerRegistry
from services.triggers.actions import TallyActionExecutor
from services.triggers.tally import DeltaMatches, build_tally_registry

__all__ = [
    "DeltaMatches",
    "TallyActionExecutor",
    "Trigger",
    "TriggerRegistry",
    "build_tally_registry",
]
