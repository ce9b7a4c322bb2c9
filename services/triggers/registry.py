from typing import Dict, Any, List

from services.triggers.base import Trigger
from shared.logging.logger import get_logger

log = get_logger("triggers.registry")


class TriggerRegistry:
    """
    Holds and evaluates triggers for a single channel.

    Responsibilities:
    - Store triggers in priority order
    - Evaluate them against incoming chat events
    - Emit action descriptors (no execution)

    The first trigger that matches owns the line; later triggers are not
    consulted.
    """

    def __init__(self, *, channel: str):
        self.channel = channel
        self._triggers: List[Trigger] = []

    # ------------------------------------------------------------

    def register(self, trigger: Trigger) -> None:
        """
        Register a trigger instance. Registration order is priority order.
        """
        log.debug(
            f"[{self.channel}] Registering trigger: {trigger.trigger_id}"
        )
        self._triggers.append(trigger)

    @property
    def trigger_ids(self) -> List[str]:
        return [trigger.trigger_id for trigger in self._triggers]

    # ------------------------------------------------------------

    def process(self, event: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Evaluate triggers against a chat event and return actions.
        """
        for trigger in self._triggers:
            try:
                if not trigger.matches(event):
                    continue

                return trigger.build_actions(event)

            except Exception as e:
                log.warning(
                    f"[{self.channel}] Trigger '{trigger.trigger_id}' "
                    f"error ignored: {e}"
                )

        return []
