from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.tallies import responses
from core.tallies.engine import TallyEngine
from shared.logging.logger import get_logger

log = get_logger("triggers.actions")


class TallyActionExecutor:
    """
    Runs tally action descriptors against the engine and relays the replies.

    Accepts action descriptors from the trigger registry, executes them in
    order, and routes each reply to the sender registered for the event's
    platform. Execution is best-effort and never raises to callers; failures
    are logged and reported in the returned results.
    """

    def __init__(self, *, engine: TallyEngine, channel: str) -> None:
        self.engine = engine
        self.channel = channel
        self._senders: Dict[str, Callable[[str], Awaitable[None]]] = {}

    # ------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------

    def register_platform_sender(
        self, platform: str, sender: Callable[[str], Awaitable[None]]
    ) -> None:
        if not platform or not sender:
            return
        self._senders[platform] = sender
        log.debug(
            f"[{self.channel}] Registered action sender for platform={platform}"
        )

    # ------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------

    async def execute(
        self, actions: List[Dict[str, Any]], *, default_platform: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        for action in actions:
            descriptor = self._normalize_descriptor(action, default_platform)
            if not descriptor:
                continue

            try:
                log.debug(
                    f"[{self.channel}] Executing action descriptor: {descriptor}"
                )
                reply = self.run(descriptor)
                if reply is None:
                    # Engine already logged the storage failure.
                    results.append({"action": descriptor, "status": "skipped"})
                    continue

                await self._send_chat_message(descriptor.get("platform"), reply)
                results.append(
                    {"action": descriptor, "status": "success", "reply": reply}
                )
            except Exception as e:
                err = str(e)
                log.warning(
                    f"[{self.channel}] Action execution failed "
                    f"(platform={descriptor.get('platform')}, "
                    f"type={descriptor.get('action_type')}): {err}"
                )
                results.append(
                    {
                        "action": descriptor,
                        "status": "failed",
                        "error": err,
                    }
                )
        return results

    def run(self, descriptor: Dict[str, Any]) -> Optional[str]:
        """
        Execute one descriptor against the engine and return the reply text,
        or None when the engine produced no result.
        """
        action_type = descriptor["action_type"]
        payload = descriptor.get("payload") or {}

        if action_type == "tally.help":
            return self.engine.help()
        if action_type == "tally.link":
            result = self.engine.link(payload["item1"], payload["item2"])
            return responses.format_link(result) if result else None
        if action_type == "tally.unlink":
            result = self.engine.unlink(payload["item1"], payload["item2"])
            return responses.format_unlink(result) if result else None
        if action_type == "tally.total":
            result = self.engine.total(payload["item"])
            return responses.format_total(result) if result else None
        if action_type == "tally.delta":
            result = self.engine.delta(payload["item"], payload["op"])
            return responses.format_delta(result) if result else None

        raise RuntimeError(f"Unsupported action_type: {action_type}")

    # ------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------

    def _normalize_descriptor(
        self, action: Dict[str, Any], default_platform: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        if not isinstance(action, dict):
            return None

        action_type = action.get("action_type") or action.get("type")
        if not action_type:
            return None

        return {
            "action_type": action_type,
            "platform": action.get("platform") or default_platform,
            "payload": action.get("payload") or {},
            "trigger_id": action.get("trigger_id") or "unknown",
            "created_at": action.get("created_at")
            or datetime.now(timezone.utc).isoformat(),
        }

    async def _send_chat_message(self, platform: Optional[str], text: str) -> None:
        if not platform:
            raise RuntimeError("Reply requires a platform")

        sender = self._senders.get(platform)
        if not sender:
            raise RuntimeError(f"No sender registered for platform={platform}")

        if not text.strip():
            raise RuntimeError("Reply text is empty")

        await sender(text)
