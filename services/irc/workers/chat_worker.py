import asyncio
from typing import Any, Dict, List, Optional

from core.tallies.engine import TallyEngine
from services.irc.api.chat import IrcChatClient
from services.irc.models.message import IrcChatMessage
from services.triggers.actions import TallyActionExecutor
from services.triggers.tally import build_tally_registry
from shared.logging.logger import get_logger

log = get_logger("irc.chat_worker")


class IrcChatWorker:
    """
    IRC chat worker driving the tally engine.

    Responsibilities:
    - Own the IrcChatClient lifecycle (connect, read, send, shutdown)
    - Route each chat line through the tally triggers, one line at a time
    - Relay every reply to the configured channel
    """

    def __init__(
        self,
        *,
        engine: TallyEngine,
        host: str,
        port: int,
        channel: str,
        nickname: str,
        use_tls: bool = False,
        tls_verify: bool = True,
        password: Optional[str] = None,
        client: Optional[IrcChatClient] = None,
    ):
        if not host:
            raise RuntimeError("IRC host is required")
        if not channel:
            raise RuntimeError("IRC channel is required")

        self.engine = engine
        self._client = client or IrcChatClient(
            host,
            port,
            nickname,
            channel,
            use_tls=use_tls,
            tls_verify=tls_verify,
            password=password,
        )
        self.channel = self._client.channel

        self._registry = build_tally_registry(self.channel)
        self._executor = TallyActionExecutor(engine=engine, channel=self.channel)
        self._executor.register_platform_sender("irc", self.send_message)

        self._stop_event = asyncio.Event()

    # ------------------------------------------------------------------ #

    async def run(self) -> None:
        log.info(f"[{self.channel}] IRC chat worker starting")
        await self._client.connect()

        try:
            async for message in self._client.iter_messages():
                await self._handle_message(message)

                if self._stop_event.is_set():
                    break

        except asyncio.CancelledError:
            log.debug(f"[{self.channel}] IRC chat worker cancelled")
            raise
        except Exception as e:
            log.error(f"[{self.channel}] IRC chat worker error: {e}")
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        if self._stop_event.is_set():
            return

        self._stop_event.set()
        await self._client.close()
        log.info(f"[{self.channel}] IRC chat worker stopped")

    # ------------------------------------------------------------------ #

    async def send_message(self, text: str) -> None:
        await self._client.send_message(text, self.channel)

    # ------------------------------------------------------------------ #

    async def _handle_message(self, message: IrcChatMessage) -> List[Dict[str, Any]]:
        event = message.to_event()

        actions = self._registry.process(event)
        if not actions:
            return []

        log.info(f"[{message.target}] {message.nick}: {message.text}")
        return await self._executor.execute(actions, default_platform="irc")
