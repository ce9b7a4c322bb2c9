import argparse
import asyncio
import json
import signal
import sys
from typing import List, Optional

from dotenv import load_dotenv

from core.config_loader import ConfigError, TallyConfig, load_config
from core.tallies import StoreInitError, TallyEngine, TallyStore
from runtime.version import VERSION, as_string
from services.irc.workers.chat_worker import IrcChatWorker
from services.triggers.tally import build_tally_registry
from shared.logging.logger import get_logger

log = get_logger("core.app")


async def main(stop_event: asyncio.Event, config: TallyConfig) -> int:
    log.info(f"{as_string()} booting")
    log.info(
        f"Starting bot with nickname '{config.nickname}' on server "
        f"'{config.server}', joining channel '{config.channel}'"
    )

    # --------------------------------------------------
    # STORAGE (fatal on failure)
    # --------------------------------------------------
    store = TallyStore(config.db_path)
    try:
        store.open()
    except StoreInitError as e:
        log.error(str(e))
        return 1

    engine = TallyEngine(store)
    worker = IrcChatWorker(
        engine=engine,
        host=config.host,
        port=config.port,
        channel=config.channel,
        nickname=config.nickname,
        use_tls=config.use_tls,
        tls_verify=config.tls_verify,
        password=config.password,
    )

    # --------------------------------------------------
    # RUN UNTIL SIGNAL OR DISCONNECT
    # --------------------------------------------------
    worker_task = asyncio.create_task(worker.run())
    stop_task = asyncio.create_task(stop_event.wait())

    try:
        await asyncio.wait(
            {worker_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        log.info("Shutdown initiated")
        stop_task.cancel()
        if not worker_task.done():
            worker_task.cancel()
            await asyncio.gather(worker_task, return_exceptions=True)
        elif worker_task.exception():
            log.error(f"Worker exited with error: {worker_task.exception()}")
        store.close()

    log.info("TallyBot stopped")
    return 0


# ----------------------------------------------------------------------
# SIGNAL HANDLING (WINDOWS-SAFE)
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
):
    """
    Uses signal.signal + asyncio.Event to unwind cleanly.
    """

    def _handler(signum, frame):
        loop.call_soon_threadsafe(stop_event.set)

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except ValueError as e:
        # Not in the main thread; Ctrl+C still raises KeyboardInterrupt.
        log.debug(f"Signal handlers not installed: {e}")


# ----------------------------------------------------------------------
# CLI
# ----------------------------------------------------------------------

def _parse_line(line: str) -> None:
    """
    Print the actions a chat line would produce, without touching storage.
    """
    registry = build_tally_registry("#dry-run")
    actions = registry.process({"platform": "irc", "text": line})
    print(f"> {line}")
    if not actions:
        print("actions: none")
        return
    for action in actions:
        print(json.dumps({"action_type": action["action_type"], **action["payload"]}))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="TallyBot: IRC item scores with linkable groups"
    )
    parser.add_argument("--config", help="Path to .tally.conf (skips the cwd/home search)")
    parser.add_argument("--db", help="SQLite database path (overrides db_path)")
    parser.add_argument(
        "--parse",
        metavar="LINE",
        help="Show the actions a chat line would produce and exit",
    )
    parser.add_argument("--version", action="version", version=VERSION)
    return parser


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.parse is not None:
        _parse_line(args.parse)
        return 0

    load_dotenv()
    try:
        config = load_config(args.config)
    except ConfigError as e:
        log.error(f"Error reading configuration: {e}")
        return 1
    if args.db:
        config.db_path = args.db

    stop_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    _install_signal_handlers(loop, stop_event)

    try:
        return loop.run_until_complete(main(stop_event, config))

    except KeyboardInterrupt:
        log.info("KeyboardInterrupt received; shutdown initiated")
        stop_event.set()
        return 0

    finally:
        pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in pending:
            task.cancel()

        if pending:
            loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )

        loop.run_until_complete(loop.shutdown_asyncgens())
        asyncio.set_event_loop(None)
        loop.close()


if __name__ == "__main__":
    sys.exit(run())
