import asyncio
import ssl
from datetime import datetime, timezone
from typing import AsyncGenerator, Dict, Optional, Tuple

from services.irc.models.message import IrcChatMessage
from shared.logging.logger import get_logger

log = get_logger("irc.chat")

RPL_WELCOME = "001"
ERR_NICKNAMEINUSE = "433"


class IrcChatClient:
    """
    Minimal IRC client for chat I/O, plain TCP or TLS.

    - No event loop creation on import.
    - Connection lifecycle is owned by callers (workers or scripts).
    - Joins the channel once the server welcomes us (001), answers PING, and
      yields PRIVMSG lines; everything else is logged and dropped.
    """

    def __init__(
        self,
        host: str,
        port: int,
        nickname: str,
        channel: str,
        *,
        use_tls: bool = False,
        tls_verify: bool = True,
        password: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.nickname = nickname
        self.channel = self._normalize_channel(channel)
        self.use_tls = use_tls
        self.tls_verify = tls_verify
        self.password = password

        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None

        self._connected = False
        self._joined = False

    @property
    def joined(self) -> bool:
        return self._joined

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def connect(self) -> None:
        """
        Open the connection and register. JOIN happens on RPL_WELCOME.
        """
        if self._connected:
            log.debug("IrcChatClient already connected")
            return

        log.info(
            f"Connecting to IRC ({self.host}:{self.port}, tls={self.use_tls}) "
            f"as nick={self.nickname} channel={self.channel}"
        )
        self.reader, self.writer = await asyncio.open_connection(
            self.host, self.port, ssl=self._ssl_context()
        )

        if self.password:
            await self._send_raw(f"PASS {self.password}")
        await self._send_raw(f"NICK {self.nickname}")
        await self._send_raw(f"USER {self.nickname} 0 * :{self.nickname}")
        self._connected = True

    async def close(self) -> None:
        if not self.writer:
            return

        log.info("Closing IRC connection")
        try:
            await self._send_raw("QUIT :bye")
        except Exception as e:
            log.debug(f"QUIT failed during close: {e}")

        try:
            self.writer.close()
            await self.writer.wait_closed()
        except Exception as e:
            log.debug(f"Error during IRC close ignored: {e}")
        finally:
            self.reader = None
            self.writer = None
            self._connected = False
            self._joined = False

    # ------------------------------------------------------------------ #
    # Messaging
    # ------------------------------------------------------------------ #

    async def send_message(self, text: str, target: Optional[str] = None) -> None:
        """
        Send text to the channel, one PRIVMSG per line.
        """
        target = target or self.channel
        for line in text.splitlines():
            if not line.strip():
                continue
            await self._send_raw(f"PRIVMSG {target} :{line}")
        log.info(f"[{target}] Sent chat message ({len(text)} chars)")

    async def iter_messages(self) -> AsyncGenerator[IrcChatMessage, None]:
        """
        Read server lines and yield parsed IrcChatMessage instances.
        """
        if not self.reader:
            raise RuntimeError("iter_messages called before connect()")

        while True:
            line = await self.reader.readline()

            if line == b"":
                log.warning("IRC connection closed by remote")
                break

            decoded = line.decode("utf-8", errors="ignore").strip()
            if not decoded:
                continue

            if decoded.startswith("PING"):
                await self._handle_ping(decoded)
                continue

            msg = await self._handle_line(decoded)
            if msg:
                yield msg

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _ssl_context(self) -> Optional[ssl.SSLContext]:
        if not self.use_tls:
            return None
        context = ssl.create_default_context()
        if not self.tls_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    async def _send_raw(self, data: str) -> None:
        if not self.writer:
            raise RuntimeError("IRC writer is not initialized")

        payload = (data + "\r\n").encode("utf-8")
        self.writer.write(payload)
        await self.writer.drain()

    async def _handle_ping(self, raw: str) -> None:
        payload = raw.split(" ", 1)[-1]
        await self._send_raw(f"PONG {payload}")
        log.debug("Responded to PING")

    async def _handle_line(self, raw: str) -> Optional[IrcChatMessage]:
        _, remainder = self._split_tags(raw)
        _, command, _ = self._split_prefix_and_command(remainder)

        if command == RPL_WELCOME:
            await self._send_raw(f"JOIN {self.channel}")
            self._joined = True
            log.info(f"Joined IRC channel {self.channel}")
            return None

        if command == ERR_NICKNAMEINUSE:
            self.nickname = f"{self.nickname}_"
            log.warning(f"Nickname in use; retrying as {self.nickname}")
            await self._send_raw(f"NICK {self.nickname}")
            return None

        return self._parse_privmsg(raw)

    def _parse_privmsg(self, raw: str) -> Optional[IrcChatMessage]:
        """
        Parse a PRIVMSG line into an IrcChatMessage. Other commands are
        ignored to keep the loop deterministic.
        """
        tags, remainder = self._split_tags(raw)
        prefix, command, params = self._split_prefix_and_command(remainder)

        if command != "PRIVMSG" or len(params) < 2:
            return None

        nick, user, host = self._parse_prefix(prefix)
        message = IrcChatMessage(
            raw=raw,
            nick=nick or "unknown",
            target=params[0],
            text=params[1],
            user=user,
            host=host,
            timestamp=self._parse_timestamp(tags.get("time")),
        )

        log.debug(f"[{message.target}] {message.nick}: {message.text}")
        return message

    @staticmethod
    def _split_tags(raw: str) -> Tuple[Dict[str, str], str]:
        if raw.startswith("@"):
            # A tags-only line leaves an empty remainder, which the caller skips.
            tags_part, _, remainder = raw.partition(" ")
            tags = {}
            for pair in tags_part[1:].split(";"):
                if "=" in pair:
                    k, v = pair.split("=", 1)
                    tags[k] = v
            return tags, remainder

        return {}, raw

    @staticmethod
    def _split_prefix_and_command(raw: str) -> Tuple[str, str, Tuple[str, ...]]:
        prefix = ""
        rest = raw
        if raw.startswith(":"):
            if " " in raw:
                prefix, rest = raw[1:].split(" ", 1)
            else:
                prefix = raw[1:]
                rest = ""

        if " :" in rest:
            middle, trailing = rest.split(" :", 1)
            parts = middle.split()
            if not parts:
                return prefix, "", tuple()
            command = parts[0]
            params = tuple(parts[1:] + [trailing])
        else:
            parts = rest.split()
            if not parts:
                return prefix, "", tuple()
            command = parts[0]
            params = tuple(parts[1:])

        return prefix, command.upper(), params

    @staticmethod
    def _parse_prefix(prefix: str) -> Tuple[str, Optional[str], Optional[str]]:
        # nick!user@host
        nick, user, host = prefix, None, None
        if "@" in nick:
            nick, host = nick.split("@", 1)
        if "!" in nick:
            nick, user = nick.split("!", 1)
        return nick, user, host

    @staticmethod
    def _parse_timestamp(raw_ts: Optional[str]) -> Optional[datetime]:
        # IRCv3 server-time tag, e.g. 2024-05-01T12:00:00.000Z
        if not raw_ts:
            return None
        try:
            return datetime.fromisoformat(raw_ts.replace("Z", "+00:00")).astimezone(
                timezone.utc
            )
        except ValueError:
            return None

    @staticmethod
    def _normalize_channel(channel: str) -> str:
        channel = channel.strip()
        if not channel.startswith(("#", "&")):
            return f"#{channel}"
        return channel
