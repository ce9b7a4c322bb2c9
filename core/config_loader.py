"""
Configuration loader for `.tally.conf`.

The file is looked up in the current directory first, then in the user's
home directory. Each line is `key = value`; `#` starts a comment. Unknown keys
are logged and ignored. `TALLYBOT_*` environment variables (a `.env` file is
honoured via python-dotenv by the caller) override values from the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from shared.logging.logger import get_logger

log = get_logger("core.config_loader")

CONFIG_FILENAME = ".tally.conf"

DEFAULT_NICKNAME = "TallyBot"
DEFAULT_SERVER = "irc.libera.chat:6667"
DEFAULT_CHANNEL = "#tallybot"
DEFAULT_DB_PATH = "tallies.db"
DEFAULT_IRC_PORT = 6667

_TRUE_VALUES = {"true", "yes", "1"}

_ENV_KEYS = {
    "nickname": "TALLYBOT_NICKNAME",
    "server": "TALLYBOT_SERVER",
    "channel": "TALLYBOT_CHANNEL",
    "use_tls": "TALLYBOT_USE_TLS",
    "tls_verify": "TALLYBOT_TLS_VERIFY",
    "password": "TALLYBOT_PASSWORD",
    "db_path": "TALLYBOT_DB_PATH",
}


class ConfigError(RuntimeError):
    pass


@dataclass
class TallyConfig:
    nickname: str = DEFAULT_NICKNAME
    server: str = DEFAULT_SERVER
    channel: str = DEFAULT_CHANNEL
    use_tls: bool = False
    tls_verify: bool = True
    password: Optional[str] = None
    db_path: str = DEFAULT_DB_PATH
    source: Optional[Path] = None

    @property
    def host(self) -> str:
        return split_server(self.server)[0]

    @property
    def port(self) -> int:
        return split_server(self.server)[1]


def split_server(server: str) -> Tuple[str, int]:
    """
    Split `host[:port]` into its parts. The port defaults to 6667.
    """
    server = server.strip()
    host, sep, port = server.rpartition(":")
    if not sep or not port.isdigit():
        return server, DEFAULT_IRC_PORT
    return host, int(port)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def default_search_paths() -> List[Path]:
    paths = [Path.cwd() / CONFIG_FILENAME]
    try:
        paths.append(Path.home() / CONFIG_FILENAME)
    except RuntimeError:
        log.debug("Home directory unavailable; skipping home config lookup")
    return paths


def find_config(search_paths: Optional[List[Path]] = None) -> Optional[Path]:
    for path in search_paths if search_paths is not None else default_search_paths():
        if path.is_file():
            return path
    return None


def parse_config_text(text: str) -> Dict[str, str]:
    """
    Parse `key = value` lines into a raw mapping. Later keys win.
    """
    known = {f.name for f in fields(TallyConfig)} - {"source"}
    values: Dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        key, sep, value = line.partition("=")
        if not sep:
            continue

        key = key.strip()
        if key not in known:
            log.warning(f"Unknown configuration key: {key}")
            continue
        values[key] = value.strip()
    return values


def _apply(config: TallyConfig, values: Dict[str, str]) -> None:
    for key, value in values.items():
        if key in ("use_tls", "tls_verify"):
            setattr(config, key, _parse_bool(value))
        elif value:
            setattr(config, key, value)


def _env_values() -> Dict[str, str]:
    values: Dict[str, str] = {}
    for key, env_key in _ENV_KEYS.items():
        raw = os.getenv(env_key)
        if raw is not None and raw.strip():
            values[key] = raw.strip()
    return values


def load_config(
    path: Optional[Path | str] = None,
    *,
    search_paths: Optional[List[Path]] = None,
) -> TallyConfig:
    """
    Load `.tally.conf`, apply environment overrides, and fill defaults.

    An explicit `path` replaces the search. Raises ConfigError when no file
    is found or it cannot be read.
    """
    config_path = Path(path) if path else find_config(search_paths)
    if config_path is None or not config_path.is_file():
        where = config_path or f"{CONFIG_FILENAME} (cwd or home)"
        raise ConfigError(f"configuration file {where} not found")

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read {config_path}: {e}") from e

    config = TallyConfig(source=config_path)
    _apply(config, parse_config_text(text))

    overrides = _env_values()
    if overrides:
        log.info(f"Applying environment overrides for {sorted(overrides)}")
        _apply(config, overrides)

    if not config.channel.startswith(("#", "&")):
        config.channel = f"#{config.channel}"

    log.info(f"Loaded configuration from {config_path}")
    return config
