"""
Configuration validation script for `.tally.conf`.

Design rules:
- No side effects on import
- No runtime startup, no database access
- Validation only (no mutation)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from core.config_loader import (
    CONFIG_FILENAME,
    find_config,
    parse_config_text,
)

_BOOL_VALUES = {"true", "false", "yes", "no", "1", "0"}


def _error(msg: str):
    print(f"[CONFIG ERROR] {msg}", file=sys.stderr)


# ------------------------------------------------------------
# Validators
# ------------------------------------------------------------

def validate_values(values: Dict[str, str]) -> List[str]:
    """
    Check the raw key/value mapping. Returns a list of problems.

    Missing keys are allowed (defaults apply).
    """
    problems: List[str] = []

    for key in ("use_tls", "tls_verify"):
        raw = values.get(key)
        if raw is not None and raw.lower() not in _BOOL_VALUES:
            problems.append(f"'{key}' must be one of {sorted(_BOOL_VALUES)}")

    server = values.get("server")
    if server is not None:
        host, sep, port = server.rpartition(":")
        if sep and not port.isdigit():
            problems.append(f"'server' port must be numeric (got {port!r})")
        if sep and not host:
            problems.append("'server' host is empty")

    for key in ("nickname", "channel"):
        raw = values.get(key)
        if raw is not None and any(ch.isspace() for ch in raw):
            problems.append(f"'{key}' must not contain whitespace")

    return problems


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate a .tally.conf file")
    parser.add_argument("path", nargs="?", help=f"Config path (default: search for {CONFIG_FILENAME})")
    args = parser.parse_args(argv)

    path = Path(args.path) if args.path else find_config()
    if path is None or not path.is_file():
        _error(f"{CONFIG_FILENAME} not found")
        return 1

    problems = validate_values(parse_config_text(path.read_text(encoding="utf-8")))
    for problem in problems:
        _error(f"{path.name}: {problem}")

    if problems:
        print("Configuration validation failed.", file=sys.stderr)
        return 1

    print("Configuration validation passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
