"""Runtime version metadata for TallyBot.

Import-safe; exposes version identifiers for the CLI and startup logging.
"""

from __future__ import annotations

PROJECT_NAME = "TallyBot"
VERSION = "v0.1.0"

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "as_string",
]


def as_string() -> str:
    """Return a concise version string."""

    return f"{PROJECT_NAME} {VERSION}"
