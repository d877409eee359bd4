"""Slash-command parsing for the input pane."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from .errors import ValidationError

SLASH_PREFIX = "/"
_COUNT_RE = re.compile(r"[0-9]+")

CommandName = Literal["generate", "up", "left", "right", "save", "exit"]
_BARE_COMMANDS: frozenset[str] = frozenset({"up", "left", "right", "exit"})


@dataclass(frozen=True)
class SlashCommand:
    name: CommandName
    n: int | None = None
    title: str = ""


def is_slash_command(text: str) -> bool:
    return text.strip().startswith(SLASH_PREFIX)


def parse_slash_command(text: str) -> SlashCommand | None:
    """Parse ``/``-prefixed input.

    Returns ``None`` for plain messages. Unknown commands raise
    ``ValidationError`` instead of being sent as a message.
    """
    if not is_slash_command(text):
        return None
    stripped = text.strip()
    command, _, rest = stripped[len(SLASH_PREFIX) :].strip().partition(" ")

    if not command:
        return SlashCommand(name="generate")
    if _COUNT_RE.fullmatch(command) and int(command) >= 1:
        return SlashCommand(name="generate", n=int(command))
    if command in _BARE_COMMANDS:
        if rest.strip():
            raise ValidationError(f"Unknown command: /{command} {rest.strip()}")
        return SlashCommand(name=command)  # type: ignore[arg-type]
    if command == "save":
        return SlashCommand(name="save", title=rest.strip())
    raise ValidationError(f"Unknown command: /{command}")
