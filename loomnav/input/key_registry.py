"""Key-token dispatch tables for the navigator panes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

KeyHandler = Callable[[], None]

ENTER = "ENTER"
ENTER_ALIASES: frozenset[str] = frozenset({"ENTER", "ENTER_CR", "ENTER_LF"})


def normalize_key(key: str) -> str:
    """Collapse CR/LF enter variants into one ``ENTER`` token."""
    return ENTER if key in ENTER_ALIASES else key


@dataclass(frozen=True)
class KeyBinding:
    """One or more key tokens bound to a pane handler."""

    keys: tuple[str, ...]
    handler: KeyHandler


class KeyRegistry:
    """Exact-match table from normalized key tokens to handlers."""

    def __init__(self, *bindings: KeyBinding) -> None:
        self._handlers: dict[str, KeyHandler] = {}
        for binding in bindings:
            self.bind(binding)

    def bind(self, binding: KeyBinding) -> KeyRegistry:
        for key in binding.keys:
            self._handlers[normalize_key(key)] = binding.handler
        return self

    def dispatch(self, key: str) -> bool:
        """Run the handler bound to ``key``; ``False`` when nothing is bound."""
        handler = self._handlers.get(normalize_key(key))
        if handler is None:
            return False
        handler()
        return True
