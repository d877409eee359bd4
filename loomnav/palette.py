"""Command-palette state machine and command filtering.

The palette is exactly one of ``PaletteClosed``, ``PalettePicking`` or
``PaletteNaming``. ``reduce_palette`` is the only way to move between them;
events that do not apply to the current variant return the state unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Union

from .actions import CommandItem
from .fuzzy import rank_labels


@dataclass(frozen=True)
class PaletteClosed:
    pass


@dataclass(frozen=True)
class PalettePicking:
    query: str = ""
    items: tuple[CommandItem, ...] = ()
    selected_index: int = 0

    @property
    def selected_item(self) -> CommandItem | None:
        if not self.items or not (0 <= self.selected_index < len(self.items)):
            return None
        return self.items[self.selected_index]


@dataclass(frozen=True)
class PaletteNaming:
    title: str = ""


PaletteState = Union[PaletteClosed, PalettePicking, PaletteNaming]

PALETTE_CLOSED = PaletteClosed()


@dataclass(frozen=True)
class PaletteOpen:
    pass


@dataclass(frozen=True)
class PaletteClose:
    pass


@dataclass(frozen=True)
class PaletteQueryChanged:
    query: str


@dataclass(frozen=True)
class PaletteItemsRefiltered:
    items: tuple[CommandItem, ...]


@dataclass(frozen=True)
class PaletteNavigate:
    direction: int


@dataclass(frozen=True)
class PaletteStartNaming:
    pass


@dataclass(frozen=True)
class PaletteTitleChanged:
    title: str


PaletteEvent = Union[
    PaletteOpen,
    PaletteClose,
    PaletteQueryChanged,
    PaletteItemsRefiltered,
    PaletteNavigate,
    PaletteStartNaming,
    PaletteTitleChanged,
]


def reduce_palette(
    state: PaletteState,
    event: PaletteEvent,
    static_commands: Sequence[CommandItem] = (),
) -> PaletteState:
    """Apply one palette event."""
    if isinstance(event, PaletteClose):
        return PALETTE_CLOSED
    if isinstance(event, PaletteOpen):
        if not isinstance(state, PaletteClosed):
            return state
        return PalettePicking(query="", items=tuple(static_commands), selected_index=0)
    if isinstance(event, PaletteStartNaming):
        if isinstance(state, PaletteNaming):
            return state
        return PaletteNaming(title="")

    if isinstance(state, PalettePicking):
        if isinstance(event, PaletteQueryChanged):
            return replace(state, query=event.query)
        if isinstance(event, PaletteItemsRefiltered):
            return replace(state, items=tuple(event.items), selected_index=0)
        if isinstance(event, PaletteNavigate):
            if not state.items:
                return state
            max_index = len(state.items) - 1
            current = state.selected_index
            if event.direction < 0:
                next_index = max_index if current <= 0 else current - 1
            else:
                next_index = 0 if current >= max_index else current + 1
            return replace(state, selected_index=next_index)
        return state

    if isinstance(state, PaletteNaming) and isinstance(event, PaletteTitleChanged):
        return PaletteNaming(title=event.title)
    return state


def filter_commands(query: str, commands: Sequence[CommandItem]) -> tuple[CommandItem, ...]:
    """Return all commands ordered by fuzzy score, ties in list order."""
    order = rank_labels(query, [command.label for command in commands])
    return tuple(commands[idx] for idx in order)
