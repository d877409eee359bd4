"""Bounded list window over an unbounded item sequence.

The window only moves when the focused row would otherwise fall outside it.
State is explicit and immutable; every operation returns a new ``ScrollState``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ScrollState:
    """Focused row (``None`` when focus is outside the list) and window top."""

    focus_index: int | None = None
    first_visible: int = 0


def _require_capacity(capacity: int) -> None:
    if capacity <= 0:
        raise ValueError(f"list window capacity must be >= 1, got {capacity}")


def advance(state: ScrollState, item_count: int) -> ScrollState:
    """Move focus down one row; entering from outside focuses row 0."""
    if item_count <= 0:
        return ScrollState(focus_index=None, first_visible=0)
    if state.focus_index is None:
        return ScrollState(focus_index=0, first_visible=state.first_visible)
    next_index = min(item_count - 1, state.focus_index + 1)
    if next_index == state.focus_index:
        return state
    return ScrollState(focus_index=next_index, first_visible=state.first_visible)


def retreat(state: ScrollState) -> ScrollState:
    """Move focus up one row; leaving row 0 clears focus."""
    if state.focus_index is None:
        return state
    if state.focus_index <= 0:
        return ScrollState(focus_index=None, first_visible=state.first_visible)
    return ScrollState(focus_index=state.focus_index - 1, first_visible=state.first_visible)


def reconcile(state: ScrollState, item_count: int, capacity: int) -> ScrollState:
    """Recompute ``first_visible`` so the focused row is inside the window.

    Raises ``ValueError`` for non-positive ``capacity``.
    """
    _require_capacity(capacity)
    if item_count <= 0:
        return ScrollState(focus_index=None, first_visible=0)

    focus = state.focus_index
    if focus is not None:
        focus = max(0, min(focus, item_count - 1))

    first = state.first_visible
    if focus is None:
        first = 0
    elif focus < first:
        first = focus
    elif focus > first + capacity - 1:
        first = focus - capacity + 1
    first = max(0, min(first, max(0, item_count - capacity)))

    if focus == state.focus_index and first == state.first_visible:
        return state
    return ScrollState(focus_index=focus, first_visible=first)


def visible_slice(state: ScrollState, items: Sequence[T], capacity: int) -> list[T]:
    """Return the rows currently inside the window."""
    _require_capacity(capacity)
    if not items:
        return []
    return list(items[state.first_visible : state.first_visible + capacity])
