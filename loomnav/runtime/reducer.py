"""Single writer for session state.

Every change to ``SessionState`` goes through ``SessionStore.dispatch``; the
controller, the async runner and palette commands only ever hand it events.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..actions import CommandItem
from ..list_window import ScrollState
from ..palette import reduce_palette
from .events import (
    ForceFetch,
    NodeDataAttempted,
    NodeDataLoaded,
    PaletteDispatch,
    RequestExit,
    SessionEvent,
    SetChildWindow,
    SetCurrentNode,
    SetFocus,
    SetInputText,
    SetStatusError,
    SetStatusIdle,
    SetStatusLoading,
)
from .state import FOCUS_INPUT, STATUS_IDLE, STATUS_LOADING, SessionState, status_errored


def reduce_session(
    state: SessionState,
    event: SessionEvent,
    static_commands: Sequence[CommandItem] = (),
) -> None:
    """Apply ``event`` to ``state`` in place."""
    if isinstance(event, SetCurrentNode):
        if event.node_id != state.current_node_id:
            state.current_node_id = event.node_id
            state.child_window = ScrollState()
            state.focus = FOCUS_INPUT
    elif isinstance(event, ForceFetch):
        state.fetch_generation += 1
    elif isinstance(event, SetStatusLoading):
        state.status = STATUS_LOADING
    elif isinstance(event, SetStatusIdle):
        state.status = STATUS_IDLE
    elif isinstance(event, SetStatusError):
        state.status = status_errored(event.message)
    elif isinstance(event, SetFocus):
        state.focus = event.focus
    elif isinstance(event, SetInputText):
        state.input_text = event.text
    elif isinstance(event, SetChildWindow):
        state.child_window = event.window
    elif isinstance(event, NodeDataLoaded):
        if event.key != state.fetch_key:
            # Superseded by a later navigation.
            return
        previous = state.loaded_key
        state.loaded_key = event.key
        state.root = event.root
        state.history = list(event.history)
        state.children = list(event.children)
        if previous is None or previous[0] != event.key[0]:
            state.child_window = ScrollState()
        if not state.children:
            state.child_window = ScrollState()
            if not state.focus.is_input:
                state.focus = FOCUS_INPUT
    elif isinstance(event, NodeDataAttempted):
        state.loaded_key = event.key
    elif isinstance(event, PaletteDispatch):
        state.palette = reduce_palette(state.palette, event.event, static_commands)
    elif isinstance(event, RequestExit):
        state.should_exit = True
    else:
        raise TypeError(f"unknown session event: {event!r}")
    state.dirty = True


class SessionStore:
    """Owns the live ``SessionState`` and its dispatch surface."""

    def __init__(
        self,
        state: SessionState,
        static_commands: Sequence[CommandItem] = (),
    ) -> None:
        self.state = state
        self.static_commands = tuple(static_commands)

    def dispatch(self, event: SessionEvent) -> None:
        reduce_session(self.state, event, self.static_commands)

    def take_dirty(self) -> bool:
        """Return whether a redraw is due and acknowledge it."""
        dirty = self.state.dirty
        self.state.dirty = False
        return dirty
