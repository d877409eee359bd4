from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from ..list_window import ScrollState
from ..nodes import NodeId, NodeSnapshot
from ..palette import PALETTE_CLOSED, PaletteState

CHILD_LIST_ID = "children"


@dataclass(frozen=True)
class FocusState:
    """Which pane consumes keyboard input."""

    kind: Literal["input", "list"] = "input"
    list_id: str | None = None

    @property
    def is_input(self) -> bool:
        return self.kind == "input"

    def is_list(self, list_id: str) -> bool:
        return self.kind == "list" and self.list_id == list_id


FOCUS_INPUT = FocusState()
FOCUS_CHILDREN = FocusState(kind="list", list_id=CHILD_LIST_ID)


@dataclass(frozen=True)
class AsyncStatus:
    kind: Literal["idle", "loading", "errored"] = "idle"
    message: str = ""

    @property
    def is_loading(self) -> bool:
        return self.kind == "loading"

    @property
    def is_errored(self) -> bool:
        return self.kind == "errored"


STATUS_IDLE = AsyncStatus()
STATUS_LOADING = AsyncStatus(kind="loading")


def status_errored(message: str) -> AsyncStatus:
    return AsyncStatus(kind="errored", message=message)


@dataclass
class SessionState:
    current_node_id: NodeId
    focus: FocusState = FOCUS_INPUT
    palette: PaletteState = PALETTE_CLOSED
    status: AsyncStatus = STATUS_IDLE
    input_text: str = ""
    root: NodeSnapshot | None = None
    history: list[NodeSnapshot] = field(default_factory=list)
    children: list[NodeSnapshot] = field(default_factory=list)
    child_window: ScrollState = field(default_factory=ScrollState)
    fetch_generation: int = 0
    loaded_key: tuple[NodeId, int] | None = None
    should_exit: bool = False
    dirty: bool = True

    @property
    def fetch_key(self) -> tuple[NodeId, int]:
        return (self.current_node_id, self.fetch_generation)

    @property
    def is_stale(self) -> bool:
        return self.loaded_key != self.fetch_key

    @property
    def focused_child(self) -> NodeSnapshot | None:
        idx = self.child_window.focus_index
        if idx is None or not (0 <= idx < len(self.children)):
            return None
        return self.children[idx]
