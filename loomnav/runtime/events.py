"""Session events: the only vocabulary for changing session state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..list_window import ScrollState
from ..nodes import NodeId, NodeSnapshot
from ..palette import PaletteEvent
from .state import FocusState


@dataclass(frozen=True)
class SetCurrentNode:
    node_id: NodeId


@dataclass(frozen=True)
class ForceFetch:
    pass


@dataclass(frozen=True)
class SetStatusLoading:
    pass


@dataclass(frozen=True)
class SetStatusIdle:
    pass


@dataclass(frozen=True)
class SetStatusError:
    message: str


@dataclass(frozen=True)
class SetFocus:
    focus: FocusState


@dataclass(frozen=True)
class SetInputText:
    text: str


@dataclass(frozen=True)
class SetChildWindow:
    window: ScrollState


@dataclass(frozen=True)
class NodeDataLoaded:
    """Result of deriving history and children for ``key``."""

    key: tuple[NodeId, int]
    root: NodeSnapshot
    history: tuple[NodeSnapshot, ...]
    children: tuple[NodeSnapshot, ...]


@dataclass(frozen=True)
class NodeDataAttempted:
    """Derivation for ``key`` ran (and failed); do not retry until it changes."""

    key: tuple[NodeId, int]


@dataclass(frozen=True)
class PaletteDispatch:
    event: PaletteEvent


@dataclass(frozen=True)
class RequestExit:
    pass


SessionEvent = Union[
    SetCurrentNode,
    ForceFetch,
    SetStatusLoading,
    SetStatusIdle,
    SetStatusError,
    SetFocus,
    SetInputText,
    SetChildWindow,
    NodeDataLoaded,
    NodeDataAttempted,
    PaletteDispatch,
    RequestExit,
]
