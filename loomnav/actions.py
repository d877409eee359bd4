"""Tagged action values carried by palette commands.

An action is either an executable effect run through the async runner or a
plain event handed to the session reducer. Callers branch once on ``kind``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Union

if TYPE_CHECKING:
    from .runtime.async_actions import ActionContext
    from .runtime.events import SessionEvent

ActionFn = Callable[["ActionContext"], Union[Awaitable[None], None]]


@dataclass(frozen=True)
class EffectAction:
    run: ActionFn
    kind: Literal["effect"] = "effect"


@dataclass(frozen=True)
class DispatchAction:
    event: SessionEvent
    kind: Literal["dispatch"] = "dispatch"


Action = Union[EffectAction, DispatchAction]


@dataclass(frozen=True)
class CommandItem:
    """One palette row."""

    id: str
    label: str
    action: Action
