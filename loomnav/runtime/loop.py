"""Main interactive event loop for the terminal UI.

One asyncio loop drives everything: it drains pending keys into the
controller, lets in-flight actions progress during a short poll sleep,
starts refreshes when the current node changed and redraws dirty frames.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger

from ..input import read_key
from ..render import RenderContext, render_screen
from ..ui_theme import DEFAULT_THEME, UITheme
from .controller import NavigationController
from .terminal import TerminalSession

MAX_KEYS_PER_TICK = 64


@dataclass(frozen=True)
class RuntimeLoopTiming:
    poll_seconds: float = 0.02


@dataclass(frozen=True)
class ViewOptions:
    theme: UITheme = DEFAULT_THEME
    style: str = "monokai"
    color: bool = True
    max_visible_children: int = 5


def drain_keys(controller: NavigationController, stdin_fd: int) -> int:
    """Feed every key already waiting on ``stdin_fd`` to the controller."""
    handled = 0
    while handled < MAX_KEYS_PER_TICK:
        key = read_key(stdin_fd, timeout_ms=0)
        if not key:
            break
        controller.handle_key(key)
        handled += 1
        if controller.state.should_exit:
            break
    return handled


async def run_main_loop(
    controller: NavigationController,
    terminal: TerminalSession,
    stdin_fd: int,
    view: ViewOptions,
    timing: RuntimeLoopTiming = RuntimeLoopTiming(),
) -> None:
    """Run until a quit action sets ``should_exit``."""
    store = controller.store
    last_size: tuple[int, int] | None = None
    logger.info("Entering main loop at {}", controller.state.current_node_id)

    with terminal.raw_mode():
        while not controller.state.should_exit:
            controller.sync()
            controller.reconcile_child_window(view.max_visible_children)

            size = terminal.size()
            resized = size != last_size
            last_size = size
            if store.take_dirty() or resized:
                columns, rows = size
                render_screen(
                    RenderContext(
                        state=controller.state,
                        width=columns,
                        height=rows,
                        theme=view.theme,
                        style=view.style,
                        color=view.color,
                        max_visible_children=view.max_visible_children,
                    )
                )

            if drain_keys(controller, stdin_fd) == 0:
                await asyncio.sleep(timing.poll_seconds)
            else:
                await asyncio.sleep(0)

    logger.info("Leaving main loop at {}", controller.state.current_node_id)
