"""Frame composition for the navigator screen.

``build_frame`` is a pure projection of session state into screen rows;
``render_screen`` writes one composed frame to the terminal.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass

from ..ansi import clip_ansi_line, sanitize_terminal_text, truncate_plain
from ..list_window import ScrollState, reconcile, visible_slice
from ..nodes import NodeSnapshot
from ..palette import PaletteClosed, PaletteNaming, PalettePicking, PaletteState
from ..runtime.state import CHILD_LIST_ID, SessionState
from ..ui_theme import DEFAULT_THEME, UITheme
from .history import DEFAULT_STYLE, history_lines

PREVIEW_CHARS = 80
PALETTE_MAX_ROWS = 8
PROMPT = "> "
NO_MATCHES = "No matching commands."


@dataclass
class RenderContext:
    state: SessionState
    width: int
    height: int
    theme: UITheme = DEFAULT_THEME
    style: str = DEFAULT_STYLE
    color: bool = True
    max_visible_children: int = 5


def status_text(state: SessionState) -> str:
    if state.status.is_loading:
        return "Generating..."
    if state.status.is_errored:
        return f"Error: {state.status.message}"
    return f"Current Node: {state.current_node_id}"


def child_label(index: int, child: NodeSnapshot) -> str:
    """``* [i] (role) preview`` for unread children, without the marker otherwise."""
    role = child.message.role if child.message is not None else "root"
    content = child.message.content if child.message is not None else ""
    marker = "* " if child.is_unread else "  "
    return f"{marker}[{index}] ({role}) {truncate_plain(sanitize_terminal_text(content), PREVIEW_CHARS)}"


def children_rows(context: RenderContext) -> list[str]:
    state = context.state
    theme = context.theme
    if not state.children:
        return []
    focused = state.focus.is_list(CHILD_LIST_ID)
    window = state.child_window
    rows = [f"{theme.box_border}Children:{theme.reset}"]
    visible = visible_slice(window, state.children, context.max_visible_children)
    for offset, child in enumerate(visible):
        index = window.first_visible + offset
        label = child_label(index, child)
        if child.is_unread:
            label = f"{theme.unread_marker}{label[:2]}{theme.reset}{label[2:]}"
        if focused and index == window.focus_index:
            rows.append(f"{PROMPT}{theme.child_selected}{label}{theme.reset}")
        else:
            rows.append(f"  {label}")
    return rows


def palette_rows(palette: PaletteState, theme: UITheme) -> list[str]:
    if isinstance(palette, PaletteNaming):
        return [f"{theme.palette_title}Bookmark title:{theme.reset} {palette.title}"]
    if not isinstance(palette, PalettePicking):
        return []
    rows = [f"{theme.palette_title}Command:{theme.reset} {palette.query}"]
    if not palette.items:
        rows.append(f"{theme.palette_hint}{NO_MATCHES}{theme.reset}")
        return rows
    window = reconcile(
        ScrollState(focus_index=palette.selected_index),
        len(palette.items),
        PALETTE_MAX_ROWS,
    )
    if window.first_visible > 0:
        rows.append(f"{theme.palette_hint}... {window.first_visible} more ...{theme.reset}")
    for offset, item in enumerate(visible_slice(window, palette.items, PALETTE_MAX_ROWS)):
        if window.first_visible + offset == palette.selected_index:
            rows.append(f"{PROMPT}{theme.palette_selected}{item.label}{theme.reset}")
        else:
            rows.append(f"  {item.label}")
    hidden_below = len(palette.items) - window.first_visible - PALETTE_MAX_ROWS
    if hidden_below > 0:
        rows.append(f"{theme.palette_hint}... {hidden_below} more ...{theme.reset}")
    return rows


def build_frame(context: RenderContext) -> list[str]:
    """Compose exactly ``height`` rows, each clipped to ``width`` cells."""
    state = context.state
    theme = context.theme
    width = max(1, context.width)
    height = max(1, context.height)

    if isinstance(state.palette, PaletteClosed):
        middle = children_rows(context)
    else:
        middle = palette_rows(state.palette, theme)

    if state.status.is_errored:
        status_sgr = theme.status_error
    elif state.status.is_loading:
        status_sgr = theme.status_loading
    else:
        status_sgr = theme.status_idle
    # Debug errors carry a traceback on following lines.
    status_rows = [f"{status_sgr}{line}{theme.reset}" for line in status_text(state).split("\n")]
    prompt_sgr = theme.prompt_focused if state.focus.is_input else theme.prompt
    input_row = f"{prompt_sgr}{PROMPT}{theme.reset}{state.input_text}"
    bottom = [*middle, *status_rows, input_row]

    history_height = max(0, height - len(bottom))
    lines = history_lines(state.root, state.history, width, theme, context.style, context.color)
    if len(lines) > history_height and history_height > 0:
        keep = history_height - 1
        hidden = len(lines) - keep
        lines = [f"{theme.dim}(... {hidden} more lines){theme.reset}", *lines[len(lines) - keep :]]
    elif history_height == 0:
        lines = []
    top = [""] * (history_height - len(lines)) + lines

    frame = [*top, *bottom][-height:]
    return [clip_ansi_line(row, width) for row in frame]


def render_screen(context: RenderContext) -> None:
    out = ["\033[H"]
    rows = build_frame(context)
    for idx, row in enumerate(rows):
        out.append(row)
        out.append("\033[0m\033[K")
        if idx < len(rows) - 1:
            out.append("\r\n")
    os.write(sys.stdout.fileno(), "".join(out).encode("utf-8", errors="replace"))


__all__ = ["RenderContext", "build_frame", "render_screen", "status_text", "child_label"]
