"""UI theme definitions.

Themes are ANSI palettes for the chrome (roles, status, panes). Syntax
highlighting inside code fences is a separate pygments style setting.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UITheme:
    """Semantic ANSI palette used by renderers."""

    name: str
    reset: str
    reverse: str
    dim: str
    system: str
    user: str
    assistant: str
    status_loading: str
    status_error: str
    status_idle: str
    prompt: str
    prompt_focused: str
    box_border: str
    unread_marker: str
    child_selected: str
    palette_title: str
    palette_selected: str
    palette_hint: str

    def role_color(self, role: str) -> str:
        if role == "user":
            return self.user
        if role == "system":
            return self.system
        return self.assistant


DEFAULT_THEME = UITheme(
    name="default",
    reset="\033[0m",
    reverse="\033[7m",
    dim="\033[2m",
    system="\033[35m",
    user="\033[1;36m",
    assistant="\033[38;5;252m",
    status_loading="\033[33m",
    status_error="\033[1;31m",
    status_idle="\033[2;38;5;250m",
    prompt="\033[2;38;5;250m",
    prompt_focused="\033[1;38;5;81m",
    box_border="\033[38;5;45m",
    unread_marker="\033[1;38;5;214m",
    child_selected="\033[7m",
    palette_title="\033[1;38;5;45m",
    palette_selected="\033[7m",
    palette_hint="\033[2;38;5;250m",
)

PLAIN_THEME = UITheme(
    name="plain",
    reset="",
    reverse="",
    dim="",
    system="",
    user="",
    assistant="",
    status_loading="",
    status_error="",
    status_idle="",
    prompt="",
    prompt_focused="",
    box_border="",
    unread_marker="",
    child_selected="",
    palette_title="",
    palette_selected="",
    palette_hint="",
)


def select_theme(no_color: bool) -> UITheme:
    return PLAIN_THEME if no_color else DEFAULT_THEME
