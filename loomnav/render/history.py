"""Conversation history shaping: fenced-code highlighting and wrapping."""

from __future__ import annotations

import re
from collections.abc import Sequence

from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from ..ansi import sanitize_terminal_text, wrap_ansi_line
from ..nodes import NodeSnapshot
from ..ui_theme import UITheme

FENCE_RE = re.compile(r"^\s*```\s*([\w+#.-]*)\s*$")
DEFAULT_STYLE = "monokai"
USER_PREFIX = "[USER] "

_FORMATTERS: dict[str, Terminal256Formatter] = {}


def _normalize_style(style: str) -> str:
    try:
        get_style_by_name(style)
    except ClassNotFound:
        return DEFAULT_STYLE
    return style


def _formatter(style: str) -> Terminal256Formatter:
    style = _normalize_style(style)
    formatter = _FORMATTERS.get(style)
    if formatter is None:
        formatter = Terminal256Formatter(style=style)
        _FORMATTERS[style] = formatter
    return formatter


def _lexer(language: str) -> Lexer:
    if not language:
        return TextLexer()
    try:
        return get_lexer_by_name(language)
    except ClassNotFound:
        return TextLexer()


def highlight_code(code: str, language: str, style: str) -> list[str]:
    rendered = highlight(code, _lexer(language), _formatter(style))
    return rendered.rstrip("\n").split("\n")


def shape_content(content: str, style: str, theme: UITheme, color: bool = True) -> list[str]:
    """Split message text into logical lines, highlighting fenced code blocks.

    An unterminated fence is highlighted through the end of the message.
    """
    out: list[str] = []
    code: list[str] | None = None
    language = ""
    for line in sanitize_terminal_text(content).split("\n"):
        fence = FENCE_RE.match(line)
        if code is None:
            if fence:
                code = []
                language = fence.group(1)
                out.append(f"{theme.dim}{line}{theme.reset}")
            else:
                out.append(line)
            continue
        if fence and not fence.group(1):
            out.extend(_flush_code(code, language, style, color))
            out.append(f"{theme.dim}{line}{theme.reset}")
            code = None
            continue
        code.append(line)
    if code is not None:
        out.extend(_flush_code(code, language, style, color))
    return out


def _flush_code(code: list[str], language: str, style: str, color: bool) -> list[str]:
    if not code:
        return []
    if not color:
        return list(code)
    return highlight_code("\n".join(code), language, style)


def history_lines(
    root: NodeSnapshot | None,
    history: Sequence[NodeSnapshot],
    width: int,
    theme: UITheme,
    style: str = DEFAULT_STYLE,
    color: bool = True,
) -> list[str]:
    """Screen rows for the system prompt followed by every path message."""
    rows: list[str] = []

    def emit(logical: list[str], prefix: str, sgr: str) -> None:
        for idx, line in enumerate(logical):
            text = (prefix if idx == 0 else "") + line
            for row in wrap_ansi_line(f"{sgr}{text}{theme.reset}" if sgr else text, width):
                rows.append(row)

    if root is not None and root.config is not None and root.config.system_prompt:
        emit(sanitize_terminal_text(root.config.system_prompt).split("\n"), "", theme.system)
        rows.append("")

    for node in history:
        message = node.message
        if message is None:
            continue
        logical = shape_content(message.content, style, theme, color)
        prefix = USER_PREFIX if message.role == "user" else ""
        emit(logical, prefix, theme.role_color(message.role))
        rows.append("")

    if rows and rows[-1] == "":
        rows.pop()
    return rows
