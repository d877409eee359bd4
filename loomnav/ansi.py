"""ANSI-aware measuring, clipping and wrapping for frame composition.

Escape sequences never count toward width and stay attached to the text
they style. Wide (East Asian) characters take two cells, combining marks none.
"""

from __future__ import annotations

import re
import unicodedata

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f\x80-\x9f]")
TAB_STOP = 8


def char_display_width(ch: str, col: int) -> int:
    """Cells used by ``ch`` when drawn at column ``col``."""
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    return 2 if unicodedata.east_asian_width(ch) in {"W", "F"} else 1


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def display_width(text: str) -> int:
    col = 0
    for ch in strip_ansi(text):
        col += char_display_width(ch, col)
    return col


def sanitize_terminal_text(text: str) -> str:
    """Escape control bytes in model/user text so they cannot drive the terminal."""
    if _CONTROL_RE.search(text) is None:
        return text
    return _CONTROL_RE.sub(lambda m: f"\\x{ord(m.group(0)):02x}", text)


def _tokens(text: str):
    """Yield ``(is_escape, chunk)`` pairs; visible chunks are single characters."""
    i = 0
    n = len(text)
    while i < n:
        if text[i] == "\x1b":
            match = ANSI_ESCAPE_RE.match(text, i)
            if match:
                yield True, match.group(0)
                i = match.end()
                continue
        yield False, text[i]
        i += 1


def clip_ansi_line(text: str, max_cols: int) -> str:
    """Cut a styled line to ``max_cols`` cells; tabs become spaces."""
    if max_cols <= 0 or not text:
        return ""
    out: list[str] = []
    col = 0
    for is_escape, chunk in _tokens(text):
        if is_escape:
            out.append(chunk)
            continue
        w = char_display_width(chunk, col)
        if col + w > max_cols:
            break
        out.append(" " * w if chunk == "\t" else chunk)
        col += w
    return "".join(out)


def wrap_ansi_line(text: str, width: int) -> list[str]:
    """Hard-wrap a styled line into rows of at most ``width`` cells."""
    if width <= 0 or not text:
        return [""]
    rows: list[str] = []
    row: list[str] = []
    col = 0
    for is_escape, chunk in _tokens(text):
        if is_escape:
            row.append(chunk)
            continue
        w = char_display_width(chunk, col)
        if col + w > width and col > 0:
            rows.append("".join(row))
            row = []
            col = 0
            w = char_display_width(chunk, col)
        row.append(" " * w if chunk == "\t" else chunk)
        col += w
    rows.append("".join(row))
    return rows


def truncate_plain(text: str, limit: int, ellipsis: str = "...") -> str:
    """Collapse newlines and cut ``text`` to ``limit`` characters."""
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[: max(0, limit - len(ellipsis))] + ellipsis
