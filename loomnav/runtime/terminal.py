"""Raw-mode alternate-screen session for the navigator.

Raw mode also turns off ISIG, so Ctrl+C reaches the key reader instead of
raising ``KeyboardInterrupt``.
"""

from __future__ import annotations

import os
import shutil
import termios
import tty
from collections.abc import Iterator
from contextlib import contextmanager

ALT_SCREEN_ON = b"\x1b[?1049h"
ALT_SCREEN_OFF = b"\x1b[?1049l"
CURSOR_HIDE = b"\x1b[?25l"
CURSOR_SHOW = b"\x1b[?25h"
CLEAR_SCREEN = b"\x1b[2J"
FALLBACK_SIZE = (80, 24)


class TerminalSession:
    """Owns the tty attributes of ``input_fd`` while the navigator runs."""

    def __init__(self, input_fd: int, output_fd: int) -> None:
        self.input_fd = input_fd
        self.output_fd = output_fd
        self._cooked = termios.tcgetattr(input_fd)

    def size(self) -> tuple[int, int]:
        """Return ``(columns, rows)``."""
        columns, rows = shutil.get_terminal_size(FALLBACK_SIZE)
        return columns, rows

    def _enter(self) -> None:
        tty.setraw(self.input_fd, termios.TCSAFLUSH)
        os.write(self.output_fd, ALT_SCREEN_ON + CURSOR_HIDE + CLEAR_SCREEN)

    def _restore(self) -> None:
        os.write(self.output_fd, CURSOR_SHOW + ALT_SCREEN_OFF)
        termios.tcsetattr(self.input_fd, termios.TCSAFLUSH, self._cooked)

    @contextmanager
    def raw_mode(self) -> Iterator[None]:
        self._enter()
        try:
            yield
        finally:
            self._restore()
