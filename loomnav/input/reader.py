"""Byte-level key decoding for the navigator.

Turns raw stdin bytes into key tokens such as ``"UP"``, ``"ALT_LEFT"`` or a
single printable character. Escape sequences are given a short grace period
to complete; bytes read ahead of time wait in ``_PENDING_BYTES``.
"""

from __future__ import annotations

import os
import select

ESC_SEQUENCE_TIMEOUT_MS = 25
_PENDING_BYTES: list[bytes] = []

_CONTROL_KEYS: dict[bytes, str] = {
    b"\x03": "CTRL_C",
    b"\x10": "CTRL_P",
    b"\x15": "CTRL_U",
    b"\x08": "BACKSPACE",
    b"\x7f": "BACKSPACE",
    b"\t": "TAB",
    b"\r": "ENTER_CR",
    b"\n": "ENTER_LF",
}

_ARROWS: dict[bytes, str] = {b"A": "UP", b"B": "DOWN", b"C": "RIGHT", b"D": "LEFT"}
# xterm modifier codes: 3 = Alt, 9 = Meta (some macOS terminals).
_ALT_MODIFIERS = {b"3", b"9"}


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def _utf8_length(lead: int) -> int:
    if lead >> 5 == 0b110:
        return 2
    if lead >> 4 == 0b1110:
        return 3
    if lead >> 3 == 0b11110:
        return 4
    return 1


def _read_utf8(fd: int, lead: bytes) -> str:
    data = bytearray(lead)
    for _ in range(_utf8_length(lead[0]) - 1):
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            break
        data += nxt
    return bytes(data).decode("utf-8", errors="replace")


def _read_csi(fd: int, alt: bool) -> str:
    """Decode what follows ``ESC [``; ``alt`` marks a doubled ESC prefix."""
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq in _ARROWS:
        return ("ALT_" if alt else "") + _ARROWS[seq]
    if seq != b"1":
        return "ESC"
    # ESC [ 1 ; <modifier> <arrow>
    if _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS) != b";":
        return "ESC"
    modifier = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    final = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if modifier is None or final not in _ARROWS:
        return "ESC"
    if modifier in _ALT_MODIFIERS:
        return "ALT_" + _ARROWS[final]
    return _ARROWS[final]


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Return the next key token, or ``""`` when nothing arrived in time."""
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""

        ch = os.read(fd, 1)
        if not ch:
            return ""

    control = _CONTROL_KEYS.get(ch)
    if control is not None:
        return control
    if ch != b"\x1b":
        return _read_utf8(fd, ch)

    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq == b"[":
        return _read_csi(fd, alt=False)
    if seq in {b"b", b"B"}:
        return "ALT_LEFT"
    if seq in {b"f", b"F"}:
        return "ALT_RIGHT"
    if seq == b"\x1b":
        # Option+arrow on some terminals: ESC ESC [ A
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt == b"[":
            return _read_csi(fd, alt=True)
        _PENDING_BYTES.append(b"\x1b")
        if nxt is not None:
            _PENDING_BYTES.append(nxt)
        return "ESC"
    _PENDING_BYTES.append(seq)
    return "ESC"
