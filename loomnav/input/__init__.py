"""Input-layer public API: raw key decoding and pane key tables."""

from .key_registry import ENTER, KeyBinding, KeyRegistry, normalize_key
from .reader import ESC_SEQUENCE_TIMEOUT_MS, _PENDING_BYTES, read_key

__all__ = [
    "read_key",
    "_PENDING_BYTES",
    "ESC_SEQUENCE_TIMEOUT_MS",
    "ENTER",
    "KeyBinding",
    "KeyRegistry",
    "normalize_key",
]
