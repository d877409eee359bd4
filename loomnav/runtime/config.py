"""Persistent JSON config, bookmarks, and current-node bookkeeping.

Everything lives in one data directory (``platformdirs`` user data dir by
default). Reads are defensive: malformed or missing data falls back safely.
Writes raise so callers can surface persistence failures.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger
from platformdirs import user_data_dir

from ..errors import ValidationError
from ..nodes import NodeId

APP_NAME = "loomnav"
CONFIG_FILENAME = "config.json"
CURRENT_NODE_FILENAME = "current-node-id"
DEFAULT_DATA_DIR = Path(user_data_dir(APP_NAME, appauthor=False))
DEFAULT_SYSTEM_PROMPT = (
    "The assistant is in CLI simulation mode and responds only with the output of the command."
)
EMPTY_BOOKMARK_TITLE_MESSAGE = "Bookmark title cannot be empty"


@dataclass(frozen=True)
class NavigatorDefaults:
    """Generation and display defaults, overridable from the command line."""

    model: str | None = None
    temperature: float = 1.0
    max_tokens: int = 1024
    n: int = 5
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    max_visible_children: int = 5
    style: str = "monokai"


@dataclass(frozen=True)
class ProviderSettings:
    api_key: str | None = None
    base_url: str | None = None


@dataclass(frozen=True)
class Bookmark:
    title: str
    node_id: NodeId
    created_at: str
    updated_at: str


def config_path(data_dir: Path) -> Path:
    return data_dir / CONFIG_FILENAME


def load_config(data_dir: Path) -> dict[str, object]:
    """Load the config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(config_path(data_dir).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data_dir: Path, data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON."""
    path = config_path(data_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def _section(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _coerce_positive_int(value: object, fallback: int) -> int:
    """Booleans, non-integers and values below 1 fall back."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return fallback
    return value


def _coerce_float(value: object, fallback: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    return float(value)


def _coerce_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def load_defaults(data_dir: Path) -> NavigatorDefaults:
    """Read the ``defaults`` section with per-field validation."""
    raw = _section(load_config(data_dir), "defaults")
    base = NavigatorDefaults()
    return NavigatorDefaults(
        model=_coerce_text(raw.get("model")),
        temperature=_coerce_float(raw.get("temperature"), base.temperature),
        max_tokens=_coerce_positive_int(raw.get("max_tokens"), base.max_tokens),
        n=_coerce_positive_int(raw.get("n"), base.n),
        system_prompt=_coerce_text(raw.get("system_prompt")) or base.system_prompt,
        max_visible_children=_coerce_positive_int(
            raw.get("max_visible_children"), base.max_visible_children
        ),
        style=_coerce_text(raw.get("style")) or base.style,
    )


def load_provider_settings(data_dir: Path, provider: str) -> ProviderSettings:
    raw = _section(_section(load_config(data_dir), "providers"), provider)
    return ProviderSettings(
        api_key=_coerce_text(raw.get("api_key")),
        base_url=_coerce_text(raw.get("base_url")),
    )


def load_bookmarks(data_dir: Path) -> list[Bookmark]:
    """Load bookmarks, dropping malformed records and duplicate titles."""
    value = load_config(data_dir).get("bookmarks")
    if not isinstance(value, list):
        return []

    bookmarks: list[Bookmark] = []
    seen: set[str] = set()
    for raw in value:
        if not isinstance(raw, dict):
            continue
        title = _coerce_text(raw.get("title"))
        node_id = _coerce_text(raw.get("node_id"))
        if title is None or node_id is None or title in seen:
            continue
        created_at = raw.get("created_at")
        updated_at = raw.get("updated_at")
        created = created_at if isinstance(created_at, str) else ""
        bookmarks.append(
            Bookmark(
                title=title,
                node_id=node_id,
                created_at=created,
                updated_at=updated_at if isinstance(updated_at, str) else created,
            )
        )
        seen.add(title)
    return bookmarks


def save_bookmarks(data_dir: Path, bookmarks: list[Bookmark]) -> None:
    config = load_config(data_dir)
    config["bookmarks"] = [
        {
            "title": bookmark.title,
            "node_id": bookmark.node_id,
            "created_at": bookmark.created_at,
            "updated_at": bookmark.updated_at,
        }
        for bookmark in bookmarks
    ]
    save_config(data_dir, config)


class BookmarkStore:
    """Append-only bookmark access bound to one data directory."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir

    def load(self) -> list[Bookmark]:
        return load_bookmarks(self.data_dir)

    def add(self, title: str, node_id: NodeId, now: datetime | None = None) -> Bookmark:
        """Persist a new bookmark; empty or duplicate titles are rejected."""
        title = title.strip()
        if not title:
            raise ValidationError(EMPTY_BOOKMARK_TITLE_MESSAGE)
        bookmarks = self.load()
        if any(bookmark.title == title for bookmark in bookmarks):
            raise ValidationError(f'Bookmark with title "{title}" already exists.')
        stamp = (now or datetime.now(timezone.utc)).isoformat()
        bookmark = Bookmark(title=title, node_id=node_id, created_at=stamp, updated_at=stamp)
        save_bookmarks(self.data_dir, [*bookmarks, bookmark])
        logger.info("Saved bookmark {!r} -> {}", title, node_id)
        return bookmark


def current_node_path(data_dir: Path) -> Path:
    return data_dir / CURRENT_NODE_FILENAME


def load_current_node_id(data_dir: Path) -> NodeId | None:
    """Return the persisted current node id, or ``None`` when absent/blank."""
    try:
        text = current_node_path(data_dir).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    stripped = text.strip()
    return stripped if stripped else None


def save_current_node_id(data_dir: Path, node_id: NodeId) -> None:
    path = current_node_path(data_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(node_id, encoding="utf-8")
