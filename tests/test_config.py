"""Tests for config, bookmark and current-node persistence."""

from __future__ import annotations

import json
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from loomnav.errors import ValidationError
from loomnav.runtime.config import (
    DEFAULT_SYSTEM_PROMPT,
    EMPTY_BOOKMARK_TITLE_MESSAGE,
    BookmarkStore,
    NavigatorDefaults,
    ProviderSettings,
    config_path,
    load_config,
    load_current_node_id,
    load_defaults,
    load_provider_settings,
    save_current_node_id,
)


class ConfigTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def write_config(self, payload: object) -> None:
        config_path(self.data_dir).write_text(json.dumps(payload), encoding="utf-8")


class LoadConfigTests(ConfigTestCase):
    def test_missing_file_is_empty(self) -> None:
        self.assertEqual(load_config(self.data_dir), {})

    def test_malformed_json_is_empty(self) -> None:
        config_path(self.data_dir).write_text("{not json", encoding="utf-8")
        self.assertEqual(load_config(self.data_dir), {})

    def test_non_object_is_empty(self) -> None:
        self.write_config([1, 2, 3])
        self.assertEqual(load_config(self.data_dir), {})

    def test_defaults_without_config(self) -> None:
        defaults = load_defaults(self.data_dir)
        self.assertEqual(defaults, NavigatorDefaults())
        self.assertEqual(defaults.system_prompt, DEFAULT_SYSTEM_PROMPT)

    def test_defaults_validate_each_field(self) -> None:
        self.write_config(
            {
                "defaults": {
                    "model": " openai/gpt-4o ",
                    "temperature": 0.3,
                    "max_tokens": 0,
                    "n": True,
                    "system_prompt": "   ",
                    "max_visible_children": 9,
                    "style": "friendly",
                }
            }
        )

        defaults = load_defaults(self.data_dir)

        self.assertEqual(defaults.model, "openai/gpt-4o")
        self.assertEqual(defaults.temperature, 0.3)
        self.assertEqual(defaults.max_tokens, 1024)
        self.assertEqual(defaults.n, 5)
        self.assertEqual(defaults.system_prompt, DEFAULT_SYSTEM_PROMPT)
        self.assertEqual(defaults.max_visible_children, 9)
        self.assertEqual(defaults.style, "friendly")

    def test_provider_settings(self) -> None:
        self.write_config({"providers": {"openai": {"api_key": "sk-1", "base_url": 5}}})

        self.assertEqual(load_provider_settings(self.data_dir, "openai"), ProviderSettings("sk-1", None))
        self.assertEqual(load_provider_settings(self.data_dir, "anthropic"), ProviderSettings())


class BookmarkStoreTests(ConfigTestCase):
    def test_add_and_load(self) -> None:
        store = BookmarkStore(self.data_dir)
        now = datetime(2024, 1, 2, tzinfo=timezone.utc)

        saved = store.add("  draft  ", "n1", now=now)

        self.assertEqual(saved.title, "draft")
        self.assertEqual(saved.created_at, now.isoformat())
        self.assertEqual(store.load(), [saved])

    def test_add_preserves_other_config_sections(self) -> None:
        self.write_config({"defaults": {"n": 2}})
        BookmarkStore(self.data_dir).add("a", "n1")
        self.assertEqual(load_defaults(self.data_dir).n, 2)

    def test_empty_title_rejected(self) -> None:
        with self.assertRaises(ValidationError) as caught:
            BookmarkStore(self.data_dir).add("   ", "n1")
        self.assertEqual(str(caught.exception), EMPTY_BOOKMARK_TITLE_MESSAGE)

    def test_duplicate_title_rejected(self) -> None:
        store = BookmarkStore(self.data_dir)
        store.add("same", "n1")
        with self.assertRaises(ValidationError):
            store.add("same", "n2")
        self.assertEqual([b.node_id for b in store.load()], ["n1"])

    def test_malformed_records_are_skipped(self) -> None:
        self.write_config(
            {
                "bookmarks": [
                    "junk",
                    {"title": "", "node_id": "n1"},
                    {"title": "ok", "node_id": "n2", "created_at": "t0"},
                    {"title": "ok", "node_id": "n3"},
                ]
            }
        )

        loaded = BookmarkStore(self.data_dir).load()

        self.assertEqual(len(loaded), 1)
        self.assertEqual((loaded[0].node_id, loaded[0].updated_at), ("n2", "t0"))


class CurrentNodeTests(ConfigTestCase):
    def test_round_trip_and_blank(self) -> None:
        self.assertIsNone(load_current_node_id(self.data_dir))
        save_current_node_id(self.data_dir, "abc")
        self.assertEqual(load_current_node_id(self.data_dir), "abc")
        save_current_node_id(self.data_dir, "  ")
        self.assertIsNone(load_current_node_id(self.data_dir))


if __name__ == "__main__":
    unittest.main()
