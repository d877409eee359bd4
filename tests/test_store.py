"""Tests for the JSON-file Forest."""

from __future__ import annotations

import itertools
import tempfile
import unittest
from pathlib import Path

from loomnav.errors import InvariantError, NavigatorError, NodeNotFoundError
from loomnav.nodes import UNREAD_TAG, Message, NodeMetadata, RootConfig
from loomnav.protocols import ForestProtocol
from loomnav.store import FOREST_FILENAME, FileForest

CONFIG = RootConfig("openai", "gpt-test", "Be brief.")


class FileForestTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name)
        self.forest = self.open_forest()
        self.root = self.forest.get_or_create_root(CONFIG)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def open_forest(self) -> FileForest:
        counter = itertools.count(1)
        return FileForest(self.data_dir, id_factory=lambda: f"id{next(counter)}")

    async def test_satisfies_forest_protocol(self) -> None:
        self.assertIsInstance(self.forest, ForestProtocol)

    async def test_root_is_reused_for_same_config(self) -> None:
        self.assertEqual(self.forest.get_or_create_root(CONFIG).id, self.root.id)
        other = self.forest.get_or_create_root(RootConfig("anthropic", "claude-test"))
        self.assertNotEqual(other.id, self.root.id)
        self.assertEqual(len(self.forest.roots()), 2)

    async def test_append_reuses_existing_prefix(self) -> None:
        first = await self.forest.append(
            self.root.id, [Message("user", "hi"), Message("assistant", "a")], NodeMetadata()
        )
        second = await self.forest.append(
            self.root.id, [Message("user", "hi"), Message("assistant", "b")], NodeMetadata()
        )

        _, first_path = await self.forest.get_path(first.id)
        _, second_path = await self.forest.get_path(second.id)
        self.assertEqual(first_path[0].id, second_path[0].id)
        children = await self.forest.get_children(first_path[0].id)
        self.assertEqual([c.message.content for c in children], ["a", "b"])

    async def test_appended_metadata_only_on_new_nodes(self) -> None:
        user = await self.forest.append(self.root.id, [Message("user", "q")], NodeMetadata(source="user"))
        reply = await self.forest.append(
            self.root.id, [Message("user", "q"), Message("assistant", "r")], NodeMetadata(source="model")
        )
        self.assertEqual((await self.forest.get_node(user.id)).metadata.source, "user")
        self.assertEqual(reply.metadata.source, "model")

    async def test_state_survives_reload(self) -> None:
        node = await self.forest.append(self.root.id, [Message("user", "persist me")], NodeMetadata())
        await self.forest.update_metadata(node.id, NodeMetadata(tags=frozenset({UNREAD_TAG})))

        reopened = FileForest(self.data_dir)

        loaded = await reopened.get_node(node.id)
        self.assertEqual(loaded.message, Message("user", "persist me"))
        self.assertTrue(loaded.is_unread)
        self.assertEqual((await reopened.get_node(self.root.id)).config, CONFIG)

    async def test_corrupt_file_raises(self) -> None:
        (self.data_dir / FOREST_FILENAME).write_text("{broken", encoding="utf-8")
        with self.assertRaises(NavigatorError):
            FileForest(self.data_dir)

    async def test_recursive_delete_removes_subtree(self) -> None:
        leaf = await self.forest.append(
            self.root.id, [Message("user", "a"), Message("assistant", "b")], NodeMetadata()
        )
        _, path = await self.forest.get_path(leaf.id)

        await self.forest.delete_node(path[0].id)

        self.assertIsNone(await self.forest.get_node(leaf.id))
        self.assertEqual(await self.forest.get_children(self.root.id), [])

    async def test_non_recursive_delete_reparents_in_place(self) -> None:
        await self.forest.append(self.root.id, [Message("user", "first")], NodeMetadata())
        middle = await self.forest.append(self.root.id, [Message("user", "middle")], NodeMetadata())
        await self.forest.append(self.root.id, [Message("user", "last")], NodeMetadata())
        grandchild = await self.forest.append(middle.id, [Message("assistant", "kept")], NodeMetadata())

        await self.forest.delete_node(middle.id, recursive=False)

        children = await self.forest.get_children(self.root.id)
        self.assertEqual([c.message.content for c in children], ["first", "kept", "last"])
        self.assertEqual((await self.forest.get_node(grandchild.id)).parent_id, self.root.id)

    async def test_root_cannot_be_deleted(self) -> None:
        with self.assertRaises(InvariantError):
            await self.forest.delete_node(self.root.id)

    async def test_missing_nodes_raise(self) -> None:
        with self.assertRaises(NodeNotFoundError):
            await self.forest.get_children("nope")
        with self.assertRaises(NodeNotFoundError):
            await self.forest.update_metadata("nope", NodeMetadata())
        self.assertIsNone(await self.forest.get_node("nope"))

    async def test_get_path_from_ancestor(self) -> None:
        leaf = await self.forest.append(
            self.root.id,
            [Message("user", "1"), Message("assistant", "2"), Message("user", "3")],
            NodeMetadata(),
        )
        root, path = await self.forest.get_path(leaf.id)
        self.assertEqual(root.id, self.root.id)
        self.assertEqual([n.message.content for n in path], ["1", "2", "3"])

        _, tail = await self.forest.get_path(leaf.id, from_id=path[0].id)
        self.assertEqual([n.message.content for n in tail], ["2", "3"])

        with self.assertRaises(NavigatorError):
            await self.forest.get_path(path[0].id, from_id=leaf.id)


if __name__ == "__main__":
    unittest.main()
