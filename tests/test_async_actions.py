"""Tests for the serialized action runner and the navigator effects.

Covers the loading guard, error mapping, generation fan-out and the
deletion fallback policy against in-memory collaborators.
"""

from __future__ import annotations

import asyncio
import tempfile
import unittest
from functools import partial
from pathlib import Path

from loomnav.errors import InvariantError, NavigatorError, ValidationError
from loomnav.nodes import UNREAD_TAG, GenerateOptions
from loomnav.runtime.async_actions import (
    ActionContext,
    AsyncActionRunner,
    delete_children,
    delete_current_node,
    delete_nodes,
    delete_siblings,
    execute_submission,
    generate,
)
from loomnav.runtime.command_palette import APP_COMMANDS
from loomnav.runtime.config import BookmarkStore
from loomnav.runtime.events import RequestExit, SetStatusError
from loomnav.runtime.reducer import SessionStore
from loomnav.runtime.state import SessionState
from tests.fakes import FakeForest, FakeGenerator


class RunnerHarness(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name)
        self.forest = FakeForest()
        self.forest.add_root("root")
        self.generator = FakeGenerator(self.forest, count=1)
        self.bookmarks = BookmarkStore(self.data_dir)
        self.store = SessionStore(SessionState(current_node_id="root"), APP_COMMANDS)
        self.runner = AsyncActionRunner(self.store, self._context)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _context(self) -> ActionContext:
        return ActionContext(
            forest=self.forest,
            generator=self.generator,
            options=GenerateOptions(n=3),
            current_node_id=self.store.state.current_node_id,
            dispatch=self.store.dispatch,
            bookmarks=self.bookmarks,
        )

    def stand_on(self, node_id: str) -> None:
        self.store.state.current_node_id = node_id

    @property
    def state(self) -> SessionState:
        return self.store.state


class AsyncActionRunnerTests(RunnerHarness):
    async def test_second_action_is_not_invoked_while_loading(self) -> None:
        calls = 0
        gate = asyncio.Event()

        async def slow(ctx: ActionContext) -> None:
            nonlocal calls
            calls += 1
            await gate.wait()

        first = self.runner.submit(slow)
        self.assertIsNotNone(first)
        self.assertTrue(self.state.status.is_loading)
        self.assertIsNone(self.runner.submit(slow))
        self.assertFalse(await self.runner.run(slow))

        gate.set()
        await first
        self.assertEqual(calls, 1)
        self.assertEqual(self.state.status.kind, "idle")

    async def test_status_change_does_not_reopen_the_guard(self) -> None:
        gate = asyncio.Event()

        async def slow(ctx: ActionContext) -> None:
            await gate.wait()

        first = self.runner.submit(slow)
        self.store.dispatch(SetStatusError("unrelated"))

        self.assertTrue(self.runner.busy)
        self.assertIsNone(self.runner.submit(slow))

        gate.set()
        await first
        self.assertFalse(self.runner.busy)

    async def test_synchronous_actions_are_supported(self) -> None:
        self.assertTrue(await self.runner.run(lambda ctx: ctx.dispatch(RequestExit())))
        self.assertTrue(self.state.should_exit)
        self.assertEqual(self.state.status.kind, "idle")

    async def test_failure_sets_errored_status_with_message(self) -> None:
        async def boom(ctx: ActionContext) -> None:
            raise ValidationError("bad input")

        await self.runner.run(boom)

        self.assertTrue(self.state.status.is_errored)
        self.assertEqual(self.state.status.message, "bad input")

    async def test_invariant_errors_are_reported_distinctly(self) -> None:
        async def broken(ctx: ActionContext) -> None:
            raise InvariantError("tree is inconsistent")

        await self.runner.run(broken)

        self.assertEqual(self.state.status.message, "Internal error: tree is inconsistent")

    async def test_empty_error_message_gets_placeholder(self) -> None:
        async def silent(ctx: ActionContext) -> None:
            raise RuntimeError()

        await self.runner.run(silent)

        self.assertEqual(self.state.status.message, "An unknown error occurred.")

    async def test_debug_appends_traceback(self) -> None:
        runner = AsyncActionRunner(self.store, self._context, debug=True)

        async def boom(ctx: ActionContext) -> None:
            raise NavigatorError("exploded")

        await runner.run(boom)

        self.assertTrue(self.state.status.message.startswith("exploded\n"))
        self.assertIn("Traceback", self.state.status.message)

    async def test_runner_accepts_new_action_after_error(self) -> None:
        async def boom(ctx: ActionContext) -> None:
            raise NavigatorError("first")

        await self.runner.run(boom)
        self.assertTrue(await self.runner.run(lambda ctx: None))
        self.assertEqual(self.state.status.kind, "idle")


class GenerationFanOutTests(RunnerHarness):
    def setUp(self) -> None:
        super().setUp()
        self.forest.add_child("root", "a", "hello", role="user")
        self.stand_on("a")

    async def test_single_candidate_is_followed(self) -> None:
        await self.runner.run(generate)

        candidate = self.forest.nodes["a"].child_ids[0]
        self.assertEqual(self.state.current_node_id, candidate)
        self.assertNotIn(UNREAD_TAG, self.forest.tags(candidate))

    async def test_multiple_candidates_are_tagged_unread_without_navigating(self) -> None:
        self.generator.count = 3
        generation = self.state.fetch_generation

        await self.runner.run(generate)

        self.assertEqual(self.state.current_node_id, "a")
        candidates = self.forest.nodes["a"].child_ids
        self.assertEqual(len(candidates), 3)
        for candidate in candidates:
            self.assertIn(UNREAD_TAG, self.forest.tags(candidate))
        self.assertEqual(self.state.fetch_generation, generation + 1)

    async def test_generation_context_is_the_path_messages(self) -> None:
        await self.runner.run(generate)

        root_id, messages, options = self.generator.calls[0]
        self.assertEqual(root_id, "root")
        self.assertEqual([m.content for m in messages], ["hello"])
        self.assertEqual(options.n, 3)

    async def test_root_without_config_is_an_invariant_error(self) -> None:
        self.forest.add_root("bare", with_config=False)
        self.forest.add_child("bare", "b")
        self.stand_on("b")

        await self.runner.run(generate)

        self.assertTrue(self.state.status.message.startswith("Internal error:"))
        self.assertEqual(self.generator.calls, [])


class SubmissionTests(RunnerHarness):
    async def test_user_message_then_single_candidate(self) -> None:
        await self.runner.run(partial(execute_submission, text="hi there"))

        user_id = self.forest.nodes["root"].child_ids[0]
        user_node = self.forest.nodes[user_id]
        self.assertEqual(user_node.message.content, "hi there")
        self.assertEqual(user_node.metadata.source, "user")
        self.assertEqual(self.state.current_node_id, user_node.child_ids[0])

    async def test_user_message_fan_out_stays_on_current_node(self) -> None:
        self.generator.count = 3

        await self.runner.run(partial(execute_submission, text="hello"))

        self.assertEqual(self.state.current_node_id, "root")
        user_id = self.forest.nodes["root"].child_ids[0]
        candidates = self.forest.nodes[user_id].child_ids
        self.assertEqual(len(candidates), 3)
        for candidate in candidates:
            self.assertIn(UNREAD_TAG, self.forest.tags(candidate))
        self.assertEqual(self.state.status.kind, "idle")

    async def test_numbered_slash_command_overrides_n(self) -> None:
        self.generator.count = None

        await self.runner.run(partial(execute_submission, text="/4"))

        self.assertEqual(self.generator.calls[0][2].n, 4)
        self.assertEqual(len(self.forest.nodes["root"].child_ids), 4)

    async def test_bare_slash_uses_default_n(self) -> None:
        self.generator.count = None

        await self.runner.run(partial(execute_submission, text="/"))

        self.assertEqual(self.generator.calls[0][2].n, 3)

    async def test_navigation_commands(self) -> None:
        self.forest.add_child("root", "a")
        self.forest.add_child("root", "b")
        self.forest.add_child("root", "c")
        self.stand_on("b")

        await self.runner.run(partial(execute_submission, text="/left"))
        self.assertEqual(self.state.current_node_id, "a")
        await self.runner.run(partial(execute_submission, text="/left"))
        self.assertEqual(self.state.current_node_id, "a")
        await self.runner.run(partial(execute_submission, text="/right"))
        self.assertEqual(self.state.current_node_id, "b")
        await self.runner.run(partial(execute_submission, text="/up"))
        self.assertEqual(self.state.current_node_id, "root")
        await self.runner.run(partial(execute_submission, text="/up"))
        self.assertEqual(self.state.current_node_id, "root")

    async def test_save_command_persists_bookmark(self) -> None:
        await self.runner.run(partial(execute_submission, text="/save  my spot "))

        self.assertEqual([(b.title, b.node_id) for b in self.bookmarks.load()], [("my spot", "root")])

    async def test_save_without_title_is_a_validation_error(self) -> None:
        await self.runner.run(partial(execute_submission, text="/save"))

        self.assertEqual(self.state.status.message, "Bookmark title cannot be empty")

    async def test_duplicate_bookmark_title_is_rejected(self) -> None:
        await self.runner.run(partial(execute_submission, text="/save spot"))
        await self.runner.run(partial(execute_submission, text="/save spot"))

        self.assertEqual(self.state.status.message, 'Bookmark with title "spot" already exists.')
        self.assertEqual(len(self.bookmarks.load()), 1)

    async def test_exit_command_requests_exit(self) -> None:
        await self.runner.run(partial(execute_submission, text="/exit"))
        self.assertTrue(self.state.should_exit)

    async def test_unknown_command_is_not_sent_as_message(self) -> None:
        await self.runner.run(partial(execute_submission, text="/frobnicate now"))

        self.assertEqual(self.state.status.message, "Unknown command: /frobnicate")
        self.assertEqual(self.forest.nodes["root"].child_ids, ())


class DeletionTests(RunnerHarness):
    def setUp(self) -> None:
        super().setUp()
        self.forest.add_child("root", "a")
        for node_id in ("b1", "b2", "b3"):
            self.forest.add_child("a", node_id)

    async def test_deleting_current_node_moves_to_next_sibling(self) -> None:
        self.stand_on("b2")

        await self.runner.run(delete_current_node)

        self.assertEqual(self.state.current_node_id, "b3")
        self.assertEqual(self.forest.deleted, ["b2"])

    async def test_deleting_last_sibling_falls_back_to_parent(self) -> None:
        self.stand_on("b3")

        await self.runner.run(delete_current_node)

        self.assertEqual(self.state.current_node_id, "a")

    async def test_deleting_an_ancestor_uses_its_sibling(self) -> None:
        self.forest.add_child("b2", "c")
        self.stand_on("c")

        await self.runner.run(partial(delete_nodes, node_ids=["b2"]))

        self.assertEqual(self.state.current_node_id, "b3")
        self.assertNotIn("c", self.forest.nodes)

    async def test_fallback_skips_siblings_being_deleted(self) -> None:
        self.stand_on("b1")

        await self.runner.run(partial(delete_nodes, node_ids=["b1", "b2"]))

        self.assertEqual(self.state.current_node_id, "b3")

    async def test_each_id_is_deleted_exactly_once(self) -> None:
        self.stand_on("b1")

        await self.runner.run(partial(delete_nodes, node_ids=["b2", "b2", "a", "b3"]))

        self.assertEqual(self.forest.deleted, ["b2", "a"])
        self.assertEqual(self.state.current_node_id, "root")
        self.assertEqual(self.state.status.kind, "idle")

    async def test_deleting_root_halts_before_any_deletion(self) -> None:
        self.stand_on("b1")

        await self.runner.run(partial(delete_nodes, node_ids=["b3", "root"]))

        self.assertEqual(self.forest.deleted, [])
        self.assertTrue(self.state.status.message.startswith("Internal error:"))

    async def test_delete_siblings_keeps_current_and_refreshes(self) -> None:
        self.stand_on("b2")
        generation = self.state.fetch_generation

        await self.runner.run(delete_siblings)

        self.assertEqual(self.forest.deleted, ["b1", "b3"])
        self.assertEqual(self.state.current_node_id, "b2")
        self.assertEqual(self.state.fetch_generation, generation + 1)

    async def test_delete_children_refreshes_in_place(self) -> None:
        self.stand_on("a")

        await self.runner.run(delete_children)

        self.assertEqual(self.forest.deleted, ["b1", "b2", "b3"])
        self.assertEqual(self.state.current_node_id, "a")
        self.assertEqual(self.forest.nodes["a"].child_ids, ())

    async def test_delete_siblings_at_root_is_noop(self) -> None:
        await self.runner.run(delete_siblings)
        self.assertEqual(self.forest.deleted, [])


if __name__ == "__main__":
    unittest.main()
