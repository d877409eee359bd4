"""Serialized execution of effectful navigator actions.

``AsyncActionRunner`` is the only catch-all error boundary in the TUI: every
action runs as one asyncio task, status flips to loading before the task is
created, and the outcome lands as idle or errored. While an action is in
flight further submissions are dropped, so two actions never interleave.

The module also holds the effects themselves. Each takes an ``ActionContext``
and talks to the Forest, the generator and the bookmark store; session
changes go back only through ``ctx.dispatch``.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from functools import partial

from loguru import logger

from ..actions import ActionFn
from ..commands import parse_slash_command
from ..errors import GenerationError, InvariantError, NodeNotFoundError, format_error
from ..nodes import UNREAD_TAG, GenerateOptions, Message, NodeId, NodeMetadata, NodeSnapshot
from ..protocols import ForestProtocol, GeneratorProtocol
from .config import BookmarkStore
from .events import (
    ForceFetch,
    RequestExit,
    SessionEvent,
    SetCurrentNode,
    SetStatusError,
    SetStatusIdle,
    SetStatusLoading,
)
from .reducer import SessionStore

USER_SOURCE = "user"


@dataclass(frozen=True)
class ActionContext:
    """Live session view handed to one action invocation."""

    forest: ForestProtocol
    generator: GeneratorProtocol
    options: GenerateOptions
    current_node_id: NodeId
    dispatch: Callable[[SessionEvent], None]
    bookmarks: BookmarkStore


class AsyncActionRunner:
    def __init__(
        self,
        store: SessionStore,
        make_context: Callable[[], ActionContext],
        debug: bool = False,
    ) -> None:
        self._store = store
        self._make_context = make_context
        self._debug = debug
        self._task: asyncio.Task[None] | None = None

    @property
    def busy(self) -> bool:
        if self._task is not None and not self._task.done():
            return True
        return self._store.state.status.is_loading

    def submit(self, action: ActionFn) -> asyncio.Task[None] | None:
        """Start ``action`` unless another one is in flight.

        Must be called from inside a running event loop. Returns the task, or
        ``None`` when the action was dropped.
        """
        if self.busy:
            logger.debug("Dropped action {} while loading", _action_name(action))
            return None
        self._store.dispatch(SetStatusLoading())
        ctx = self._make_context()
        self._task = asyncio.get_running_loop().create_task(self._execute(action, ctx))
        return self._task

    async def run(self, action: ActionFn) -> bool:
        """Submit ``action`` and wait for it; ``False`` when it was dropped."""
        task = self.submit(action)
        if task is None:
            return False
        await task
        return True

    async def wait_idle(self) -> None:
        while self._task is not None and not self._task.done():
            await self._task

    async def _execute(self, action: ActionFn, ctx: ActionContext) -> None:
        name = _action_name(action)
        try:
            outcome = action(ctx)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            if isinstance(exc, InvariantError):
                logger.opt(exception=exc).error("Action {} hit an invariant violation", name)
            else:
                logger.opt(exception=exc).warning("Action {} failed", name)
            self._store.dispatch(SetStatusError(format_error(exc, self._debug)))
            return
        logger.debug("Action {} finished", name)
        self._store.dispatch(SetStatusIdle())


def _action_name(action: ActionFn) -> str:
    func = action.func if isinstance(action, partial) else action
    return getattr(func, "__qualname__", None) or repr(func)


async def require_node(forest: ForestProtocol, node_id: NodeId) -> NodeSnapshot:
    node = await forest.get_node(node_id)
    if node is None:
        raise NodeNotFoundError(node_id)
    return node


async def navigate_to_parent(ctx: ActionContext) -> None:
    node = await require_node(ctx.forest, ctx.current_node_id)
    if not node.is_root:
        ctx.dispatch(SetCurrentNode(node.parent_id))


async def navigate_to_sibling(ctx: ActionContext, offset: int) -> None:
    """Move ``offset`` places among the current node's siblings, without wrapping."""
    node = await require_node(ctx.forest, ctx.current_node_id)
    if node.parent_id is None:
        return
    siblings = await ctx.forest.get_children(node.parent_id)
    ids = [sibling.id for sibling in siblings]
    if node.id not in ids:
        return
    target = ids.index(node.id) + offset
    if 0 <= target < len(ids):
        ctx.dispatch(SetCurrentNode(ids[target]))


async def previous_sibling(ctx: ActionContext) -> None:
    await navigate_to_sibling(ctx, -1)


async def next_sibling(ctx: ActionContext) -> None:
    await navigate_to_sibling(ctx, 1)


async def generate(ctx: ActionContext, node_id: NodeId | None = None, n: int | None = None) -> None:
    """Generate continuations of ``node_id`` (default: the current node).

    A single candidate is followed directly. Several candidates are tagged
    unread and surfaced in the child list without navigating into any of them.
    """
    source_id = node_id or ctx.current_node_id
    root, path = await ctx.forest.get_path(source_id)
    if root.config is None:
        raise InvariantError(f"Root {root.id} has no model configuration")
    messages = [node.message for node in path if node.message is not None]
    options = ctx.options if n is None else replace(ctx.options, n=n)

    logger.info("Generating n={} from {}", options.n, source_id)
    candidates = await ctx.generator.generate(root, messages, options)
    if not candidates:
        raise GenerationError("Generation returned no candidates.")

    if len(candidates) == 1:
        ctx.dispatch(SetCurrentNode(candidates[0].id))
        return

    for candidate in candidates:
        await ctx.forest.update_metadata(candidate.id, candidate.metadata.with_tag(UNREAD_TAG))
    logger.info("Surfaced {} unread candidates under {}", len(candidates), source_id)
    ctx.dispatch(ForceFetch())


async def user_message(ctx: ActionContext, content: str) -> None:
    """Append a user message below the current node, then generate from it."""
    user_node = await ctx.forest.append(
        ctx.current_node_id,
        [Message(role="user", content=content)],
        NodeMetadata(source=USER_SOURCE),
    )
    await generate(ctx, node_id=user_node.id)


async def save_bookmark(ctx: ActionContext, title: str) -> None:
    ctx.bookmarks.add(title, ctx.current_node_id)


async def _deletion_fallback(
    ctx: ActionContext,
    nodes: Sequence[NodeSnapshot],
) -> NodeId | None:
    """Where to stand once ``nodes`` are gone; ``None`` when the current node survives."""
    deleting = {node.id for node in nodes}
    _, path = await ctx.forest.get_path(ctx.current_node_id)
    doomed = next((node for node in path if node.id in deleting), None)
    if doomed is None or doomed.parent_id is None:
        return None
    siblings = await ctx.forest.get_children(doomed.parent_id)
    ids = [sibling.id for sibling in siblings]
    if doomed.id in ids:
        for sibling_id in ids[ids.index(doomed.id) + 1 :]:
            if sibling_id not in deleting:
                return sibling_id
    return doomed.parent_id


async def delete_nodes(ctx: ActionContext, node_ids: Sequence[NodeId]) -> None:
    """Delete each id once, recursively, then move off any deleted node.

    Every target is validated before anything is removed: deleting a root is
    an invariant violation and halts the whole action.
    """
    unique_ids = list(dict.fromkeys(node_ids))
    if not unique_ids:
        return
    nodes = [await require_node(ctx.forest, node_id) for node_id in unique_ids]
    for node in nodes:
        if node.parent_id is None:
            raise InvariantError(f"Cannot delete root node {node.id}")

    fallback = await _deletion_fallback(ctx, nodes)

    for node in nodes:
        # An earlier recursive delete may already have removed this one.
        if await ctx.forest.get_node(node.id) is None:
            continue
        await ctx.forest.delete_node(node.id, recursive=True)
    logger.info("Deleted {} node(s)", len(nodes))

    if fallback is not None and await ctx.forest.get_node(ctx.current_node_id) is None:
        ctx.dispatch(SetCurrentNode(fallback))
    else:
        ctx.dispatch(ForceFetch())


async def delete_current_node(ctx: ActionContext) -> None:
    await delete_nodes(ctx, [ctx.current_node_id])


async def delete_siblings(ctx: ActionContext) -> None:
    """Delete every sibling of the current node, keeping the node itself."""
    node = await require_node(ctx.forest, ctx.current_node_id)
    if node.parent_id is None:
        return
    parent = await require_node(ctx.forest, node.parent_id)
    await delete_nodes(ctx, [child_id for child_id in parent.child_ids if child_id != node.id])


async def delete_children(ctx: ActionContext) -> None:
    node = await require_node(ctx.forest, ctx.current_node_id)
    await delete_nodes(ctx, node.child_ids)


async def request_exit(ctx: ActionContext) -> None:
    ctx.dispatch(RequestExit())


async def execute_submission(ctx: ActionContext, text: str) -> None:
    """Route submitted input text to a slash command or a new user message."""
    command = parse_slash_command(text)
    if command is None:
        await user_message(ctx, text)
    elif command.name == "generate":
        await generate(ctx, n=command.n)
    elif command.name == "up":
        await navigate_to_parent(ctx)
    elif command.name == "left":
        await previous_sibling(ctx)
    elif command.name == "right":
        await next_sibling(ctx)
    elif command.name == "save":
        await save_bookmark(ctx, command.title)
    elif command.name == "exit":
        ctx.dispatch(RequestExit())
