"""Top-level navigator orchestration.

``NavigationController`` routes key tokens to the palette, the child list or
the input pane, submits effects to the ``AsyncActionRunner`` and re-derives
history and children whenever the current node (or the forced-fetch counter)
changes. It never writes session state directly; everything goes through the
store's dispatch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from functools import partial

from loguru import logger

from ..actions import CommandItem, DispatchAction, EffectAction
from ..children import partition_children
from ..errors import InvariantError
from ..input.key_registry import KeyBinding, KeyRegistry, normalize_key
from ..list_window import ScrollState, advance, reconcile, retreat
from ..nodes import UNREAD_TAG, GenerateOptions, NodeId
from ..palette import (
    PaletteClose,
    PaletteNaming,
    PaletteNavigate,
    PaletteOpen,
    PalettePicking,
    PaletteItemsRefiltered,
    PaletteQueryChanged,
    PaletteTitleChanged,
    filter_commands,
)
from ..protocols import ForestProtocol, GeneratorProtocol
from .async_actions import (
    ActionContext,
    AsyncActionRunner,
    execute_submission,
    navigate_to_parent,
    next_sibling,
    previous_sibling,
    require_node,
    save_bookmark,
)
from .command_palette import generate_all_commands
from .config import EMPTY_BOOKMARK_TITLE_MESSAGE, BookmarkStore
from .events import (
    NodeDataAttempted,
    NodeDataLoaded,
    PaletteDispatch,
    RequestExit,
    SetChildWindow,
    SetCurrentNode,
    SetFocus,
    SetInputText,
    SetStatusError,
)
from .reducer import SessionStore
from .state import CHILD_LIST_ID, FOCUS_CHILDREN, FOCUS_INPUT, SessionState


def _is_printable(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


class NavigationController:
    def __init__(
        self,
        store: SessionStore,
        forest: ForestProtocol,
        generator: GeneratorProtocol,
        bookmarks: BookmarkStore,
        options: GenerateOptions | None = None,
        *,
        persist_current_node: Callable[[NodeId], None] | None = None,
        debug: bool = False,
    ) -> None:
        self.store = store
        self.forest = forest
        self.generator = generator
        self.bookmarks = bookmarks
        self.options = options or GenerateOptions()
        self.debug = debug
        self._persist_current_node = persist_current_node
        self._last_cleared_id: NodeId | None = None
        self.runner = AsyncActionRunner(store, self._make_context, debug=debug)

        self._input_keys = KeyRegistry(
            KeyBinding(("ENTER",), self._submit_input),
            KeyBinding(("ALT_UP",), partial(self.submit, navigate_to_parent)),
            KeyBinding(("ALT_LEFT",), partial(self.submit, previous_sibling)),
            KeyBinding(("ALT_RIGHT",), partial(self.submit, next_sibling)),
            KeyBinding(("DOWN",), self._focus_children),
            KeyBinding(("CTRL_P",), self.open_palette),
            KeyBinding(("BACKSPACE",), self._input_backspace),
            KeyBinding(("CTRL_U",), partial(self.dispatch, SetInputText(""))),
        )
        self._child_keys = KeyRegistry(
            KeyBinding(("UP",), self._child_up),
            KeyBinding(("DOWN",), self._child_down),
            KeyBinding(("ENTER",), self._select_child),
            KeyBinding(("ESC",), self._focus_input),
            KeyBinding(("CTRL_P",), self.open_palette),
        )

    @property
    def state(self) -> SessionState:
        return self.store.state

    def dispatch(self, event) -> None:
        self.store.dispatch(event)

    def _make_context(self) -> ActionContext:
        return ActionContext(
            forest=self.forest,
            generator=self.generator,
            options=self.options,
            current_node_id=self.state.current_node_id,
            dispatch=self.store.dispatch,
            bookmarks=self.bookmarks,
        )

    def submit(self, action) -> asyncio.Task[None] | None:
        return self.runner.submit(action)

    # Current-node derivation

    def sync(self) -> asyncio.Task[None] | None:
        """Start a refresh when the loaded data is stale and nothing is in flight."""
        state = self.state
        if state.should_exit or not state.is_stale or self.runner.busy:
            return None
        return self.runner.submit(partial(self._refresh, key=state.fetch_key))

    async def _refresh(self, ctx: ActionContext, key: tuple[NodeId, int]) -> None:
        node_id = key[0]
        try:
            node = await require_node(ctx.forest, node_id)
            if node.parent_id is not None and node_id != self._last_cleared_id:
                self._last_cleared_id = node_id
                if UNREAD_TAG in node.metadata.tags:
                    await ctx.forest.update_metadata(node_id, node.metadata.without_tag(UNREAD_TAG))
            root, path = await ctx.forest.get_path(node_id)
            if root.config is None:
                raise InvariantError(f"Root {root.id} has no model configuration")
            children = await ctx.forest.get_children(node_id)
        except Exception:
            self.dispatch(NodeDataAttempted(key))
            raise
        logger.debug("Loaded {} ({} children)", node_id, len(children))
        self.dispatch(
            NodeDataLoaded(
                key=key,
                root=root,
                history=tuple(path),
                children=tuple(partition_children(children)),
            )
        )
        if self._persist_current_node is not None:
            self._persist_current_node(node_id)

    def reconcile_child_window(self, capacity: int) -> None:
        window = self.state.child_window
        updated = reconcile(window, len(self.state.children), capacity)
        if updated is not window:
            self.dispatch(SetChildWindow(updated))

    async def settle(self) -> None:
        """Wait until no action is in flight and the loaded data is current."""
        while True:
            await self.runner.wait_idle()
            task = self.sync()
            if task is None:
                return
            await task

    # Key routing

    def handle_key(self, key: str) -> None:
        key = normalize_key(key)
        if not key:
            return
        if key == "CTRL_C":
            self.dispatch(RequestExit())
            return
        palette = self.state.palette
        if isinstance(palette, PalettePicking):
            self._handle_picking_key(key, palette)
        elif isinstance(palette, PaletteNaming):
            self._handle_naming_key(key, palette)
        elif self.state.focus.is_list(CHILD_LIST_ID):
            self._child_keys.dispatch(key)
        elif not self._input_keys.dispatch(key) and _is_printable(key):
            self.dispatch(SetInputText(self.state.input_text + key))

    # Input pane

    def _submit_input(self) -> None:
        text = self.state.input_text
        if not text.strip() or self.runner.busy:
            return
        self.dispatch(SetInputText(""))
        self.submit(partial(execute_submission, text=text))

    def _input_backspace(self) -> None:
        self.dispatch(SetInputText(self.state.input_text[:-1]))

    def _focus_children(self) -> None:
        children = self.state.children
        if not children:
            return
        self.dispatch(SetFocus(FOCUS_CHILDREN))
        self.dispatch(SetChildWindow(advance(ScrollState(), len(children))))

    def _focus_input(self) -> None:
        self.dispatch(SetChildWindow(ScrollState()))
        self.dispatch(SetFocus(FOCUS_INPUT))

    # Child list

    def _child_up(self) -> None:
        moved = retreat(self.state.child_window)
        if moved.focus_index is None:
            self._focus_input()
        else:
            self.dispatch(SetChildWindow(moved))

    def _child_down(self) -> None:
        self.dispatch(SetChildWindow(advance(self.state.child_window, len(self.state.children))))

    def _select_child(self) -> None:
        child = self.state.focused_child
        if child is None or self.runner.busy:
            return
        self.dispatch(SetCurrentNode(child.id))
        self.dispatch(SetFocus(FOCUS_INPUT))

    # Palette

    def open_palette(self) -> None:
        self.dispatch(PaletteDispatch(PaletteOpen()))
        self._refilter("")

    def _all_commands(self) -> list[CommandItem]:
        return generate_all_commands(self.bookmarks.load())

    def _refilter(self, query: str) -> None:
        self.dispatch(PaletteDispatch(PaletteItemsRefiltered(filter_commands(query, self._all_commands()))))

    def _set_query(self, query: str) -> None:
        self.dispatch(PaletteDispatch(PaletteQueryChanged(query)))
        self._refilter(query)

    def _close_palette(self) -> None:
        self.dispatch(PaletteDispatch(PaletteClose()))

    def _handle_picking_key(self, key: str, palette: PalettePicking) -> None:
        if key == "ESC":
            self._close_palette()
        elif key == "UP":
            self.dispatch(PaletteDispatch(PaletteNavigate(-1)))
        elif key == "DOWN":
            self.dispatch(PaletteDispatch(PaletteNavigate(1)))
        elif key == "ENTER":
            self._confirm_pick(palette)
        elif key == "BACKSPACE":
            self._set_query(palette.query[:-1])
        elif key == "CTRL_U":
            self._set_query("")
        elif _is_printable(key):
            self._set_query(palette.query + key)

    def _confirm_pick(self, palette: PalettePicking) -> None:
        item = palette.selected_item
        if self.runner.busy:
            return
        self._close_palette()
        if item is not None:
            self.execute_command(item)

    def execute_command(self, item: CommandItem) -> None:
        action = item.action
        logger.debug("Palette command {}", item.id)
        if isinstance(action, EffectAction):
            self.submit(action.run)
        elif isinstance(action, DispatchAction):
            self.dispatch(action.event)

    def _handle_naming_key(self, key: str, palette: PaletteNaming) -> None:
        if key == "ESC":
            self._close_palette()
        elif key == "ENTER":
            self._confirm_title(palette.title)
        elif key == "BACKSPACE":
            self.dispatch(PaletteDispatch(PaletteTitleChanged(palette.title[:-1])))
        elif key == "CTRL_U":
            self.dispatch(PaletteDispatch(PaletteTitleChanged("")))
        elif _is_printable(key):
            self.dispatch(PaletteDispatch(PaletteTitleChanged(palette.title + key)))

    def _confirm_title(self, raw_title: str) -> None:
        if self.runner.busy:
            return
        title = raw_title.strip()
        if not title:
            self.dispatch(SetStatusError(EMPTY_BOOKMARK_TITLE_MESSAGE))
            return
        self._close_palette()
        self.submit(partial(save_bookmark, title=title))

