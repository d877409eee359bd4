"""Command palette item definitions."""

from __future__ import annotations

from collections.abc import Iterable

from ..actions import CommandItem, DispatchAction, EffectAction
from ..palette import PaletteStartNaming
from .async_actions import (
    delete_children,
    delete_current_node,
    delete_siblings,
    navigate_to_parent,
    next_sibling,
    previous_sibling,
)
from .config import Bookmark
from .events import PaletteDispatch, RequestExit, SetCurrentNode

BOOKMARK_COMMAND_PREFIX = "bookmark-"
BOOKMARK_LABEL_PREFIX = "Load bookmark: "

APP_COMMANDS: tuple[CommandItem, ...] = (
    CommandItem("up", "Navigate to parent", EffectAction(navigate_to_parent)),
    CommandItem("left", "Previous sibling", EffectAction(previous_sibling)),
    CommandItem("right", "Next sibling", EffectAction(next_sibling)),
    CommandItem("save", "Save bookmark", DispatchAction(PaletteDispatch(PaletteStartNaming()))),
    CommandItem("delete", "Delete current node", EffectAction(delete_current_node)),
    CommandItem("delete-siblings", "Delete all siblings", EffectAction(delete_siblings)),
    CommandItem("delete-children", "Delete children", EffectAction(delete_children)),
    CommandItem("quit", "Quit", DispatchAction(RequestExit())),
)


def bookmark_command(bookmark: Bookmark) -> CommandItem:
    return CommandItem(
        BOOKMARK_COMMAND_PREFIX + bookmark.title,
        BOOKMARK_LABEL_PREFIX + bookmark.title,
        DispatchAction(SetCurrentNode(bookmark.node_id)),
    )


def generate_all_commands(bookmarks: Iterable[Bookmark]) -> list[CommandItem]:
    """Static commands followed by one loader per bookmark."""
    commands = list(APP_COMMANDS)
    commands.extend(bookmark_command(bookmark) for bookmark in bookmarks)
    return commands


__all__ = ["APP_COMMANDS", "bookmark_command", "generate_all_commands"]
