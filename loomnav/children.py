"""Child ordering for the child-list pane."""

from __future__ import annotations

from collections.abc import Iterable

from .nodes import NodeSnapshot


def partition_children(children: Iterable[NodeSnapshot]) -> list[NodeSnapshot]:
    """Return unread children first, then read ones, each in original order."""
    unread: list[NodeSnapshot] = []
    read: list[NodeSnapshot] = []
    for child in children:
        if child.is_unread:
            unread.append(child)
        else:
            read.append(child)
    return unread + read
