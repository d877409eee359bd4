"""Protocols for the external collaborators driven by the navigator."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from .nodes import GenerateOptions, Message, NodeId, NodeMetadata, NodeSnapshot


@runtime_checkable
class ForestProtocol(Protocol):
    """Conversation-tree storage engine."""

    async def get_node(self, node_id: NodeId) -> NodeSnapshot | None:
        """Return the node, or ``None`` when it does not exist."""
        ...

    async def get_children(self, node_id: NodeId) -> list[NodeSnapshot]:
        """Return children of ``node_id`` in creation order."""
        ...

    async def append(
        self,
        node_id: NodeId,
        messages: Sequence[Message],
        metadata: NodeMetadata,
    ) -> NodeSnapshot:
        """Append ``messages`` below ``node_id`` and return the last node."""
        ...

    async def update_metadata(self, node_id: NodeId, metadata: NodeMetadata) -> NodeSnapshot:
        """Replace metadata of ``node_id``."""
        ...

    async def delete_node(self, node_id: NodeId, recursive: bool = True) -> None:
        """Delete ``node_id`` (and its subtree when ``recursive``)."""
        ...

    async def get_path(
        self,
        to_id: NodeId,
        from_id: NodeId | None = None,
    ) -> tuple[NodeSnapshot, list[NodeSnapshot]]:
        """Return ``(root, path)`` where ``path`` runs from below the root to ``to_id``."""
        ...


@runtime_checkable
class GeneratorProtocol(Protocol):
    """Generation engine producing candidate children."""

    async def generate(
        self,
        root: NodeSnapshot,
        messages: Sequence[Message],
        options: GenerateOptions,
    ) -> list[NodeSnapshot]:
        """Generate candidates for the context and return the created nodes."""
        ...
