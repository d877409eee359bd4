"""Reference Forest backed by one JSON document in the data directory.

The whole forest is loaded once and rewritten after every mutation. Writes go
through a temporary file and ``os.replace`` so a crash never leaves a
truncated document behind.
"""

from __future__ import annotations

import json
import os
import uuid
from collections.abc import Callable, Sequence
from dataclasses import replace
from pathlib import Path

from loguru import logger

from .errors import InvariantError, NavigatorError, NodeNotFoundError
from .nodes import Message, NodeId, NodeMetadata, NodeSnapshot, RootConfig

FOREST_FILENAME = "forest.json"


def _new_id() -> NodeId:
    return uuid.uuid4().hex


def _node_to_json(node: NodeSnapshot) -> dict[str, object]:
    return {
        "id": node.id,
        "parent_id": node.parent_id,
        "root_id": node.root_id,
        "child_ids": list(node.child_ids),
        "message": (
            None
            if node.message is None
            else {"role": node.message.role, "content": node.message.content}
        ),
        "metadata": {"tags": sorted(node.metadata.tags), "source": node.metadata.source},
        "config": (
            None
            if node.config is None
            else {
                "provider": node.config.provider,
                "model": node.config.model,
                "system_prompt": node.config.system_prompt,
            }
        ),
    }


def _node_from_json(raw: dict) -> NodeSnapshot:
    message = raw.get("message")
    metadata = raw.get("metadata") or {}
    config = raw.get("config")
    return NodeSnapshot(
        id=raw["id"],
        parent_id=raw.get("parent_id"),
        root_id=raw.get("root_id") or raw["id"],
        child_ids=tuple(raw.get("child_ids") or ()),
        message=None if message is None else Message(message["role"], message["content"]),
        metadata=NodeMetadata(
            tags=frozenset(metadata.get("tags") or ()),
            source=metadata.get("source") or "",
        ),
        config=(
            None
            if config is None
            else RootConfig(
                provider=config["provider"],
                model=config["model"],
                system_prompt=config.get("system_prompt") or "",
            )
        ),
    )


class FileForest:
    """Conversation tree persisted as ``<data_dir>/forest.json``."""

    def __init__(self, data_dir: Path, id_factory: Callable[[], NodeId] = _new_id) -> None:
        self.path = data_dir / FOREST_FILENAME
        self._new_id = id_factory
        self._nodes: dict[NodeId, NodeSnapshot] = self._load()

    def _load(self) -> dict[NodeId, NodeSnapshot]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except ValueError as exc:
            raise NavigatorError(f"Corrupt forest file {self.path}: {exc}") from exc
        raw_nodes = data.get("nodes") if isinstance(data, dict) else None
        if not isinstance(raw_nodes, list):
            raise NavigatorError(f"Corrupt forest file {self.path}: missing node list")
        nodes = {}
        for raw in raw_nodes:
            node = _node_from_json(raw)
            nodes[node.id] = node
        logger.debug("Loaded {} nodes from {}", len(nodes), self.path)
        return nodes

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"nodes": [_node_to_json(node) for node in self._nodes.values()]}
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        os.replace(tmp, self.path)

    def _require(self, node_id: NodeId) -> NodeSnapshot:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def roots(self) -> list[NodeSnapshot]:
        return [node for node in self._nodes.values() if node.parent_id is None]

    def get_or_create_root(self, config: RootConfig) -> NodeSnapshot:
        """Return the root whose configuration equals ``config``, creating it if needed."""
        for root in self.roots():
            if root.config == config:
                return root
        root_id = self._new_id()
        root = NodeSnapshot(id=root_id, parent_id=None, root_id=root_id, config=config)
        self._nodes[root_id] = root
        self._save()
        logger.info("Created root {} for {}/{}", root_id, config.provider, config.model)
        return root

    async def get_node(self, node_id: NodeId) -> NodeSnapshot | None:
        return self._nodes.get(node_id)

    async def get_children(self, node_id: NodeId) -> list[NodeSnapshot]:
        node = self._require(node_id)
        return [self._nodes[child_id] for child_id in node.child_ids if child_id in self._nodes]

    async def append(
        self,
        node_id: NodeId,
        messages: Sequence[Message],
        metadata: NodeMetadata,
    ) -> NodeSnapshot:
        """Append ``messages`` as a chain below ``node_id``.

        Leading messages that already exist as a child chain are reused; only
        the remainder is created, carrying ``metadata``. Returns the last node.
        """
        current = self._require(node_id)
        created = 0
        for message in messages:
            match = None
            if created == 0:
                match = next(
                    (
                        self._nodes[child_id]
                        for child_id in current.child_ids
                        if child_id in self._nodes and self._nodes[child_id].message == message
                    ),
                    None,
                )
            if match is not None:
                current = match
                continue
            child = NodeSnapshot(
                id=self._new_id(),
                parent_id=current.id,
                root_id=current.root_id,
                message=message,
                metadata=metadata,
            )
            self._nodes[child.id] = child
            self._nodes[current.id] = replace(current, child_ids=current.child_ids + (child.id,))
            current = child
            created += 1
        if created:
            self._save()
        return current

    async def update_metadata(self, node_id: NodeId, metadata: NodeMetadata) -> NodeSnapshot:
        node = replace(self._require(node_id), metadata=metadata)
        self._nodes[node_id] = node
        self._save()
        return node

    async def delete_node(self, node_id: NodeId, recursive: bool = True) -> None:
        """Delete ``node_id``; without ``recursive`` its children move up to its parent."""
        node = self._require(node_id)
        if node.parent_id is None:
            raise InvariantError(f"Cannot delete root node {node_id}")
        parent = self._require(node.parent_id)
        siblings = list(parent.child_ids)
        position = siblings.index(node_id) if node_id in siblings else len(siblings)
        siblings = [sibling for sibling in siblings if sibling != node_id]

        if recursive:
            stack = [node_id]
            while stack:
                current = self._nodes.pop(stack.pop(), None)
                if current is not None:
                    stack.extend(current.child_ids)
        else:
            del self._nodes[node_id]
            for child_id in node.child_ids:
                if child_id in self._nodes:
                    self._nodes[child_id] = replace(self._nodes[child_id], parent_id=parent.id)
            siblings[position:position] = [c for c in node.child_ids if c in self._nodes]

        self._nodes[parent.id] = replace(parent, child_ids=tuple(siblings))
        self._save()

    async def get_path(
        self,
        to_id: NodeId,
        from_id: NodeId | None = None,
    ) -> tuple[NodeSnapshot, list[NodeSnapshot]]:
        """Return ``(root, path)``; ``path`` starts below ``from_id`` (or the root)."""
        chain: list[NodeSnapshot] = []
        seen: set[NodeId] = set()
        current: NodeSnapshot | None = self._require(to_id)
        while current is not None:
            if current.id in seen:
                raise InvariantError(f"Cycle detected at node {current.id}")
            seen.add(current.id)
            chain.append(current)
            current = None if chain[-1].parent_id is None else self._require(chain[-1].parent_id)
        chain.reverse()
        root = chain[0]
        path = chain[1:]
        if from_id is not None and from_id != root.id:
            ids = [node.id for node in path]
            if from_id not in ids:
                raise NavigatorError(f"Node {from_id} is not an ancestor of {to_id}")
            path = path[ids.index(from_id) + 1 :]
        return root, path
