"""Read-only node snapshots exchanged with the Forest and the generator.

The navigator never owns tree state; it holds these frozen copies for one
interaction cycle and re-fetches them after every navigation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

UNREAD_TAG = "cli/unread"

NodeId = str


@dataclass(frozen=True)
class Message:
    role: str
    content: str


@dataclass(frozen=True)
class RootConfig:
    """Model/provider/system-prompt configuration carried by root nodes."""

    provider: str
    model: str
    system_prompt: str = ""


@dataclass(frozen=True)
class NodeMetadata:
    tags: frozenset[str] = frozenset()
    source: str = ""

    def with_tag(self, tag: str) -> NodeMetadata:
        return replace(self, tags=self.tags | {tag})

    def without_tag(self, tag: str) -> NodeMetadata:
        return replace(self, tags=self.tags - {tag})


@dataclass(frozen=True)
class NodeSnapshot:
    """One node as seen by the navigator.

    Roots have ``parent_id is None`` and carry ``config``; every other node
    carries a ``message``.
    """

    id: NodeId
    parent_id: NodeId | None
    root_id: NodeId
    child_ids: tuple[NodeId, ...] = ()
    message: Message | None = None
    metadata: NodeMetadata = field(default_factory=NodeMetadata)
    config: RootConfig | None = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_unread(self) -> bool:
        return UNREAD_TAG in self.metadata.tags


@dataclass(frozen=True)
class GenerateOptions:
    n: int = 5
    temperature: float = 1.0
    max_tokens: int = 1024
