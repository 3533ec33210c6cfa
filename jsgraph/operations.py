"""Typed, idempotent graph merge operations.

Operations are plain frozen values.  They never contain query text; each
store backend decides how to express "match this pattern by its natural key,
or create it".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

NODE_LABELS = frozenset({"folder", "file", "Function", "Class", "Method", "Symbol"})
EDGE_KINDS = frozenset({"folder", "contains", "parent", "calls"})

Pairs = Tuple[Tuple[str, str], ...]


def _pairs(values: Dict[str, Any]) -> Pairs:
    return tuple(sorted((name, str(value)) for name, value in values.items()))


@dataclass(frozen=True)
class NodeRef:
    """A node identified by its label and natural key."""

    label: str
    key: Pairs

    def __post_init__(self) -> None:
        if self.label not in NODE_LABELS:
            raise ValueError(f"Unknown node label '{self.label}'")
        if not self.key:
            raise ValueError("A node reference needs at least one key field")

    @classmethod
    def of(cls, label: str, **key: Any) -> "NodeRef":
        return cls(label, _pairs(key))

    def key_dict(self) -> Dict[str, str]:
        return dict(self.key)

    def __str__(self) -> str:
        fields = ", ".join(f"{name}={value!r}" for name, value in self.key)
        return f"({self.label} {{{fields}}})"


@dataclass(frozen=True)
class MergeNode:
    """Ensure *node* exists; add *tags* as extra labels and set *properties*."""

    node: NodeRef
    tags: Tuple[str, ...] = ()
    properties: Pairs = ()

    @classmethod
    def of(cls, node: NodeRef, tags: Tuple[str, ...] = (), **properties: Any) -> "MergeNode":
        return cls(node, tuple(tags), _pairs(properties))

    def properties_dict(self) -> Dict[str, str]:
        return dict(self.properties)

    def __str__(self) -> str:
        return f"MERGE {self.node}"


@dataclass(frozen=True)
class MergeEdge:
    """Ensure a *kind* edge from *source* to *target* exists.

    Both endpoints must already exist.  The edge's *properties* are part of
    its identity: two merges with different properties yield two edges.
    """

    source: NodeRef
    kind: str
    target: NodeRef
    properties: Pairs = ()

    def __post_init__(self) -> None:
        if self.kind not in EDGE_KINDS:
            raise ValueError(f"Unknown relationship kind '{self.kind}'")

    @classmethod
    def of(cls, source: NodeRef, kind: str, target: NodeRef, **properties: Any) -> "MergeEdge":
        return cls(source, kind, target, _pairs(properties))

    def properties_dict(self) -> Dict[str, str]:
        return dict(self.properties)

    def __str__(self) -> str:
        return f"MERGE {self.source}-[:{self.kind}]->{self.target}"


MergeOperation = Union[MergeNode, MergeEdge]
