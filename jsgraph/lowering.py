"""Graph lowering: convert a Scope into an ordered list of merge operations.

Stages, each depending on nodes created by the previous one:

1. folder/file containment chain for the source path
2. top-level ``Function`` / ``Class`` nodes contained by the file
3. ``Method`` nodes for members, pointing at their declaring node
4. ``calls`` edges along every call chain
"""

from __future__ import annotations

import json
import logging
from collections import deque
from pathlib import PurePosixPath
from typing import Deque, Dict, List, Optional, Tuple

from .artifacts import ArtifactStore
from .errors import LoweringError
from .models import Descriptor, Scope
from .operations import MergeEdge, MergeNode, MergeOperation, NodeRef

logger = logging.getLogger(__name__)

_TOP_LEVEL_LABELS = {"function": "Function", "class": "Class"}


def folder_segments(source_path: str) -> List[str]:
    """Path components that name folders: no dot, whitespace stripped."""
    segments: List[str] = []
    for part in PurePosixPath(source_path.replace("\\", "/")).parts:
        if "." in part or not part.strip():
            continue
        segment = "".join(part.split())
        if segment and segment != "/":
            segments.append(segment)
    return segments


def file_base_name(source_path: str) -> str:
    """File name up to its first dot: ``src/app.test.js`` gives ``app``."""
    name = PurePosixPath(source_path.replace("\\", "/")).name
    base = name.split(".")[0].strip()
    if not base:
        raise LoweringError(f"Invalid source path '{source_path}': no usable file name")
    return base


def _chains_property(descriptor: Descriptor) -> str:
    return json.dumps([list(chain) for chain in descriptor.call_chains])


class GraphLowering:
    """Builds the merge-operation plan for one :class:`Scope`."""

    def __init__(self, scope: Scope, artifacts: ArtifactStore) -> None:
        self.scope = scope
        self.artifacts = artifacts
        self.file_name = file_base_name(scope.source_path)
        self.file_ref = NodeRef.of("file", name=self.file_name)
        self._operations: List[MergeOperation] = []
        # (node reference, descriptor) for every lowered declaration
        self._lowered: List[Tuple[NodeRef, Descriptor]] = []

    def lower(self) -> List[MergeOperation]:
        self._operations = []
        self._lowered = []
        self._containment()
        self._top_level()
        self._members()
        self._calls()
        operations = list(dict.fromkeys(self._operations))
        logger.debug(
            "Lowered %s into %d operations (%d duplicates dropped)",
            self.scope.source_path, len(operations), len(self._operations) - len(operations),
        )
        return operations

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _containment(self) -> None:
        previous: Optional[NodeRef] = None
        for segment in folder_segments(self.scope.source_path):
            folder = NodeRef.of("folder", name=segment)
            self._operations.append(MergeNode.of(folder))
            if previous is not None:
                self._operations.append(MergeEdge.of(previous, "folder", folder))
            previous = folder

        self._operations.append(MergeNode.of(self.file_ref))
        if previous is not None:
            self._operations.append(MergeEdge.of(previous, "contains", self.file_ref))

    def _declaration_node(self, label: str, descriptor: Descriptor, qualname: str) -> NodeRef:
        ref = NodeRef.of(label, name=descriptor.name, path=descriptor.source_path)
        properties: Dict[str, str] = {
            "calls": _chains_property(descriptor),
            "code": self.artifacts.code_locator(descriptor.source_path, qualname),
        }
        if descriptor.doc_comment:
            properties["doc"] = self.artifacts.doc_locator(descriptor.source_path, qualname)
        self._operations.append(MergeNode.of(ref, (self.file_name,), **properties))
        self._lowered.append((ref, descriptor))
        return ref

    def _top_level(self) -> None:
        for descriptor in self.scope.descriptors():
            label = _TOP_LEVEL_LABELS.get(descriptor.kind, "Function")
            ref = self._declaration_node(label, descriptor, descriptor.name)
            self._operations.append(MergeEdge.of(self.file_ref, "contains", ref))

    def _members(self) -> None:
        queue: Deque[Tuple[NodeRef, str, Descriptor]] = deque(
            (ref, descriptor.name, descriptor) for ref, descriptor in list(self._lowered)
        )
        while queue:
            parent_ref, parent_qualname, parent = queue.popleft()
            for member in parent.members.values():
                qualname = f"{parent_qualname}.{member.name}"
                ref = self._declaration_node("Method", member, qualname)
                self._operations.append(MergeEdge.of(ref, "parent", parent_ref))
                queue.append((ref, qualname, member))

    def _calls(self) -> None:
        for caller, descriptor in self._lowered:
            for chain in descriptor.call_chains:
                symbols = [NodeRef.of("Symbol", name=segment, path=descriptor.source_path) for segment in chain]
                for symbol in symbols:
                    self._operations.append(MergeNode.of(symbol))
                self._operations.append(MergeEdge.of(caller, "calls", symbols[-1], chain=".".join(chain)))
                for left, right in zip(symbols, symbols[1:]):
                    self._operations.append(MergeEdge.of(left, "calls", right))


def lower_scope(scope: Scope, artifacts: ArtifactStore) -> List[MergeOperation]:
    """Return the ordered, de-duplicated merge plan for *scope*."""
    return GraphLowering(scope, artifacts).lower()
