"""Scope extraction: build the nested declaration tree of one source file.

The builder walks the syntax tree breadth-first with an explicit worklist.
Function-like and class-like nodes are handed to dedicated handlers which
create a :class:`~jsgraph.models.Descriptor`, attach the preceding doc
comment, collect call chains, and walk the declaration's body with the same
worklist so nested declarations land in the descriptor's ``members``.
Everything else is expanded through the provider's generic child
enumeration, so only the handful of node kinds in
:class:`~jsgraph.syntax.NodeKind` need explicit handling.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional

from .call_chains import extract_call_chains, unique_chains
from .exports import ExportResolver
from .models import Comment, Descriptor, Scope
from .syntax import (
    NodeKind,
    SourceTree,
    child_nodes,
    classify,
    declared_name,
    end_line,
    is_object_method,
    name_text,
    start_line,
)

logger = logging.getLogger(__name__)

Container = Dict[str, Descriptor]


@dataclass
class ExtractionContext:
    """Mutable state shared by every handler invocation of one run."""

    anonymous_counter: int = 0

    def anonymous_name(self, kind: str) -> str:
        name = f"anonymous_{kind}_{self.anonymous_counter}"
        self.anonymous_counter += 1
        return name


class DocCommentIndex:
    """Finds the doc comment that directly precedes a declaration."""

    def __init__(self, comments: List[Comment]) -> None:
        self._docs = sorted((c for c in comments if c.is_doc), key=lambda c: c.end_byte)
        self._ends = [c.end_byte for c in self._docs]

    def lookup(self, node: Any) -> Optional[str]:
        idx = bisect_right(self._ends, node.start_byte) - 1
        if idx < 0:
            return None
        closest = self._docs[idx]
        if closest.end_line == start_line(node) - 1:
            return closest.text
        return None


class ScopeBuilder:
    """Builds a :class:`Scope` from a parsed :class:`SourceTree`."""

    def __init__(self, tree: SourceTree, context: Optional[ExtractionContext] = None) -> None:
        self.tree = tree
        self.context = context or ExtractionContext()
        self.scope = Scope(source_path=tree.source_path)
        self.exports = ExportResolver(self.scope.exports)
        self._docs = DocCommentIndex(tree.comments)

    def build(self) -> Scope:
        self.walk(self.tree.root, self.scope.functions, self.scope.classes, module_level=True)
        logger.info(
            "Extracted %d functions, %d classes, %d exports from %s",
            len(self.scope.functions), len(self.scope.classes),
            len(self.scope.exports), self.scope.source_path,
        )
        return self.scope

    # ------------------------------------------------------------------
    # Worklist traversal
    # ------------------------------------------------------------------

    def walk(
        self,
        root: Any,
        functions: Container,
        classes: Container,
        module_level: bool = False,
    ) -> None:
        queue: Deque[Any] = deque([root])
        while queue:
            node = queue.popleft()
            kind = classify(node)

            if kind is NodeKind.FUNCTION:
                self.handle_function(node, functions)
            elif kind is NodeKind.CLASS:
                self.handle_class(node, classes)
            else:
                queue.extend(child_nodes(node))

            if module_level and kind in (NodeKind.EXPORT, NodeKind.EXPRESSION):
                self.exports.resolve(node)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _descriptor(self, node: Any, name: str, kind: str) -> Descriptor:
        return Descriptor(
            name=name,
            kind=kind,
            source_path=self.tree.source_path,
            raw_code=self.tree.slice(node),
            doc_comment=self._docs.lookup(node),
            start_line=start_line(node),
            end_line=end_line(node),
        )

    def _store(self, container: Container, descriptor: Descriptor) -> None:
        if descriptor.name in container:
            logger.debug(
                "%s '%s' redeclared at line %d; keeping the later declaration",
                descriptor.kind, descriptor.name, descriptor.start_line,
            )
        container[descriptor.name] = descriptor

    def handle_function(self, node: Any, container: Container) -> Descriptor:
        # Object-literal methods are named like anonymous function expressions.
        name = None if is_object_method(node) else declared_name(node)
        name = name or self.context.anonymous_name("function")
        descriptor = self._descriptor(node, name, "function")
        self._store(container, descriptor)
        self._fill_body(descriptor, node.child_by_field_name("body"))
        return descriptor

    def handle_class(self, node: Any, container: Container) -> Descriptor:
        name = declared_name(node) or self.context.anonymous_name("class")
        descriptor = self._descriptor(node, name, "class")
        self._store(container, descriptor)

        body = node.child_by_field_name("body")
        for child in child_nodes(body) if body is not None else []:
            if child.type == "method_definition":
                self._handle_method(child, child.child_by_field_name("name"), child, descriptor)
            elif child.type == "field_definition":
                value = child.child_by_field_name("value")
                if value is None:
                    continue
                value_kind = classify(value)
                if value_kind is NodeKind.FUNCTION:
                    self._handle_method(child, child.child_by_field_name("property"), value, descriptor)
                elif value_kind is NodeKind.CLASS:
                    self.handle_class(value, descriptor.members)
            elif classify(child) is NodeKind.CLASS:
                self.handle_class(child, descriptor.members)

        return descriptor

    def _handle_method(self, node: Any, name_node: Any, function_node: Any, owner: Descriptor) -> None:
        if name_node is None:
            return
        method = self._descriptor(node, name_text(name_node), "method")
        self._store(owner.members, method)
        self._fill_body(method, function_node.child_by_field_name("body"))

    def _fill_body(self, descriptor: Descriptor, body: Any) -> None:
        if body is None:
            return
        self.walk(body, descriptor.members, descriptor.members)
        descriptor.call_chains = unique_chains(extract_call_chains(body))


def build_scope(tree: SourceTree, context: Optional[ExtractionContext] = None) -> Scope:
    """Convenience wrapper: extract the scope tree of *tree*."""
    return ScopeBuilder(tree, context).build()
