"""Syntax tree provider built on Tree-sitter's JavaScript grammar.

The rest of the package only relies on a narrow slice of the tree-sitter
node API: ``type``, ``is_named``, byte offsets, ``start_point`` /
``end_point``, ``parent``, ``named_children`` and ``child_by_field_name``.  Everything
grammar-specific that the extraction passes need to know is collected here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from .errors import ParseFailure
from .models import Comment

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Node-kind vocabulary
# ---------------------------------------------------------------------------

FUNCTION_TYPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",  # function expressions in grammars older than 0.21
    "generator_function",
    "arrow_function",
})

CLASS_TYPES = frozenset({"class_declaration", "class"})

EXPORT_TYPES = frozenset({"export_statement"})

EXPRESSION_TYPES = frozenset({"expression_statement"})


class NodeKind(Enum):
    FUNCTION = "function"
    CLASS = "class"
    EXPORT = "export"
    EXPRESSION = "expression"
    OTHER = "other"


def classify(node: Any) -> NodeKind:
    """Map a syntax node onto the closed set of kinds the builder handles."""
    if not node.is_named:
        return NodeKind.OTHER
    kind = node.type
    if kind in FUNCTION_TYPES or is_object_method(node):
        return NodeKind.FUNCTION
    if kind in CLASS_TYPES:
        return NodeKind.CLASS
    if kind in EXPORT_TYPES:
        return NodeKind.EXPORT
    if kind in EXPRESSION_TYPES:
        return NodeKind.EXPRESSION
    return NodeKind.OTHER


def is_object_method(node: Any) -> bool:
    """``{ load() {} }``: a method written inside an object literal."""
    if node.type != "method_definition":
        return False
    parent = node.parent
    return parent is not None and parent.type == "object"


def is_scope_node(node: Any) -> bool:
    return classify(node) in (NodeKind.FUNCTION, NodeKind.CLASS)


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------

def node_text(node: Any) -> str:
    return node.text.decode("utf-8", errors="replace")


def name_text(node: Any) -> str:
    """Text of an identifier-like node, with string-literal quotes removed."""
    text = node_text(node)
    if node.type == "string" and len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
        return text[1:-1]
    return text


def child_nodes(node: Any) -> List[Any]:
    """Generic child-slot enumeration: every named child except comments."""
    return [child for child in node.named_children if child.type != "comment"]


def unwrap_parens(node: Any) -> Any:
    while node is not None and node.type == "parenthesized_expression":
        inner = child_nodes(node)
        node = inner[-1] if inner else None
    return node


def declared_name(node: Any) -> Optional[str]:
    """Return the identifier a function/class node declares itself, if any."""
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return None
    return name_text(name_node)


def start_line(node: Any) -> int:
    return node.start_point[0] + 1


def end_line(node: Any) -> int:
    return node.end_point[0] + 1


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

@dataclass
class SourceTree:
    """A parsed file: root node, raw bytes, and the side list of comments."""

    source_path: str
    source_bytes: bytes
    root: Any
    comments: List[Comment] = field(default_factory=list)

    def slice(self, node: Any) -> str:
        return self.source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


class JavaScriptTreeProvider:
    """Parses JavaScript text with ``tree-sitter-javascript``.

    Tree-sitter is error tolerant; by default a tree that contains ERROR or
    MISSING nodes is still rejected with :class:`ParseFailure` so that a
    broken file never reaches the graph.  Pass ``allow_syntax_errors=True``
    to extract whatever the parser could recover.
    """

    _GRAMMAR_MODULE = "tree_sitter_javascript"

    def __init__(self, allow_syntax_errors: bool = False) -> None:
        self.allow_syntax_errors = allow_syntax_errors
        self._parser: Any = None
        self._init_parser()

    def _init_parser(self) -> None:
        try:
            import tree_sitter_javascript
            from tree_sitter import Language, Parser as TSParser
        except ImportError as exc:
            logger.warning(
                "Grammar package '%s' is not installed. Install with: pip install %s",
                self._GRAMMAR_MODULE, self._GRAMMAR_MODULE.replace("_", "-"),
            )
            self._import_error: Optional[ImportError] = exc
            return
        self._import_error = None
        self._parser = TSParser(Language(tree_sitter_javascript.language()))
        logger.debug("Loaded tree-sitter parser for javascript")

    @property
    def available(self) -> bool:
        return self._parser is not None

    def parse(self, text: str, source_path: str) -> SourceTree:
        if self._parser is None:
            raise ParseFailure(source_path, f"tree-sitter grammar unavailable ({self._import_error})")

        source_bytes = text.encode("utf-8")
        tree = self._parser.parse(source_bytes)
        root = tree.root_node
        if root.has_error and not self.allow_syntax_errors:
            raise ParseFailure(source_path, f"syntax error near line {_first_error_line(root)}")

        return SourceTree(
            source_path=source_path,
            source_bytes=source_bytes,
            root=root,
            comments=collect_comments(root),
        )


def collect_comments(root: Any) -> List[Comment]:
    """Gather every comment node of the tree in source order."""
    comments: List[Comment] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "comment":
            text = node_text(node)
            comments.append(Comment(
                kind="block" if text.startswith("/*") else "line",
                text=text,
                start_byte=node.start_byte,
                end_byte=node.end_byte,
                start_line=start_line(node),
                end_line=end_line(node),
            ))
            continue
        stack.extend(reversed(node.named_children))
    comments.sort(key=lambda c: c.start_byte)
    return comments


def _first_error_line(root: Any) -> int:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return start_line(node)
        stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
    return start_line(root)
