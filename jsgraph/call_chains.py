"""Call-chain extraction: reduce call expressions to ordered name paths."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Deque, Iterable, List, Set, Tuple

from .models import CallChain
from .syntax import FUNCTION_TYPES, child_nodes, declared_name, is_scope_node, name_text, unwrap_parens

logger = logging.getLogger(__name__)


def extract_callee_path(call_node: Any) -> CallChain:
    """Return the callee of *call_node* as a path of names, outermost first.

    ``this.store.get(x)`` gives ``("this", "store", "get")``.  The path is
    empty when the callee bottoms out in something that has no name, such as
    ``import(...)`` or ``new Foo().bar`` without any member access.
    """
    callee = call_node.child_by_field_name("function")
    if callee is None:
        return ()
    return tuple(_member_path(callee))


def _member_path(node: Any) -> List[str]:
    parts: Deque[str] = deque()
    node = unwrap_parens(node)
    while node is not None:
        if node.type == "member_expression":
            prop = node.child_by_field_name("property")
            if prop is not None:
                parts.appendleft(name_text(prop))
            node = unwrap_parens(node.child_by_field_name("object"))
        elif node.type == "call_expression":
            node = unwrap_parens(node.child_by_field_name("function"))
        else:
            break

    if node is None:
        return list(parts)

    if node.type == "identifier":
        parts.appendleft(name_text(node))
    elif node.type == "this":
        parts.appendleft("this")
    elif node.type in FUNCTION_TYPES:
        parts.appendleft(declared_name(node) or "anonymous")
    elif node.type == "sequence_expression":
        last = _last_operand(node)
        if last is not None:
            parts.extendleft(reversed(_member_path(last)))
    return list(parts)


def _last_operand(node: Any) -> Any:
    # Older grammars nest sequences to the right; newer ones are flat.
    while node is not None and node.type == "sequence_expression":
        operands = child_nodes(node)
        node = unwrap_parens(operands[-1]) if operands else None
    return node


def extract_call_chains(body: Any) -> List[CallChain]:
    """Collect one callee path per call expression found under *body*.

    Nested functions, arrows and classes are not entered; their calls
    belong to their own descriptor.  Calls are gathered in post-order and
    the list is reversed, so an outer call precedes the calls nested in its
    callee or arguments.
    """
    if body is None:
        return []

    chains: List[CallChain] = []
    stack: List[Tuple[Any, bool]] = [(body, False)]
    while stack:
        node, visited = stack.pop()
        if visited:
            if node.type == "call_expression":
                path = extract_callee_path(node)
                if path:
                    chains.append(path)
                else:
                    logger.warning(
                        "Unresolved callee at line %d: %s",
                        node.start_point[0] + 1,
                        node.text.decode("utf-8", errors="replace")[:80],
                    )
            continue
        if is_scope_node(node):
            continue
        stack.append((node, True))
        for child in reversed(child_nodes(node)):
            stack.append((child, False))

    chains.reverse()
    return chains


def unique_chains(chains: Iterable[CallChain]) -> List[CallChain]:
    """Drop chains whose segments, ignoring order, were already seen.

    ``("a", "b", "c")`` and ``("c", "b", "a")`` are the same chain here;
    the first one encountered is kept.
    """
    seen: Set[Tuple[str, ...]] = set()
    result: List[CallChain] = []
    for chain in chains:
        key = tuple(sorted(chain))
        if key in seen:
            continue
        seen.add(key)
        result.append(chain)
    return result
