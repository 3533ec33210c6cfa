"""Cypher serialisation of merge operations for Neo4j.

Values always travel as query parameters.  Labels and relationship types
cannot be parameterised in Cypher, so they are backtick-quoted with embedded
backticks doubled.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from .operations import MergeEdge, MergeNode, MergeOperation, NodeRef

Statement = Tuple[str, Dict[str, Any]]


def quote_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def _pattern(var: str, ref: NodeRef, params: Dict[str, Any]) -> str:
    fields = []
    for index, (name, value) in enumerate(ref.key):
        param = f"{var}_k{index}"
        params[param] = value
        fields.append(f"{quote_identifier(name)}: ${param}")
    return f"({var}:{quote_identifier(ref.label)} {{{', '.join(fields)}}})"


def serialize(operation: MergeOperation) -> Statement:
    """Return ``(query, parameters)`` for one merge operation.

    Edge statements return ``merged``: the number of relationships matched
    or created, which is 0 when an endpoint is missing.
    """
    params: Dict[str, Any] = {}
    if isinstance(operation, MergeNode):
        query = f"MERGE {_pattern('n', operation.node, params)}"
        for tag in operation.tags:
            query += f"\nSET n:{quote_identifier(tag)}"
        if operation.properties:
            params["props"] = operation.properties_dict()
            query += "\nSET n += $props"
        return query, params

    if isinstance(operation, MergeEdge):
        source = _pattern("a", operation.source, params)
        target = _pattern("b", operation.target, params)
        rel_fields = []
        for index, (name, value) in enumerate(operation.properties):
            param = f"r_p{index}"
            params[param] = value
            rel_fields.append(f"{quote_identifier(name)}: ${param}")
        rel_props = f" {{{', '.join(rel_fields)}}}" if rel_fields else ""
        query = (
            f"MATCH {source}\n"
            f"MATCH {target}\n"
            f"MERGE (a)-[r:{quote_identifier(operation.kind)}{rel_props}]->(b)\n"
            f"RETURN count(r) AS merged"
        )
        return query, params

    raise TypeError(f"Unsupported operation type: {type(operation).__name__}")


def serialize_all(operations: List[MergeOperation]) -> List[Statement]:
    return [serialize(op) for op in operations]


def render(operations: List[MergeOperation]) -> str:
    """Human-readable script with parameters shown as trailing comments."""
    blocks = []
    for query, params in serialize_all(operations):
        blocks.append(f"{query};\n// {params}")
    return "\n\n".join(blocks)
