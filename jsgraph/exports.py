"""Export resolution for ES module and CommonJS export idioms."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .models import ExportBinding
from .syntax import child_nodes, declared_name, name_text, unwrap_parens

logger = logging.getLogger(__name__)

_VARIABLE_DECLARATIONS = ("lexical_declaration", "variable_declaration")


class ExportResolver:
    """Accumulates the export binding table of one file.

    Statements are fed in through :meth:`resolve` as the scope builder meets
    them.  Later bindings for the same exported name replace earlier ones.
    """

    def __init__(self, bindings: Optional[Dict[str, ExportBinding]] = None) -> None:
        self.bindings: Dict[str, ExportBinding] = bindings if bindings is not None else {}

    def resolve(self, node: Any) -> None:
        if node.type == "export_statement":
            self._resolve_export_statement(node)
        elif node.type == "expression_statement":
            expressions = child_nodes(node)
            if expressions and expressions[0].type == "assignment_expression":
                self._resolve_assignment(expressions[0])

    def _bind(self, exported: str, is_default: bool, local: Optional[str]) -> None:
        if exported in self.bindings:
            logger.debug("Export '%s' rebound to %s", exported, local)
        self.bindings[exported] = ExportBinding(is_default=is_default, local_identifier=local)

    # ------------------------------------------------------------------
    # ES modules
    # ------------------------------------------------------------------

    def _resolve_export_statement(self, node: Any) -> None:
        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")

        if any(child.type == "default" for child in node.children):
            target = unwrap_parens(declaration if declaration is not None else value)
            local: Optional[str] = None
            if target is not None:
                if target.type == "identifier":
                    local = name_text(target)
                else:
                    local = declared_name(target)
            self._bind("default", True, local)
            return

        if declaration is not None:
            if declaration.type in _VARIABLE_DECLARATIONS:
                for declarator in child_nodes(declaration):
                    if declarator.type != "variable_declarator":
                        continue
                    name_node = declarator.child_by_field_name("name")
                    # Destructuring patterns export several names; not tracked.
                    if name_node is not None and name_node.type == "identifier":
                        name = name_text(name_node)
                        self._bind(name, False, name)
            else:
                name = declared_name(declaration)
                if name:
                    self._bind(name, False, name)
            return

        for clause in child_nodes(node):
            if clause.type != "export_clause":
                continue
            for specifier in child_nodes(clause):
                if specifier.type != "export_specifier":
                    continue
                local_node = specifier.child_by_field_name("name")
                if local_node is None:
                    continue
                alias_node = specifier.child_by_field_name("alias")
                local_name = name_text(local_node)
                exported = name_text(alias_node) if alias_node is not None else local_name
                self._bind(exported, False, local_name)

    # ------------------------------------------------------------------
    # CommonJS
    # ------------------------------------------------------------------

    def _resolve_assignment(self, assignment: Any) -> None:
        left = unwrap_parens(assignment.child_by_field_name("left"))
        right = unwrap_parens(assignment.child_by_field_name("right"))
        if left is None or right is None or left.type != "member_expression":
            return

        target = unwrap_parens(left.child_by_field_name("object"))
        prop = left.child_by_field_name("property")
        if target is None or prop is None:
            return
        prop_name = name_text(prop)

        # exports.name = ... / module.exports.name = ...
        if _is_identifier(target, "exports") or _is_module_exports(target):
            self._bind(prop_name, prop_name == "default", _identifier_or_none(right))
            return

        # module.exports = ...
        if _is_identifier(target, "module") and prop_name == "exports":
            if right.type == "object":
                self._resolve_export_object(right)
            elif right.type == "identifier":
                self._bind("default", True, name_text(right))

    def _resolve_export_object(self, obj: Any) -> None:
        for prop in child_nodes(obj):
            if prop.type == "shorthand_property_identifier":
                name = name_text(prop)
                self._bind(name, name == "default", name)
            elif prop.type == "pair":
                key = prop.child_by_field_name("key")
                if key is None or key.type == "computed_property_name":
                    continue
                name = name_text(key)
                self._bind(name, name == "default", _identifier_or_none(prop.child_by_field_name("value")))
            elif prop.type == "method_definition":
                key = prop.child_by_field_name("name")
                if key is None or key.type == "computed_property_name":
                    continue
                name = name_text(key)
                self._bind(name, name == "default", None)


def _is_identifier(node: Any, name: str) -> bool:
    return node.type == "identifier" and name_text(node) == name


def _is_module_exports(node: Any) -> bool:
    if node.type != "member_expression":
        return False
    obj = unwrap_parens(node.child_by_field_name("object"))
    prop = node.child_by_field_name("property")
    return obj is not None and prop is not None and _is_identifier(obj, "module") and name_text(prop) == "exports"


def _identifier_or_none(node: Any) -> Optional[str]:
    node = unwrap_parens(node)
    if node is not None and node.type == "identifier":
        return name_text(node)
    return None
