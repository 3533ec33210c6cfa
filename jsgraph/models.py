"""Core data models produced by scope extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

CallChain = Tuple[str, ...]


@dataclass
class Comment:
    kind: str  # "block" | "line"
    text: str
    start_byte: int
    end_byte: int
    start_line: int
    end_line: int

    @property
    def is_doc(self) -> bool:
        return self.kind == "block" and self.text.startswith("/**") and self.text != "/**/"


@dataclass
class Descriptor:
    name: str
    kind: str  # "function" | "class" | "method"
    source_path: str
    raw_code: str
    doc_comment: Optional[str] = None
    start_line: int = 0
    end_line: int = 0
    members: Dict[str, "Descriptor"] = field(default_factory=dict)
    call_chains: List[CallChain] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "path": self.source_path,
            "lines": [self.start_line, self.end_line],
            "doc": self.doc_comment,
            "calls": [list(chain) for chain in self.call_chains],
            "members": {name: member.to_dict() for name, member in self.members.items()},
        }


@dataclass
class ExportBinding:
    is_default: bool
    local_identifier: Optional[str]


@dataclass
class Scope:
    source_path: str
    functions: Dict[str, Descriptor] = field(default_factory=dict)
    classes: Dict[str, Descriptor] = field(default_factory=dict)
    exports: Dict[str, ExportBinding] = field(default_factory=dict)

    def descriptors(self) -> List[Descriptor]:
        """Top-level descriptors, functions first."""
        return list(self.functions.values()) + list(self.classes.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source_path,
            "functions": {name: d.to_dict() for name, d in self.functions.items()},
            "classes": {name: d.to_dict() for name, d in self.classes.items()},
            "exports": {
                name: {"default": b.is_default, "identifier": b.local_identifier}
                for name, b in self.exports.items()
            },
        }
