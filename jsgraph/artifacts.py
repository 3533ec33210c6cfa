"""Side-artifact store for extracted code and doc-comment snippets.

Every descriptor gets two deterministic locators derived from the source
path and its qualified name (enclosing declarations joined with dots)::

    <output_dir>/<source path>.<qualified name>.js
    <output_dir>/<source path>.<qualified name>.jsdoc

Graph nodes store these locators, never the snippet text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Tuple

from .errors import ArtifactWriteFailure
from .models import Descriptor, Scope

logger = logging.getLogger(__name__)

CODE_SUFFIX = ".js"
DOC_SUFFIX = ".jsdoc"


@dataclass
class ArtifactStats:
    written: int = 0
    failed: int = 0


def walk_descriptors(scope: Scope) -> Iterator[Tuple[str, Descriptor]]:
    """Yield ``(qualified name, descriptor)`` for every descriptor, parents first."""
    stack = [(d.name, d) for d in reversed(scope.descriptors())]
    while stack:
        qualname, descriptor = stack.pop()
        yield qualname, descriptor
        for member in reversed(list(descriptor.members.values())):
            stack.append((f"{qualname}.{member.name}", member))


class ArtifactStore:
    """Writes snippets beneath *output_dir* and computes their locators."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def _base(self, source_path: str, qualname: str) -> Path:
        relative = Path(source_path).as_posix().lstrip("/").replace(":", "")
        return self.output_dir / f"{relative}.{qualname}"

    def code_locator(self, source_path: str, qualname: str) -> str:
        return str(self._base(source_path, qualname)) + CODE_SUFFIX

    def doc_locator(self, source_path: str, qualname: str) -> str:
        return str(self._base(source_path, qualname)) + DOC_SUFFIX

    def write(self, locator: str, content: str) -> None:
        path = Path(locator)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ArtifactWriteFailure(locator, exc) from exc
        logger.debug("Wrote artifact %s", path)

    def write_scope(self, scope: Scope) -> ArtifactStats:
        """Persist code and doc snippets for every descriptor of *scope*.

        A failed write is logged and counted; the remaining artifacts are
        still attempted.
        """
        stats = ArtifactStats()
        for qualname, descriptor in walk_descriptors(scope):
            pending = []
            if descriptor.raw_code:
                pending.append((self.code_locator(descriptor.source_path, qualname), descriptor.raw_code))
            if descriptor.doc_comment:
                pending.append((self.doc_locator(descriptor.source_path, qualname), descriptor.doc_comment))
            for locator, content in pending:
                try:
                    self.write(locator, content)
                    stats.written += 1
                except ArtifactWriteFailure as exc:
                    logger.warning("%s", exc)
                    stats.failed += 1
        return stats
