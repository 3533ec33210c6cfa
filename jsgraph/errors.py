"""Exception hierarchy shared by extraction, lowering and storage."""

from __future__ import annotations

from typing import Any, Optional


class JsGraphError(Exception):
    """Base class for every error the tool reports to its caller."""


class ParseFailure(JsGraphError):
    """The syntax tree provider could not produce a usable tree."""

    def __init__(self, source_path: str, reason: str) -> None:
        super().__init__(f"Cannot parse {source_path}: {reason}")
        self.source_path = source_path
        self.reason = reason


class LoweringError(JsGraphError):
    """A scope could not be converted into merge operations."""


class ArtifactWriteFailure(JsGraphError):
    """A single code or doc-comment artifact could not be written."""

    def __init__(self, locator: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Failed to write artifact {locator}: {cause}")
        self.locator = locator
        self.cause = cause


class GraphOperationFailure(JsGraphError):
    """A merge operation failed; the enclosing transaction was rolled back."""

    def __init__(self, index: int, operation: Any, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Merge operation #{index} failed ({operation}): {cause}")
        self.index = index
        self.operation = operation
        self.cause = cause


class GraphStoreUnavailable(JsGraphError):
    """The graph store could not be opened."""

    def __init__(self, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Cannot open graph store: {cause}")
        self.cause = cause
