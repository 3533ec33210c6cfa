"""Pipeline coordinating parsing, extraction, artifacts and graph writes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .artifacts import ArtifactStore
from .config import SUPPORTED_EXTENSIONS
from .errors import ParseFailure
from .lowering import lower_scope
from .models import Scope
from .operations import MergeOperation
from .scope_builder import ExtractionContext, ScopeBuilder
from .storage import GraphSession
from .syntax import JavaScriptTreeProvider
from .transaction import TransactionCoordinator

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    source_path: str
    functions: int
    classes: int
    exports: int
    operations: int
    artifacts_written: int
    artifacts_failed: int


class IngestPipeline:
    """Turns one JavaScript file into graph merges and snippet artifacts."""

    def __init__(
        self,
        session_factory: Callable[[], GraphSession],
        artifacts: ArtifactStore,
        provider: Optional[JavaScriptTreeProvider] = None,
    ) -> None:
        self.session_factory = session_factory
        self.artifacts = artifacts
        self.provider = provider or JavaScriptTreeProvider()

    def extract(self, source_path: Path) -> Scope:
        resolved = Path(source_path).resolve()
        if resolved.suffix.lower() not in SUPPORTED_EXTENSIONS:
            logger.warning("%s does not look like a JavaScript file; parsing anyway", resolved)
        try:
            text = resolved.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ParseFailure(str(resolved), str(exc)) from exc
        tree = self.provider.parse(text, str(resolved))
        return ScopeBuilder(tree, ExtractionContext()).build()

    def plan(self, scope: Scope) -> List[MergeOperation]:
        return lower_scope(scope, self.artifacts)

    def run(self, source_path: Path) -> RunReport:
        scope = self.extract(source_path)
        operations = self.plan(scope)
        stats = self.artifacts.write_scope(scope)
        TransactionCoordinator(self.session_factory).apply(operations)

        report = RunReport(
            source_path=scope.source_path,
            functions=len(scope.functions),
            classes=len(scope.classes),
            exports=len(scope.exports),
            operations=len(operations),
            artifacts_written=stats.written,
            artifacts_failed=stats.failed,
        )
        logger.info("Ingested %s: %s", scope.source_path, report)
        return report
