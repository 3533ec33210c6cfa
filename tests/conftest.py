"""Pytest configuration and fixtures for jsgraph tests."""

import shutil
import tempfile
import textwrap
from pathlib import Path
from typing import Callable, Generator

import pytest

from jsgraph.artifacts import ArtifactStore
from jsgraph.models import Scope
from jsgraph.scope_builder import ExtractionContext, ScopeBuilder
from jsgraph.storage import SQLiteGraphSession
from jsgraph.syntax import JavaScriptTreeProvider, SourceTree

DEFAULT_SOURCE_PATH = "/project/src/app.js"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture(scope="session")
def provider() -> JavaScriptTreeProvider:
    """Strict JavaScript parser shared across tests."""
    return JavaScriptTreeProvider()


@pytest.fixture
def parse_js(provider: JavaScriptTreeProvider) -> Callable[..., SourceTree]:
    """Parse a dedented JavaScript snippet."""

    def _parse(source: str, path: str = DEFAULT_SOURCE_PATH) -> SourceTree:
        return provider.parse(textwrap.dedent(source).lstrip("\n"), path)

    return _parse


@pytest.fixture
def build(parse_js: Callable[..., SourceTree]) -> Callable[..., Scope]:
    """Parse a snippet and extract its scope tree."""

    def _build(source: str, path: str = DEFAULT_SOURCE_PATH) -> Scope:
        return ScopeBuilder(parse_js(source, path), ExtractionContext()).build()

    return _build


@pytest.fixture
def artifact_store(temp_dir: Path) -> ArtifactStore:
    """Artifact store rooted in a temporary directory."""
    return ArtifactStore(temp_dir / "artifacts")


@pytest.fixture
def db_path(temp_dir: Path) -> Path:
    """Location of a throwaway SQLite graph."""
    return temp_dir / "graph.db"


@pytest.fixture
def sqlite_session(db_path: Path) -> Generator[SQLiteGraphSession, None, None]:
    """Open SQLite graph session, closed after the test."""
    session = SQLiteGraphSession(db_path)
    yield session
    session.close()
