"""Configuration paths and graph-store settings for jsgraph."""

from __future__ import annotations

import os
from pathlib import Path

from .config_manager import BASE_DIR, load_extraction_config, load_graph_config

OUTPUT_DIR = BASE_DIR / "output"
DEFAULT_DB_PATH = BASE_DIR / "graph.db"
SUPPORTED_EXTENSIONS = {".js", ".mjs", ".cjs", ".jsx"}

_graph_config = load_graph_config()
_extraction_config = load_extraction_config()

# Graph backend: "sqlite" (local file) or "neo4j" (set via `jsgraph set-graph`)
GRAPH_BACKEND = _graph_config.get("backend", "sqlite")
SQLITE_PATH = Path(_graph_config.get("sqlite_path", str(DEFAULT_DB_PATH))).expanduser()
NEO4J_URI = _graph_config.get("uri", "bolt://localhost:7687")
NEO4J_USER = _graph_config.get("user", "neo4j")
NEO4J_PASSWORD = os.environ.get("JSGRAPH_NEO4J_PASSWORD", _graph_config.get("password", ""))
NEO4J_DATABASE = _graph_config.get("database", "neo4j")

ALLOW_SYNTAX_ERRORS = bool(_extraction_config.get("allow_syntax_errors", False))
ARTIFACT_DIR = Path(_extraction_config.get("output_dir", str(OUTPUT_DIR))).expanduser()
