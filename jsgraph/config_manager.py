"""Configuration manager for jsgraph using TOML files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import toml

BASE_DIR = Path(os.environ.get("JSGRAPH_HOME", str(Path.home() / ".jsgraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"


DEFAULT_GRAPH_CONFIGS = {
    "sqlite": {
        "backend": "sqlite",
    },
    "neo4j": {
        "backend": "neo4j",
        "uri": "bolt://localhost:7687",
        "user": "neo4j",
        "password": "",
        "database": "neo4j",
    },
}

DEFAULT_EXTRACTION_CONFIG: Dict[str, Any] = {
    "allow_syntax_errors": False,
}


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError):
        return {}


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(CONFIG_FILE, "w") as f:
            toml.dump(config, f)
        return True
    except OSError:
        return False


def load_graph_config() -> Dict[str, Any]:
    """Load graph-store configuration from the ``[graph]`` section.

    Returns:
        Configuration dictionary with backend settings.
        Falls back to the SQLite defaults if the file or section is missing.
    """
    section = load_full_config().get("graph")
    if not section:
        return DEFAULT_GRAPH_CONFIGS["sqlite"].copy()
    backend = section.get("backend", "sqlite")
    merged = DEFAULT_GRAPH_CONFIGS.get(backend, DEFAULT_GRAPH_CONFIGS["sqlite"]).copy()
    merged.update(section)
    return merged


def save_graph_config(
    backend: str,
    uri: str = "",
    user: str = "",
    password: str = "",
    database: str = "",
    sqlite_path: str = "",
) -> bool:
    """Save graph-store configuration to TOML file.

    Preserves other sections (e.g. ``[extraction]``) in the file.

    Args:
        backend: Backend name (sqlite, neo4j)
        uri: Bolt URI for Neo4j
        user: Neo4j user name
        password: Neo4j password
        database: Neo4j database name
        sqlite_path: Database file for the SQLite backend

    Returns:
        True if saved successfully, False otherwise
    """
    if backend not in DEFAULT_GRAPH_CONFIGS:
        raise ValueError(f"Unknown graph backend '{backend}'")

    config = load_full_config()
    section: Dict[str, Any] = {"backend": backend}
    for name, value in (
        ("uri", uri),
        ("user", user),
        ("password", password),
        ("database", database),
        ("sqlite_path", sqlite_path),
    ):
        if value:
            section[name] = value
    config["graph"] = section
    return _save_full_config(config)


def load_extraction_config() -> Dict[str, Any]:
    """Load the ``[extraction]`` section merged over its defaults."""
    merged = DEFAULT_EXTRACTION_CONFIG.copy()
    merged.update(load_full_config().get("extraction", {}))
    return merged
