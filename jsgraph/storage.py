"""Graph-store sessions that execute merge operations.

Architecture:
- **SQLite** (default) keeps the property graph in two tables, ``nodes`` and
  ``edges``, keyed by natural key.  Merges are upserts, so re-running a plan
  never duplicates anything.
- **Neo4j** (optional ``neo4j`` driver) receives the same operations as
  parameterised Cypher from :mod:`jsgraph.cypher`.

Both backends share :class:`GraphSession`, which tracks the open
transaction and turns begin/commit/rollback misuse into warnings.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config
from .cypher import serialize
from .operations import MergeEdge, MergeNode, MergeOperation, NodeRef

logger = logging.getLogger(__name__)


# ===================================================================
# Settings
# ===================================================================

@dataclass
class GraphSettings:
    backend: str = "sqlite"
    sqlite_path: Path = config.DEFAULT_DB_PATH
    uri: str = "bolt://localhost:7687"
    user: str = "neo4j"
    password: str = ""
    database: str = "neo4j"

    @classmethod
    def from_config(cls) -> "GraphSettings":
        return cls(
            backend=config.GRAPH_BACKEND,
            sqlite_path=config.SQLITE_PATH,
            uri=config.NEO4J_URI,
            user=config.NEO4J_USER,
            password=config.NEO4J_PASSWORD,
            database=config.NEO4J_DATABASE,
        )


# ===================================================================
# Session base class
# ===================================================================

class GraphSession(ABC):
    """One connection to a graph store with at most one open transaction."""

    def __init__(self) -> None:
        self._in_transaction = False

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def begin(self) -> None:
        if self._in_transaction:
            logger.warning("Transaction already open!")
            return
        self._begin()
        self._in_transaction = True

    def commit(self) -> None:
        if not self._in_transaction:
            logger.warning("No transaction to commit!")
            return
        self._commit()
        self._in_transaction = False

    def rollback(self) -> None:
        if not self._in_transaction:
            logger.warning("No transaction to roll back!")
            return
        self._rollback()
        self._in_transaction = False

    def execute(self, operation: MergeOperation) -> None:
        logger.debug("Executing %s", operation)
        if isinstance(operation, MergeNode):
            self._merge_node(operation)
        elif isinstance(operation, MergeEdge):
            self._merge_edge(operation)
        else:
            raise TypeError(f"Unsupported operation type: {type(operation).__name__}")

    def close(self) -> None:
        if self._in_transaction:
            try:
                self._rollback()
            except Exception as exc:
                logger.error("Error rolling back on close: %s", exc)
            self._in_transaction = False
        self._close()

    def __enter__(self) -> "GraphSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @abstractmethod
    def _begin(self) -> None: ...

    @abstractmethod
    def _commit(self) -> None: ...

    @abstractmethod
    def _rollback(self) -> None: ...

    @abstractmethod
    def _merge_node(self, operation: MergeNode) -> None: ...

    @abstractmethod
    def _merge_edge(self, operation: MergeEdge) -> None: ...

    @abstractmethod
    def _close(self) -> None: ...


class MissingEndpointError(LookupError):
    """An edge merge referenced a node that does not exist."""


# ===================================================================
# SQLite backend
# ===================================================================

def _key_text(ref: NodeRef) -> str:
    return json.dumps(ref.key_dict(), sort_keys=True)


class SQLiteGraphSession(GraphSession):
    """Property graph stored in a local SQLite file."""

    def __init__(self, db_path: Path) -> None:
        super().__init__()
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode; transactions are issued explicitly.
        self.conn = sqlite3.connect(str(db_path), isolation_level=None)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _init_schema(self) -> None:
        cur = self.conn.cursor()
        cur.execute("""
            CREATE TABLE IF NOT EXISTS nodes (
                label      TEXT NOT NULL,
                node_key   TEXT NOT NULL,
                tags       TEXT NOT NULL,
                properties TEXT NOT NULL,
                PRIMARY KEY (label, node_key)
            )
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS edges (
                src_label  TEXT NOT NULL,
                src_key    TEXT NOT NULL,
                kind       TEXT NOT NULL,
                dst_label  TEXT NOT NULL,
                dst_key    TEXT NOT NULL,
                properties TEXT NOT NULL,
                PRIMARY KEY (src_label, src_key, kind, dst_label, dst_key, properties)
            )
        """)
        cur.execute("CREATE INDEX IF NOT EXISTS idx_edges_dst ON edges(dst_label, dst_key)")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _begin(self) -> None:
        self.conn.execute("BEGIN")

    def _commit(self) -> None:
        self.conn.execute("COMMIT")

    def _rollback(self) -> None:
        self.conn.execute("ROLLBACK")

    def _close(self) -> None:
        self.conn.close()

    # ------------------------------------------------------------------
    # Merges
    # ------------------------------------------------------------------

    def _merge_node(self, operation: MergeNode) -> None:
        key = _key_text(operation.node)
        row = self.conn.execute(
            "SELECT tags, properties FROM nodes WHERE label = ? AND node_key = ?",
            (operation.node.label, key),
        ).fetchone()
        if row is None:
            self.conn.execute(
                "INSERT INTO nodes (label, node_key, tags, properties) VALUES (?, ?, ?, ?)",
                (
                    operation.node.label,
                    key,
                    json.dumps(sorted(set(operation.tags))),
                    json.dumps(operation.properties_dict(), sort_keys=True),
                ),
            )
            return

        tags = sorted(set(json.loads(row["tags"])) | set(operation.tags))
        properties = json.loads(row["properties"])
        properties.update(operation.properties_dict())
        self.conn.execute(
            "UPDATE nodes SET tags = ?, properties = ? WHERE label = ? AND node_key = ?",
            (json.dumps(tags), json.dumps(properties, sort_keys=True), operation.node.label, key),
        )

    def _merge_edge(self, operation: MergeEdge) -> None:
        for ref in (operation.source, operation.target):
            if not self.has_node(ref):
                raise MissingEndpointError(f"Edge endpoint {ref} does not exist")
        self.conn.execute(
            """
            INSERT OR IGNORE INTO edges (
                src_label, src_key, kind, dst_label, dst_key, properties
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                operation.source.label,
                _key_text(operation.source),
                operation.kind,
                operation.target.label,
                _key_text(operation.target),
                json.dumps(operation.properties_dict(), sort_keys=True),
            ),
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def has_node(self, ref: NodeRef) -> bool:
        return self.conn.execute(
            "SELECT 1 FROM nodes WHERE label = ? AND node_key = ?",
            (ref.label, _key_text(ref)),
        ).fetchone() is not None

    def get_node(self, ref: NodeRef) -> Optional[Dict[str, Any]]:
        row = self.conn.execute(
            "SELECT * FROM nodes WHERE label = ? AND node_key = ?",
            (ref.label, _key_text(ref)),
        ).fetchone()
        if row is None:
            return None
        return _node_payload(row)

    def get_nodes(self, label: Optional[str] = None) -> List[Dict[str, Any]]:
        if label is None:
            rows = self.conn.execute("SELECT * FROM nodes ORDER BY label, node_key").fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM nodes WHERE label = ? ORDER BY node_key", (label,),
            ).fetchall()
        return [_node_payload(row) for row in rows]

    def get_edges(self, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        query = "SELECT * FROM edges"
        params: tuple = ()
        if kind is not None:
            query += " WHERE kind = ?"
            params = (kind,)
        rows = self.conn.execute(query + " ORDER BY src_label, src_key, kind, dst_label, dst_key", params)
        return [
            {
                "source": (row["src_label"], json.loads(row["src_key"])),
                "kind": row["kind"],
                "target": (row["dst_label"], json.loads(row["dst_key"])),
                "properties": json.loads(row["properties"]),
            }
            for row in rows.fetchall()
        ]

    def counts(self) -> Dict[str, int]:
        nodes = self.conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0]
        edges = self.conn.execute("SELECT COUNT(*) FROM edges").fetchone()[0]
        return {"nodes": nodes, "edges": edges}


def _node_payload(row: sqlite3.Row) -> Dict[str, Any]:
    return {
        "label": row["label"],
        "key": json.loads(row["node_key"]),
        "tags": json.loads(row["tags"]),
        "properties": json.loads(row["properties"]),
    }


# ===================================================================
# Neo4j backend
# ===================================================================

class Neo4jGraphSession(GraphSession):
    """Runs merge operations through a ``neo4j`` driver.

    The driver is passed in so callers decide how it is created; use
    :func:`open_session` to build one from settings.
    """

    def __init__(self, driver: Any, database: Optional[str] = None) -> None:
        super().__init__()
        self.driver = driver
        self.session = driver.session(database=database) if database else driver.session()
        self._tx: Any = None

    def _begin(self) -> None:
        self._tx = self.session.begin_transaction()

    def _commit(self) -> None:
        self._tx.commit()
        self._tx = None

    def _rollback(self) -> None:
        self._tx.rollback()
        self._tx = None

    def _run(self, operation: MergeOperation) -> Any:
        query, params = serialize(operation)
        runner = self._tx if self._tx is not None else self.session
        return runner.run(query, params)

    def _merge_node(self, operation: MergeNode) -> None:
        self._run(operation).consume()

    def _merge_edge(self, operation: MergeEdge) -> None:
        record = self._run(operation).single()
        if record is None or record["merged"] == 0:
            raise MissingEndpointError(f"Edge endpoint missing for {operation}")

    def _close(self) -> None:
        try:
            self.session.close()
        finally:
            self.driver.close()


# ===================================================================
# Factory
# ===================================================================

def open_session(settings: Optional[GraphSettings] = None) -> GraphSession:
    """Open a session for the configured backend."""
    settings = settings or GraphSettings.from_config()
    if settings.backend == "sqlite":
        return SQLiteGraphSession(settings.sqlite_path)
    if settings.backend == "neo4j":
        from neo4j import GraphDatabase

        driver = GraphDatabase.driver(settings.uri, auth=(settings.user, settings.password))
        return Neo4jGraphSession(driver, database=settings.database)
    raise ValueError(f"Unknown graph backend '{settings.backend}'")
