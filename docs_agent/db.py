"""SQLite storage for vector index payloads.

Stores:
- One row per indexed chunk (namespace, record id, FAISS vector id, text, source)
- Per-namespace embedding configuration (model and dimension)
"""
import sqlite3
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterable, Tuple
from datetime import datetime, timezone
import structlog

from docs_agent import config

logger = structlog.get_logger()


class RecordDatabase:
    """Payload and id-mapping store backing the FAISS index."""

    def __init__(self, db_path: Path = None):
        self.db_path = Path(db_path or config.DB_PATH)

    def get_connection(self) -> sqlite3.Connection:
        """Get a connection to the SQLite database.

        Returns:
            sqlite3.Connection with row_factory set to sqlite3.Row
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_database(self) -> None:
        """Initialize the database schema.

        Creates tables if they don't exist:
        - namespaces: embedding configuration per namespace
        - records: chunk payloads keyed by (namespace, record_id)
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS namespaces (
                    name TEXT PRIMARY KEY,
                    embedding_dimension INTEGER NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    namespace TEXT NOT NULL,
                    record_id TEXT NOT NULL,
                    vector_id INTEGER NOT NULL,
                    text TEXT NOT NULL,
                    source TEXT,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (namespace, record_id),
                    UNIQUE (namespace, vector_id)
                )
            """)

            conn.commit()
            logger.debug("database_initialized", db_path=str(self.db_path))

        except Exception as e:
            conn.rollback()
            logger.error("database_init_failed", error=str(e))
            raise
        finally:
            conn.close()

    def get_namespace_dimension(self, namespace: str) -> Optional[int]:
        """Return the embedding dimension recorded for a namespace, if any."""
        conn = self.get_connection()
        try:
            row = conn.execute(
                "SELECT embedding_dimension FROM namespaces WHERE name = ?",
                (namespace,),
            ).fetchone()
            return row["embedding_dimension"] if row else None
        finally:
            conn.close()

    def set_namespace_dimension(self, namespace: str, dimension: int) -> None:
        conn = self.get_connection()
        try:
            conn.execute(
                "INSERT OR IGNORE INTO namespaces (name, embedding_dimension, created_at) "
                "VALUES (?, ?, ?)",
                (namespace, dimension, _now()),
            )
            conn.commit()
        finally:
            conn.close()

    def get_vector_ids(self, namespace: str, record_ids: Iterable[str]) -> Dict[str, int]:
        """Map existing record ids to their FAISS vector ids.

        Args:
            namespace: Namespace to look in
            record_ids: Record ids to resolve

        Returns:
            Dict of record_id -> vector_id for the ids that already exist
        """
        record_ids = list(record_ids)
        if not record_ids:
            return {}

        conn = self.get_connection()
        try:
            mapping = {}
            # Stay well below SQLite's bound-parameter limit
            for i in range(0, len(record_ids), 500):
                batch = record_ids[i : i + 500]
                placeholders = ",".join("?" * len(batch))
                rows = conn.execute(
                    f"SELECT record_id, vector_id FROM records "
                    f"WHERE namespace = ? AND record_id IN ({placeholders})",
                    (namespace, *batch),
                ).fetchall()
                mapping.update({row["record_id"]: row["vector_id"] for row in rows})
            return mapping
        finally:
            conn.close()

    def next_vector_id(self, namespace: str) -> int:
        """Return the first unused FAISS vector id in a namespace."""
        conn = self.get_connection()
        try:
            row = conn.execute(
                "SELECT MAX(vector_id) AS max_id FROM records WHERE namespace = ?",
                (namespace,),
            ).fetchone()
            return 0 if row["max_id"] is None else row["max_id"] + 1
        finally:
            conn.close()

    def upsert_records(
        self,
        namespace: str,
        rows: List[Tuple[str, int, str, Optional[str]]],
    ) -> None:
        """Insert or replace record payloads.

        Args:
            namespace: Namespace the records belong to
            rows: (record_id, vector_id, text, source) tuples
        """
        conn = self.get_connection()
        try:
            updated_at = _now()
            conn.executemany(
                """
                INSERT INTO records (namespace, record_id, vector_id, text, source, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (namespace, record_id) DO UPDATE SET
                    text = excluded.text,
                    source = excluded.source,
                    updated_at = excluded.updated_at
                """,
                [
                    (namespace, record_id, vector_id, text, source, updated_at)
                    for record_id, vector_id, text, source in rows
                ],
            )
            conn.commit()
            logger.debug("records_upserted", namespace=namespace, count=len(rows))
        except Exception as e:
            conn.rollback()
            logger.error("records_upsert_failed", namespace=namespace, error=str(e))
            raise
        finally:
            conn.close()

    def get_records_by_vector_ids(
        self, namespace: str, vector_ids: List[int]
    ) -> Dict[int, Dict[str, Any]]:
        """Fetch record payloads for FAISS search hits.

        Returns:
            Dict of vector_id -> {"id", "text", "source"}
        """
        if not vector_ids:
            return {}

        conn = self.get_connection()
        try:
            placeholders = ",".join("?" * len(vector_ids))
            rows = conn.execute(
                f"SELECT record_id, vector_id, text, source FROM records "
                f"WHERE namespace = ? AND vector_id IN ({placeholders})",
                (namespace, *vector_ids),
            ).fetchall()
            return {
                row["vector_id"]: {
                    "id": row["record_id"],
                    "text": row["text"],
                    "source": row["source"],
                }
                for row in rows
            }
        finally:
            conn.close()

    def count_records(self, namespace: str) -> int:
        conn = self.get_connection()
        try:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM records WHERE namespace = ?",
                (namespace,),
            ).fetchone()
            return row["n"]
        finally:
            conn.close()

    def delete_namespace(self, namespace: str) -> int:
        """Delete all records and configuration of a namespace.

        Returns:
            Number of record rows deleted
        """
        conn = self.get_connection()
        try:
            cursor = conn.execute("DELETE FROM records WHERE namespace = ?", (namespace,))
            conn.execute("DELETE FROM namespaces WHERE name = ?", (namespace,))
            conn.commit()
            logger.info("namespace_records_deleted", namespace=namespace, count=cursor.rowcount)
            return cursor.rowcount
        finally:
            conn.close()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
