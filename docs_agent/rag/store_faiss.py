"""FAISS vector store for semantic search.

Handles:
- One FAISS index per namespace, persisted next to the SQLite payload table
- Idempotent upsert keyed by string record ids
- Cosine-similarity search (higher score = more similar)
"""
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Dict, Any
import numpy as np
import faiss
import structlog

from docs_agent import config
from docs_agent.db import RecordDatabase
from docs_agent.errors import VectorStoreError

logger = structlog.get_logger()


@dataclass
class IndexRecord:
    """A vector plus the payload stored alongside it."""

    id: str
    vector: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorMatch:
    """A single nearest-neighbour hit."""

    id: str
    score: float
    metadata: Optional[Dict[str, Any]] = None


class FAISSVectorStore:
    """FAISS-based vector store with namespaces and idempotent upsert."""

    def __init__(
        self,
        index_dir: Path = None,
        database: Optional[RecordDatabase] = None,
    ):
        """Initialize the FAISS vector store.

        Args:
            index_dir: Directory to store index files (default: DATA_DIR)
            database: Payload database (default: RecordDatabase at config.DB_PATH)
        """
        self.index_dir = Path(index_dir or config.DATA_DIR)
        self.database = database or RecordDatabase(self.index_dir / config.DB_PATH.name)
        self._indexes: Dict[str, faiss.Index] = {}
        self._initialized = False

        logger.debug("faiss_store_initialized", index_dir=str(self.index_dir))

    def _index_path(self, namespace: str) -> Path:
        return self.index_dir / f"{namespace}.index"

    def _ensure_database(self) -> None:
        if not self._initialized:
            self.database.init_database()
            self._initialized = True

    def _load_index(self, namespace: str) -> Optional[faiss.Index]:
        """Return the namespace index, loading it from disk if needed."""
        if namespace in self._indexes:
            return self._indexes[namespace]

        index_path = self._index_path(namespace)
        if not index_path.exists():
            return None

        index = faiss.read_index(str(index_path))
        self._indexes[namespace] = index

        logger.info(
            "faiss_index_loaded",
            namespace=namespace,
            vector_count=index.ntotal,
            dimension=index.d,
        )
        return index

    def _save_index(self, namespace: str) -> None:
        self.index_dir.mkdir(parents=True, exist_ok=True)
        faiss.write_index(self._indexes[namespace], str(self._index_path(namespace)))

    @staticmethod
    def _as_matrix(vectors: List[List[float]]) -> np.ndarray:
        matrix = np.array(vectors, dtype=np.float32)
        if matrix.ndim != 2:
            raise ValueError("Vectors must all have the same dimension")
        faiss.normalize_L2(matrix)
        return matrix

    async def upsert(self, namespace: str, records: List[IndexRecord]) -> int:
        """Insert records, replacing any existing records with the same id.

        Args:
            namespace: Namespace to write into
            records: Records to upsert

        Returns:
            Number of records written

        Raises:
            VectorStoreError: On dimension mismatch or storage failure
        """
        if not records:
            return 0

        # Last write wins for duplicate ids within one call
        unique = {record.id: record for record in records}
        records = list(unique.values())

        try:
            self._ensure_database()
            matrix = self._as_matrix([record.vector for record in records])
            dimension = matrix.shape[1]

            stored_dim = self.database.get_namespace_dimension(namespace)
            if stored_dim is not None and stored_dim != dimension:
                raise VectorStoreError(
                    f"Dimension mismatch in namespace '{namespace}': index has "
                    f"dim={stored_dim}, records have dim={dimension}. "
                    f"Rebuild the index."
                )

            index = self._load_index(namespace)
            if index is None:
                index = faiss.IndexIDMap2(faiss.IndexFlatIP(dimension))
                self._indexes[namespace] = index
                self.database.set_namespace_dimension(namespace, dimension)

            existing = self.database.get_vector_ids(namespace, unique.keys())
            next_id = self.database.next_vector_id(namespace)

            vector_ids = []
            for record in records:
                if record.id in existing:
                    vector_ids.append(existing[record.id])
                else:
                    vector_ids.append(next_id)
                    next_id += 1

            if existing:
                index.remove_ids(np.array(list(existing.values()), dtype=np.int64))

            index.add_with_ids(matrix, np.array(vector_ids, dtype=np.int64))

            self.database.upsert_records(
                namespace,
                [
                    (
                        record.id,
                        vector_id,
                        record.metadata.get("text", ""),
                        record.metadata.get("source"),
                    )
                    for record, vector_id in zip(records, vector_ids)
                ],
            )
            self._save_index(namespace)

        except VectorStoreError:
            raise
        except (RuntimeError, ValueError, OSError, sqlite3.Error) as e:
            # Drop the partly modified index; the last saved copy is reloaded on next use
            self._indexes.pop(namespace, None)
            logger.error("vector_upsert_failed", namespace=namespace, error=str(e))
            raise VectorStoreError(f"Upsert into '{namespace}' failed: {e}") from e

        logger.info(
            "vectors_upserted",
            namespace=namespace,
            count=len(records),
            replaced=len(existing),
            total_vectors=index.ntotal,
        )

        return len(records)

    async def query(
        self,
        namespace: str,
        vector: List[float],
        top_k: int = None,
        include_metadata: bool = True,
    ) -> List[VectorMatch]:
        """Search for the most similar records in a namespace.

        Args:
            namespace: Namespace to search
            vector: Query vector
            top_k: Number of results to return (default from config)
            include_metadata: Attach the stored text/source to each match

        Returns:
            Matches ordered by descending score

        Raises:
            VectorStoreError: On dimension mismatch or storage failure
        """
        if top_k is None:
            top_k = config.RETRIEVAL_TOP_K

        try:
            self._ensure_database()
            index = self._load_index(namespace)

            if index is None or index.ntotal == 0:
                logger.info("empty_namespace_no_results", namespace=namespace)
                return []

            query_vector = self._as_matrix([vector])
            if query_vector.shape[1] != index.d:
                raise VectorStoreError(
                    f"Query dimension mismatch: expected {index.d}, "
                    f"got {query_vector.shape[1]}"
                )

            top_k = min(top_k, index.ntotal)
            if top_k <= 0:
                return []

            scores, ids = index.search(query_vector, top_k)

            hits = [
                (int(vector_id), float(score))
                for vector_id, score in zip(ids[0].tolist(), scores[0].tolist())
                if vector_id != -1
            ]
            payloads = self.database.get_records_by_vector_ids(
                namespace, [vector_id for vector_id, _ in hits]
            )

        except VectorStoreError:
            raise
        except (RuntimeError, ValueError, OSError, sqlite3.Error) as e:
            logger.error("vector_query_failed", namespace=namespace, error=str(e))
            raise VectorStoreError(f"Query on '{namespace}' failed: {e}") from e

        matches = []
        for vector_id, score in hits:
            payload = payloads.get(vector_id)
            if payload is None:
                logger.warning("vector_id_without_payload", vector_id=vector_id)
                continue

            metadata = None
            if include_metadata:
                metadata = {"text": payload["text"], "source": payload["source"]}

            matches.append(VectorMatch(id=payload["id"], score=score, metadata=metadata))

        matches.sort(key=lambda m: m.score, reverse=True)

        logger.info(
            "vector_search_completed",
            namespace=namespace,
            top_k=top_k,
            results_found=len(matches),
        )

        return matches

    async def count(self, namespace: str) -> int:
        """Number of records stored in a namespace."""
        try:
            self._ensure_database()
            return self.database.count_records(namespace)
        except sqlite3.Error as e:
            raise VectorStoreError(f"Count on '{namespace}' failed: {e}") from e

    async def delete_namespace(self, namespace: str) -> None:
        """Remove every record of a namespace, on disk and in memory."""
        logger.warning("deleting_namespace", namespace=namespace)

        try:
            self._ensure_database()
            self._indexes.pop(namespace, None)

            index_path = self._index_path(namespace)
            if index_path.exists():
                index_path.unlink()

            self.database.delete_namespace(namespace)
        except (OSError, sqlite3.Error) as e:
            raise VectorStoreError(f"Deleting '{namespace}' failed: {e}") from e

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the loaded namespaces."""
        return {
            "index_dir": str(self.index_dir),
            "namespaces": {
                name: {"vector_count": index.ntotal, "dimension": index.d}
                for name, index in self._indexes.items()
            },
        }
