"""Ingest pipeline for indexing the documents directory.

Orchestrates:
- File discovery
- Text chunking
- Batched embedding generation
- Vector and payload storage
"""
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Callable, Dict, List, Optional
import structlog

from docs_agent import config
from docs_agent.rag.chunker import Chunk, TextChunker
from docs_agent.rag.embedder import Embedder
from docs_agent.rag.store_faiss import FAISSVectorStore, IndexRecord

logger = structlog.get_logger()


@dataclass(frozen=True)
class Document:
    """Raw text of one corpus file."""

    source: str
    text: str


@dataclass
class IngestStats:
    """Counters reported at the end of an ingestion run."""

    files_processed: int = 0
    files_skipped: int = 0
    chunks_created: int = 0
    embeddings_generated: int = 0
    records_upserted: int = 0
    # Retained chunk count per document source, in ingestion order
    chunks_per_source: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def record_id(source: str, chunk_index: int) -> str:
    """Deterministic vector id for a chunk, stable across re-ingestion."""
    return f"{source}-chunk-{chunk_index}"


class IngestPipeline:
    """Pipeline for ingesting text documents into the vector index."""

    def __init__(
        self,
        embedder: Embedder,
        vector_store: FAISSVectorStore,
        docs_dir: Path = None,
        namespace: str = None,
        chunker: Optional[TextChunker] = None,
        extensions: tuple = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            embedder: Embedding client
            vector_store: Vector index to write into
            docs_dir: Directory containing the documents (default from config)
            namespace: Vector index namespace (default from config)
            chunker: Text chunker (default: TextChunker with config values)
            extensions: File suffixes treated as documents (default from config)
        """
        self.embedder = embedder
        self.vector_store = vector_store
        self.docs_dir = Path(docs_dir or config.DOCS_DIR)
        self.namespace = namespace or config.VECTOR_NAMESPACE
        self.chunker = chunker or TextChunker()
        self.extensions = tuple(e.lower() for e in (extensions or config.DOC_EXTENSIONS))

        logger.info(
            "ingest_pipeline_initialized",
            docs_dir=str(self.docs_dir),
            namespace=self.namespace,
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
        )

    def discover_documents(self) -> List[Path]:
        """Discover all text-like files in the documents directory.

        Returns:
            Sorted list of document paths

        Raises:
            FileNotFoundError: If the documents directory doesn't exist
        """
        if not self.docs_dir.is_dir():
            raise FileNotFoundError(f"Documents directory not found: {self.docs_dir}")

        paths = sorted(
            path
            for path in self.docs_dir.rglob("*")
            if path.is_file() and path.suffix.lower() in self.extensions
        )

        logger.info(
            "documents_discovered",
            count=len(paths),
            docs_dir=str(self.docs_dir),
        )

        return paths

    def load_document(self, path: Path) -> Document:
        """Read a document; its source is the path relative to the docs dir."""
        source = path.relative_to(self.docs_dir).as_posix()
        return Document(source=source, text=path.read_text(encoding="utf-8"))

    def chunk_documents(self, documents: List[Document]) -> List[Chunk]:
        """Chunk every document, keeping document order."""
        all_chunks: List[Chunk] = []

        for doc in documents:
            chunks = self.chunker.chunk_text(doc.text, source=doc.source)
            logger.info("document_chunked", source=doc.source, chunks=len(chunks))
            all_chunks.extend(chunks)

        return all_chunks

    @staticmethod
    def build_records(
        chunks: List[Chunk], embeddings: List[List[float]]
    ) -> List[IndexRecord]:
        """Pair chunks with their embeddings as index records."""
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"Got {len(embeddings)} embeddings for {len(chunks)} chunks"
            )

        return [
            IndexRecord(
                id=record_id(chunk.source, chunk.chunk_index),
                vector=embedding,
                metadata={"text": chunk.text, "source": chunk.source},
            )
            for chunk, embedding in zip(chunks, embeddings)
        ]

    async def ingest_documents(
        self, documents: List[Document], rebuild: bool = False
    ) -> IngestStats:
        """Chunk, embed and upsert a set of documents.

        All chunks are embedded in one batch before anything is written, so an
        embedding failure leaves the index untouched.

        Args:
            documents: Documents to index
            rebuild: If True, clear the namespace right before the upsert

        Raises:
            EmbeddingError: If the embedding batch fails
            VectorStoreError: If the upsert fails
        """
        stats = IngestStats(files_processed=len(documents))

        chunks = self.chunk_documents(documents)
        stats.chunks_created = len(chunks)
        stats.chunks_per_source = {doc.source: 0 for doc in documents}
        for chunk in chunks:
            stats.chunks_per_source[chunk.source] += 1

        if not chunks:
            logger.warning("no_chunks_created", documents=len(documents))
            return stats

        logger.info("embedding_chunks", count=len(chunks))

        try:
            embeddings = await self.embedder.embed_batch([chunk.text for chunk in chunks])
        except Exception as e:
            logger.error("embedding_batch_failed", error=str(e), chunks=len(chunks))
            raise

        stats.embeddings_generated = len(embeddings)

        records = self.build_records(chunks, embeddings)

        if rebuild:
            await self.vector_store.delete_namespace(self.namespace)

        stats.records_upserted = await self.vector_store.upsert(self.namespace, records)

        return stats

    async def ingest_all(
        self,
        rebuild: bool = False,
        progress_callback: Optional[Callable[[int, int, Path], None]] = None,
    ) -> IngestStats:
        """Ingest every document in the documents directory.

        Args:
            rebuild: If True, clear the namespace before writing
            progress_callback: Optional callback function(current, total, file_path)

        Returns:
            Ingestion statistics

        Raises:
            FileNotFoundError: If the documents directory doesn't exist
            EmbeddingError: If the embedding batch fails
        """
        logger.info("starting_ingest_all", rebuild=rebuild, namespace=self.namespace)

        paths = self.discover_documents()

        if not paths:
            logger.warning("no_documents_found", docs_dir=str(self.docs_dir))
            return IngestStats()

        documents = []
        skipped = 0
        for idx, path in enumerate(paths, 1):
            if progress_callback:
                progress_callback(idx, len(paths), path)

            try:
                documents.append(self.load_document(path))
            except (OSError, UnicodeDecodeError) as e:
                logger.error("document_read_failed", path=str(path), error=str(e))
                skipped += 1

        stats = await self.ingest_documents(documents, rebuild=rebuild)
        stats.files_skipped = skipped

        logger.info("ingest_all_completed", **stats.to_dict())

        return stats
