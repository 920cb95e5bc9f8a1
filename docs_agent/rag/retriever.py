"""Retriever for semantic search over the indexed documents.

Handles:
- Query embedding generation
- Vector index search
- Source-labelled context formatting for the LLM
"""
from typing import List
from dataclasses import dataclass
import structlog

from docs_agent import config
from docs_agent.rag.embedder import Embedder
from docs_agent.rag.store_faiss import FAISSVectorStore

logger = structlog.get_logger()

NO_RESULTS_MESSAGE = "No relevant information found in the knowledge base."
UNKNOWN_SOURCE = "unknown document"
BLOCK_SEPARATOR = "\n\n---\n\n"


@dataclass
class RetrievalMatch:
    """A single retrieved chunk."""

    text: str
    source: str
    score: float


def format_context(matches: List[RetrievalMatch]) -> str:
    """Render matches as source-labelled blocks for the LLM prompt.

    Args:
        matches: Retrieved chunks, best first

    Returns:
        Context string, or the no-results sentence when there are no matches
    """
    if not matches:
        return NO_RESULTS_MESSAGE

    blocks = [
        f"[source: {match.source or UNKNOWN_SOURCE}]\n{match.text}"
        for match in matches
    ]
    return BLOCK_SEPARATOR.join(blocks)


class KnowledgeRetriever:
    """Semantic retriever for the RAG pipeline."""

    def __init__(
        self,
        embedder: Embedder,
        vector_store: FAISSVectorStore,
        namespace: str = None,
        top_k: int = None,
    ):
        """Initialize the retriever.

        Args:
            embedder: Embedding client for queries
            vector_store: Vector index to search
            namespace: Vector index namespace (default from config)
            top_k: Number of results to retrieve (default from config)

        Raises:
            ValueError: If top_k is not positive
        """
        self.embedder = embedder
        self.vector_store = vector_store
        self.namespace = namespace or config.VECTOR_NAMESPACE
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k

        if self.top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {self.top_k}")

        logger.debug(
            "retriever_initialized",
            namespace=self.namespace,
            top_k=self.top_k,
        )

    async def retrieve_matches(self, query: str) -> List[RetrievalMatch]:
        """Retrieve the chunks most similar to a query.

        Args:
            query: Search query text

        Returns:
            At most top_k matches, sorted by descending score

        Raises:
            UpstreamServiceError: If embedding or the index search fails
        """
        if not query or not query.strip():
            logger.warning("empty_query_provided")
            return []

        logger.info("retrieval_started", query_length=len(query), top_k=self.top_k)

        query_embedding = await self.embedder.embed(query)

        hits = await self.vector_store.query(
            self.namespace,
            query_embedding,
            top_k=self.top_k,
            include_metadata=True,
        )

        matches = [
            RetrievalMatch(
                text=(hit.metadata or {}).get("text") or "",
                source=(hit.metadata or {}).get("source") or "",
                score=hit.score,
            )
            for hit in hits
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        matches = matches[: self.top_k]

        logger.info(
            "retrieval_completed",
            query_length=len(query),
            results_returned=len(matches),
            top_score=matches[0].score if matches else None,
        )

        return matches

    async def retrieve(self, query: str) -> str:
        """Retrieve and format context for the LLM.

        Args:
            query: Search query text

        Returns:
            Source-labelled context blocks, or the no-results sentence
        """
        matches = await self.retrieve_matches(query)

        if not matches:
            logger.info("no_relevant_context_found", query_preview=query[:100])

        return format_context(matches)
