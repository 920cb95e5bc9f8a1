"""Embedding client used by ingestion and retrieval."""
from typing import List, Optional
import structlog

from docs_agent import config
from docs_agent.errors import EmbeddingError
from docs_agent.llm_client import OllamaClient

logger = structlog.get_logger()


class Embedder:
    """Maps text to fixed-dimension vectors through an Ollama embedding model."""

    def __init__(
        self,
        client: OllamaClient,
        model: str = None,
        batch_size: int = None,
    ):
        """Initialize the embedder.

        Args:
            client: Ollama client used for the HTTP calls
            model: Embedding model name (default from config)
            batch_size: Maximum texts per request (default from config)

        Raises:
            ValueError: If batch_size is not positive
        """
        self.client = client
        self.model = model or config.EMBEDDING_MODEL
        self.batch_size = config.EMBED_BATCH_SIZE if batch_size is None else batch_size
        self.dimension: Optional[int] = None

        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")

    async def embed(self, text: str) -> List[float]:
        """Embed a single text.

        Raises:
            EmbeddingError: If the model returns no vector
        """
        vectors = await self.client.embed(text, model=self.model)
        if not vectors or not vectors[0]:
            raise EmbeddingError("Empty embedding returned for text")

        self._check_dimension(vectors[0])
        return vectors[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed many texts, preserving input order.

        Args:
            texts: Texts to embed

        Returns:
            The i-th vector belongs to the i-th text

        Raises:
            EmbeddingError: If any request fails or returns the wrong shape
        """
        if not texts:
            return []

        embeddings: List[List[float]] = []

        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]
            vectors = await self.client.embed(batch, model=self.model)

            if len(vectors) != len(batch):
                raise EmbeddingError(
                    f"Expected {len(batch)} embeddings, got {len(vectors)}"
                )

            for vector in vectors:
                if not vector:
                    raise EmbeddingError("Empty embedding returned in batch")
                self._check_dimension(vector)

            embeddings.extend(vectors)

            logger.debug(
                "embeddings_batch_generated",
                batch_size=len(batch),
                total_so_far=len(embeddings),
            )

        return embeddings

    def _check_dimension(self, vector: List[float]) -> None:
        if self.dimension is None:
            self.dimension = len(vector)
        elif len(vector) != self.dimension:
            raise EmbeddingError(
                f"Embedding dimension changed: expected {self.dimension}, "
                f"got {len(vector)}"
            )
