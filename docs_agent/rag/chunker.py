"""Text chunking with overlap for RAG pipeline.

Implements character-based chunking to avoid tokenizer dependencies.
"""
from typing import List, Optional
from dataclasses import dataclass
import structlog

from docs_agent import config

logger = structlog.get_logger()

# Terminators a chunk may end on (cut is placed after them)
SENTENCE_TERMINATORS = (".", "!", "?", "。", "！", "？")


@dataclass(frozen=True)
class Chunk:
    """A chunk of a source document with position information."""

    text: str
    source: str
    chunk_index: int
    char_start: int
    char_end: int


class TextChunker:
    """Character-based text chunker with overlap support."""

    def __init__(
        self,
        chunk_size: int = None,
        chunk_overlap: int = None,
        min_chunk_length: int = None,
        lookahead: int = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Size of each chunk in characters (default from config)
            chunk_overlap: Overlap between chunks in characters (default from config)
            min_chunk_length: Chunks this long or shorter are dropped (default from config)
            lookahead: How far past the nominal end to search for a boundary (default from config)

        Raises:
            ValueError: If the size/overlap combination cannot make progress
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
        self.min_chunk_length = (
            config.MIN_CHUNK_LENGTH if min_chunk_length is None else min_chunk_length
        )
        self.lookahead = config.BOUNDARY_LOOKAHEAD if lookahead is None else lookahead

        # Validate parameters
        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.chunk_size}")
        if self.chunk_overlap < 0:
            raise ValueError(f"Overlap must not be negative, got {self.chunk_overlap}")
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"Overlap ({self.chunk_overlap}) must be less than "
                f"chunk size ({self.chunk_size})"
            )

        logger.debug(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    def chunk_text(self, text: str, source: str = "") -> List[Chunk]:
        """Split text into overlapping chunks.

        Args:
            text: Text to chunk
            source: Identifier of the document the text came from

        Returns:
            List of Chunk objects in document order
        """
        if not text or not text.strip():
            return []

        text_length = len(text)
        chunks: List[Chunk] = []
        start = 0

        while start < text_length:
            end = min(start + self.chunk_size, text_length)

            # Only move the cut when there is text left after the window
            if end < text_length:
                end = self._find_boundary(text, end)

            content = text[start:end].strip()
            if len(content) > self.min_chunk_length:
                chunks.append(
                    Chunk(
                        text=content,
                        source=source,
                        chunk_index=len(chunks),
                        char_start=start,
                        char_end=end,
                    )
                )

            if end >= text_length:
                break

            # Move to next window with overlap, never backwards or in place
            next_start = end - self.chunk_overlap
            if next_start <= start:
                next_start = end
            start = next_start

        logger.debug(
            "text_chunked",
            source=source,
            text_length=text_length,
            chunk_count=len(chunks),
        )

        return chunks

    def _find_boundary(self, text: str, nominal_end: int) -> int:
        """Pick the cut position for a window ending at `nominal_end`.

        A line break inside the lookahead window wins (the cut goes before it);
        otherwise the nearest sentence terminator (the cut goes after it).

        Args:
            text: Full text being chunked
            nominal_end: Exclusive end of the fixed-size window

        Returns:
            Exclusive end position of the chunk
        """
        window = text[nominal_end : nominal_end + self.lookahead]

        newline = window.find("\n")
        if newline != -1:
            return nominal_end + newline

        positions = [window.find(t) for t in SENTENCE_TERMINATORS]
        positions = [p for p in positions if p != -1]
        if positions:
            return nominal_end + min(positions) + 1

        return nominal_end

    def get_chunk_stats(self, chunks: List[Chunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of Chunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
            }

        chunk_sizes = [len(c.text) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.chunk_overlap,
        }


def chunk_text(
    text: str,
    source: str = "",
    chunk_size: Optional[int] = None,
    chunk_overlap: Optional[int] = None,
) -> List[Chunk]:
    """Chunk text with a one-off chunker (convenience function).

    Args:
        text: Text to chunk
        source: Identifier of the document the text came from
        chunk_size: Chunk size in characters (default from config)
        chunk_overlap: Overlap in characters (default from config)

    Returns:
        List of Chunk objects
    """
    chunker = TextChunker(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    return chunker.chunk_text(text, source=source)
