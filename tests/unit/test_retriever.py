"""Tests for the knowledge retriever and context formatting."""
from unittest.mock import AsyncMock

import pytest

from docs_agent.errors import VectorStoreError
from docs_agent.rag.retriever import (
    BLOCK_SEPARATOR,
    NO_RESULTS_MESSAGE,
    KnowledgeRetriever,
    RetrievalMatch,
    format_context,
)
from docs_agent.rag.store_faiss import VectorMatch


def _retriever(hits=None, side_effect=None):
    embedder = AsyncMock()
    embedder.embed = AsyncMock(return_value=[0.5, 0.5])
    store = AsyncMock()
    store.query = AsyncMock(return_value=hits or [], side_effect=side_effect)
    return KnowledgeRetriever(embedder, store, namespace="ns", top_k=2), embedder, store


def _hit(record_id, score, text, source="frontend.md"):
    return VectorMatch(id=record_id, score=score, metadata={"text": text, "source": source})


class TestFormatContext:

    def test_no_matches_gives_sentinel(self):
        assert format_context([]) == NO_RESULTS_MESSAGE

    def test_blocks_labelled_and_separated(self):
        context = format_context(
            [
                RetrievalMatch(text="Uses Next.js.", source="frontend.md", score=0.9),
                RetrievalMatch(text="Uses OAuth.", source="auth.md", score=0.8),
            ]
        )

        assert context == (
            "[source: frontend.md]\nUses Next.js."
            + BLOCK_SEPARATOR
            + "[source: auth.md]\nUses OAuth."
        )

    def test_missing_source_labelled_unknown(self):
        context = format_context([RetrievalMatch(text="orphan", source="", score=0.5)])
        assert context == "[source: unknown document]\norphan"


@pytest.mark.asyncio
async def test_retrieve_queries_namespace_with_metadata():
    retriever, embedder, store = _retriever([_hit("a", 0.9, "Next.js App Router")])

    context = await retriever.retrieve("What frontend framework do we use?")

    embedder.embed.assert_awaited_once_with("What frontend framework do we use?")
    store.query.assert_awaited_once_with("ns", [0.5, 0.5], top_k=2, include_metadata=True)
    assert context == "[source: frontend.md]\nNext.js App Router"


@pytest.mark.asyncio
async def test_retrieve_never_returns_more_than_top_k():
    retriever, _, _ = _retriever(
        [_hit("a", 0.7, "a"), _hit("b", 0.9, "b"), _hit("c", 0.8, "c")]
    )

    matches = await retriever.retrieve_matches("anything")

    assert [m.text for m in matches] == ["b", "c"]


@pytest.mark.asyncio
async def test_empty_index_gives_sentinel():
    retriever, _, _ = _retriever([])
    assert await retriever.retrieve("deployment") == NO_RESULTS_MESSAGE


@pytest.mark.asyncio
async def test_blank_query_skips_upstream_calls():
    retriever, embedder, store = _retriever([_hit("a", 0.9, "text")])

    assert await retriever.retrieve("   ") == NO_RESULTS_MESSAGE
    embedder.embed.assert_not_awaited()
    store.query.assert_not_awaited()


@pytest.mark.asyncio
async def test_match_without_source_metadata():
    retriever, _, _ = _retriever(
        [VectorMatch(id="x", score=0.4, metadata={"text": "no source here"})]
    )

    assert await retriever.retrieve("q") == "[source: unknown document]\nno source here"


@pytest.mark.asyncio
async def test_store_failure_propagates():
    retriever, _, _ = _retriever(side_effect=VectorStoreError("index unreachable"))

    with pytest.raises(VectorStoreError):
        await retriever.retrieve("q")


@pytest.mark.asyncio
async def test_end_to_end_with_real_store(docs_dir, keyword_embedder, vector_store):
    from docs_agent.rag.chunker import TextChunker
    from docs_agent.rag.ingest import IngestPipeline

    await IngestPipeline(
        embedder=keyword_embedder,
        vector_store=vector_store,
        docs_dir=docs_dir,
        namespace="ns",
        chunker=TextChunker(chunk_size=500, chunk_overlap=100),
    ).ingest_all()

    retriever = KnowledgeRetriever(keyword_embedder, vector_store, namespace="ns", top_k=2)
    context = await retriever.retrieve("Which frontend router do we use?")

    first_block = context.split(BLOCK_SEPARATOR)[0]
    assert first_block.startswith("[source: frontend.md]\n")
    assert "Next.js App Router" in first_block
    assert context.count("[source: ") <= 2


def test_zero_top_k_is_rejected_not_defaulted():
    with pytest.raises(ValueError):
        KnowledgeRetriever(AsyncMock(), AsyncMock(), namespace="ns", top_k=0)

    assert KnowledgeRetriever(AsyncMock(), AsyncMock(), namespace="ns", top_k=1).top_k == 1
