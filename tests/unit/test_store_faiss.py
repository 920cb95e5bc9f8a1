"""Tests for the FAISS + SQLite vector store."""
import sqlite3

import pytest

from docs_agent.db import RecordDatabase
from docs_agent.errors import VectorStoreError
from docs_agent.rag.store_faiss import FAISSVectorStore, IndexRecord

NS = "test-docs"


def _record(record_id, vector, text="text", source="doc.md"):
    return IndexRecord(id=record_id, vector=vector, metadata={"text": text, "source": source})


@pytest.mark.asyncio
async def test_query_ranks_by_similarity(vector_store):
    await vector_store.upsert(
        NS,
        [
            _record("a", [1.0, 0.0, 0.0], text="about a"),
            _record("b", [0.0, 1.0, 0.0], text="about b"),
            _record("c", [0.7, 0.7, 0.0], text="about a and b"),
        ],
    )

    matches = await vector_store.query(NS, [1.0, 0.1, 0.0], top_k=3)

    assert [m.id for m in matches] == ["a", "c", "b"]
    assert matches[0].score >= matches[1].score >= matches[2].score
    assert matches[0].metadata == {"text": "about a", "source": "doc.md"}


@pytest.mark.asyncio
async def test_top_k_limits_results(vector_store):
    await vector_store.upsert(NS, [_record(str(i), [1.0, float(i)]) for i in range(5)])

    assert len(await vector_store.query(NS, [1.0, 0.0], top_k=2)) == 2
    assert len(await vector_store.query(NS, [1.0, 0.0], top_k=50)) == 5


@pytest.mark.asyncio
async def test_query_without_metadata(vector_store):
    await vector_store.upsert(NS, [_record("a", [1.0, 0.0])])

    matches = await vector_store.query(NS, [1.0, 0.0], top_k=1, include_metadata=False)
    assert matches[0].metadata is None


@pytest.mark.asyncio
async def test_unknown_namespace_returns_nothing(vector_store):
    assert await vector_store.query("nothing-here", [1.0, 0.0], top_k=2) == []


@pytest.mark.asyncio
async def test_upsert_same_id_replaces_record(vector_store):
    await vector_store.upsert(NS, [_record("a", [1.0, 0.0], text="old")])
    await vector_store.upsert(NS, [_record("a", [0.0, 1.0], text="new")])

    assert await vector_store.count(NS) == 1
    assert vector_store.get_stats()["namespaces"][NS]["vector_count"] == 1

    matches = await vector_store.query(NS, [0.0, 1.0], top_k=5)
    assert len(matches) == 1
    assert matches[0].metadata["text"] == "new"
    assert matches[0].score == pytest.approx(1.0, abs=1e-5)


@pytest.mark.asyncio
async def test_duplicate_ids_within_one_call_keep_last(vector_store):
    written = await vector_store.upsert(
        NS, [_record("a", [1.0, 0.0], text="first"), _record("a", [1.0, 0.0], text="second")]
    )

    assert written == 1
    matches = await vector_store.query(NS, [1.0, 0.0], top_k=5)
    assert [m.metadata["text"] for m in matches] == ["second"]


@pytest.mark.asyncio
async def test_dimension_mismatch_rejected(vector_store):
    await vector_store.upsert(NS, [_record("a", [1.0, 0.0])])

    with pytest.raises(VectorStoreError):
        await vector_store.upsert(NS, [_record("b", [1.0, 0.0, 0.0])])

    with pytest.raises(VectorStoreError):
        await vector_store.query(NS, [1.0, 0.0, 0.0], top_k=1)


@pytest.mark.asyncio
async def test_index_survives_reload(tmp_path):
    index_dir = tmp_path / "idx"
    first = FAISSVectorStore(index_dir=index_dir, database=RecordDatabase(index_dir / "v.sqlite"))
    await first.upsert(NS, [_record("a", [1.0, 0.0], text="persisted")])

    second = FAISSVectorStore(index_dir=index_dir, database=RecordDatabase(index_dir / "v.sqlite"))
    matches = await second.query(NS, [1.0, 0.0], top_k=1)

    assert matches[0].id == "a"
    assert matches[0].metadata["text"] == "persisted"


@pytest.mark.asyncio
async def test_delete_namespace(vector_store):
    await vector_store.upsert(NS, [_record("a", [1.0, 0.0])])
    await vector_store.upsert("other", [_record("a", [1.0, 0.0])])

    await vector_store.delete_namespace(NS)

    assert await vector_store.count(NS) == 0
    assert await vector_store.query(NS, [1.0, 0.0], top_k=1) == []
    assert await vector_store.count("other") == 1


@pytest.mark.asyncio
async def test_missing_source_is_stored_as_none(vector_store):
    await vector_store.upsert(
        NS, [IndexRecord(id="a", vector=[1.0, 0.0], metadata={"text": "orphan"})]
    )

    matches = await vector_store.query(NS, [1.0, 0.0], top_k=1)
    assert matches[0].metadata == {"text": "orphan", "source": None}


@pytest.mark.asyncio
async def test_failed_payload_write_leaves_no_orphan_vectors(vector_store, monkeypatch):
    await vector_store.upsert(NS, [_record("a", [1.0, 0.0], text="a")])

    def locked(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    with monkeypatch.context() as patched:
        patched.setattr(vector_store.database, "upsert_records", locked)
        with pytest.raises(VectorStoreError):
            await vector_store.upsert(NS, [_record("b", [0.0, 1.0], text="b")])

    await vector_store.upsert(NS, [_record("b", [0.0, 1.0], text="b")])

    assert vector_store.get_stats()["namespaces"][NS]["vector_count"] == await vector_store.count(NS)
    matches = await vector_store.query(NS, [0.0, 1.0], top_k=5)
    ids = [m.id for m in matches]
    assert sorted(ids) == ["a", "b"]
    assert ids[0] == "b"
