"""Tests for the character-based chunker."""
import pytest

from docs_agent.rag.chunker import TextChunker, chunk_text


PROSE = (
    "Our platform is split into a frontend and a backend. "
    "The frontend is written in TypeScript.\nThe backend exposes a REST API. "
    "Deployments go through a CI pipeline! Does it roll back? Yes, automatically.\n"
) * 20


class TestValidation:

    def test_overlap_equal_to_size_rejected(self):
        with pytest.raises(ValueError):
            TextChunker(chunk_size=100, chunk_overlap=100)

    def test_overlap_larger_than_size_rejected(self):
        with pytest.raises(ValueError):
            TextChunker(chunk_size=100, chunk_overlap=150)

    def test_negative_overlap_rejected(self):
        with pytest.raises(ValueError):
            TextChunker(chunk_size=100, chunk_overlap=-1)

    def test_non_positive_size_rejected(self):
        with pytest.raises(ValueError):
            TextChunker(chunk_size=0, chunk_overlap=0)

    def test_zero_overlap_is_kept(self):
        chunker = TextChunker(chunk_size=100, chunk_overlap=0)
        assert chunker.chunk_overlap == 0


class TestChunking:

    def test_empty_text_yields_nothing(self):
        assert TextChunker(chunk_size=50, chunk_overlap=10).chunk_text("") == []

    def test_whitespace_only_yields_nothing(self):
        assert TextChunker(chunk_size=50, chunk_overlap=10).chunk_text("   \n\n  ") == []

    def test_short_fragment_dropped(self):
        assert TextChunker(chunk_size=50, chunk_overlap=10).chunk_text("hello") == []

    def test_fragment_of_exactly_min_length_dropped(self):
        chunker = TextChunker(chunk_size=50, chunk_overlap=10, min_chunk_length=10)
        assert chunker.chunk_text("abcdefghij") == []
        assert len(chunker.chunk_text("abcdefghijk")) == 1

    def test_short_document_is_one_chunk(self):
        chunks = TextChunker(chunk_size=500, chunk_overlap=100).chunk_text(
            "  A single short paragraph.  ", source="notes.md"
        )
        assert len(chunks) == 1
        assert chunks[0].text == "A single short paragraph."
        assert chunks[0].source == "notes.md"
        assert chunks[0].chunk_index == 0

    def test_fixed_size_cut_without_boundary(self):
        text = "x" * 120
        chunks = TextChunker(chunk_size=50, chunk_overlap=10).chunk_text(text)

        assert [c.char_start for c in chunks] == [0, 40, 80]
        assert [c.char_end for c in chunks] == [50, 90, 120]

    def test_consecutive_chunks_overlap(self):
        text = "".join(chr(ord("a") + i % 26) for i in range(300))
        chunks = TextChunker(chunk_size=100, chunk_overlap=25).chunk_text(text)

        for previous, current in zip(chunks, chunks[1:]):
            assert current.char_start == previous.char_end - 25
            assert previous.text[-25:] == current.text[:25]

    def test_cut_moves_to_newline_within_lookahead(self):
        text = "A" * 510 + "\n" + "B" * 300
        chunks = TextChunker(chunk_size=500, chunk_overlap=100).chunk_text(text)

        assert chunks[0].text == "A" * 510
        assert chunks[0].char_end == 510
        assert chunks[1].char_start == 410

    def test_cut_after_sentence_terminator(self):
        text = "x" * 100 + "。" + "y" * 100
        chunks = TextChunker(chunk_size=90, chunk_overlap=10).chunk_text(text)

        assert chunks[0].text == "x" * 100 + "。"
        assert chunks[0].char_end == 101

    def test_newline_preferred_over_earlier_terminator(self):
        text = "x" * 100 + "." + "y" * 5 + "\n" + "z" * 100
        chunks = TextChunker(chunk_size=95, chunk_overlap=10).chunk_text(text)

        assert chunks[0].char_end == 106

    def test_boundary_beyond_lookahead_ignored(self):
        text = "x" * 200 + "\n" + "y" * 100
        chunks = TextChunker(chunk_size=100, chunk_overlap=10, lookahead=50).chunk_text(text)

        assert chunks[0].char_end == 100

    def test_chunk_indexes_contiguous_over_kept_chunks(self):
        chunks = TextChunker(chunk_size=120, chunk_overlap=30).chunk_text(PROSE, source="a.md")

        assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
        assert all(c.source == "a.md" for c in chunks)

    def test_deterministic(self):
        chunker = TextChunker(chunk_size=120, chunk_overlap=30)
        assert chunker.chunk_text(PROSE, "a.md") == chunker.chunk_text(PROSE, "a.md")

    def test_convenience_function_uses_given_parameters(self):
        chunks = chunk_text("x" * 120, source="s.txt", chunk_size=50, chunk_overlap=10)
        assert len(chunks) == 3
        assert chunks[0].source == "s.txt"


@pytest.mark.parametrize(
    "chunk_size,chunk_overlap",
    [(20, 0), (20, 19), (50, 10), (11, 10), (120, 30), (500, 100)],
)
@pytest.mark.parametrize(
    "text",
    [
        PROSE,
        "a\n" * 400,
        "word " * 300,
        "。" * 250,
        "z" * 1000,
        "line one\n\n\nline two.\n" * 40,
    ],
)
def test_progress_and_minimum_length(chunk_size, chunk_overlap, text):
    chunker = TextChunker(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    chunks = chunker.chunk_text(text)

    starts = [c.char_start for c in chunks]
    assert starts == sorted(set(starts))
    assert all(len(c.text) > chunker.min_chunk_length for c in chunks)
    assert all(c.char_end <= len(text) for c in chunks)


def test_chunk_stats():
    chunker = TextChunker(chunk_size=50, chunk_overlap=10)
    stats = chunker.get_chunk_stats(chunker.chunk_text("x" * 120))

    assert stats["chunk_count"] == 3
    assert stats["max_chunk_size"] == 50
    assert stats["min_chunk_size"] == 40
    assert stats["overlap"] == 10
    assert chunker.get_chunk_stats([])["chunk_count"] == 0
