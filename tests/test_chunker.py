"""
Unit Tests for Content Cleaning and Chunking

Tests markup stripping and sentence-aligned chunking.
"""

import pytest

from pulse_docstore.ingest import chunk_text, clean_content, split_sentences


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def long_text():
    """Twenty sentences of roughly forty characters each."""
    return " ".join(
        f"Sentence number {i} talks about revenue." for i in range(20)
    )


# ---------------------------------------------------------------------------
# CLEANING
# ---------------------------------------------------------------------------


class TestCleanContent:
    """Test presentation-markup stripping."""

    def test_strips_markup(self):
        content = "## Title\n\n**Bold** text\n- item one\n* item two\n\n\n\nEnd"
        assert clean_content(content) == "Title\n\nBold text\nitem one\nitem two\n\nEnd"

    def test_trims_surrounding_whitespace(self):
        assert clean_content("   plain text   \n") == "plain text"

    def test_keeps_inline_symbols(self):
        """Hyphens and asterisks inside a line are not bullets."""
        assert clean_content("net-profit is 5*3") == "net-profit is 5*3"


# ---------------------------------------------------------------------------
# SENTENCE SPLITTING
# ---------------------------------------------------------------------------


class TestSplitSentences:
    """Test sentence boundaries."""

    def test_keeps_terminators(self):
        assert split_sentences("Hello world. How are you? Fine!") == [
            "Hello world.",
            "How are you?",
            "Fine!",
        ]

    def test_terminator_runs_stay_together(self):
        assert split_sentences("Wait... what?!") == ["Wait...", "what?!"]

    def test_trailing_fragment(self):
        assert split_sentences("No terminator here") == ["No terminator here"]

    def test_empty_fragments_skipped(self):
        assert split_sentences("...") == []
        assert split_sentences("   ") == []


# ---------------------------------------------------------------------------
# CHUNKING
# ---------------------------------------------------------------------------


class TestChunkText:
    """Test greedy sentence packing."""

    def test_empty_text(self):
        assert chunk_text("") == []

    def test_packs_until_limit(self):
        chunks = chunk_text("One. Two. Three.", max_chunk_size=10)
        assert [c.text for c in chunks] == ["One. Two.", "Three."]

    def test_short_text_single_chunk(self):
        chunks = chunk_text("Just one short sentence.")
        assert len(chunks) == 1
        assert chunks[0].index == 0
        assert chunks[0].total_chunks == 1

    def test_respects_size_bound(self, long_text):
        chunks = chunk_text(long_text, max_chunk_size=100)
        assert len(chunks) > 1
        assert all(len(c.text) <= 100 for c in chunks)

    def test_oversized_sentence_kept_whole(self):
        sentence = "A" * 150 + "."
        chunks = chunk_text(f"Short one. {sentence} Another short one.", max_chunk_size=100)
        assert [c.text for c in chunks] == ["Short one.", sentence, "Another short one."]

    def test_no_content_lost_or_reordered(self, long_text):
        chunks = chunk_text(long_text, max_chunk_size=120)
        assert " ".join(c.text for c in chunks) == " ".join(split_sentences(long_text))

    def test_dense_indexes(self, long_text):
        chunks = chunk_text(long_text, max_chunk_size=100)
        assert [c.index for c in chunks] == list(range(len(chunks)))
        assert all(c.total_chunks == len(chunks) for c in chunks)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunk_text("Some text.", max_chunk_size=0)
