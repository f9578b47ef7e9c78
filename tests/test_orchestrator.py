"""
Integration Tests for the Storage Orchestrator

Runs the full store/search/list/clear flow with the in-memory index as
the remote backend and a temporary JSON file as the local store.

PATTERNS:
---------
1. Simulate a remote outage with InMemoryIndexClient.available = False
2. Verify callers see the same result shape from either backend
3. Verify a document is never written to both backends
"""

from contextlib import contextmanager
from unittest.mock import MagicMock

import pytest

from pulse_docstore import get_document_storage
from pulse_docstore.core import (
    Backend,
    BothBackendsFailed,
    ConfigurationError,
    DocumentBackend,
    IndexMatch,
    LocalStoreError,
    SearchResult,
    StorageConfig,
    TransientRemoteError,
)
from pulse_docstore.embeddings import FeatureHashEmbeddings
from pulse_docstore.observability import STORAGE_BACKEND, STORAGE_FALLBACK, NoOpTracer
from pulse_docstore.retrieval import (
    InMemoryIndexClient,
    JsonDocumentStore,
    LocalBackend,
    RemoteBackend,
    StorageOrchestrator,
)

NOTES = (
    "Quarterly revenue grew by twelve percent compared to last year. "
    "The marketing budget was increased to support the product launch."
)
PENGUINS = (
    "Emperor penguins breed during the antarctic winter. "
    "Colonies gather on stable sea ice far from the open ocean."
)
HARBOUR_NOTES = (
    "The harbour master logged unusual tides near the northern breakwater this spring. "
    "Fishing crews reported that the price of saffron in the coastal market doubled. "
    "Several ferries were delayed while engineers inspected the old swing bridge. "
    "Local schools organised a weekend festival celebrating maritime history. "
    "The lighthouse keeper repainted the lantern room a bright turquoise. "
    "Evening lanterns along the promenade now run on small solar panels. "
    "Merchants expect tourism to recover once the summer timetable begins. "
    "A new seawall proposal will be discussed at the council meeting next month."
)


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def config(tmp_path):
    return StorageConfig(
        qdrant_url="http://localhost:6333",
        qdrant_api_key="test-key",
        local_store_path=tmp_path / "documents.json",
    )


@pytest.fixture
def index():
    return InMemoryIndexClient()


@pytest.fixture
def storage(config, index):
    return get_document_storage(config=config, index=index, tracer=NoOpTracer())


class RecordingTracer:
    """Tracer that keeps every span it starts."""

    def __init__(self):
        self.spans = []

    @contextmanager
    def start_span(self, name, attributes=None):
        span = MagicMock()
        self.spans.append((name, attributes, span))
        yield span


# ---------------------------------------------------------------------------
# REMOTE PATH
# ---------------------------------------------------------------------------


class TestRemotePath:
    """Test the normal path through the remote index."""

    def test_store_then_search(self, storage, config, index):
        report = storage.store_document("notes.txt", "text/plain", NOTES, "alice")

        assert report.backend is Backend.REMOTE
        assert report.chunk_count == 1
        assert len(index) == 1
        assert not config.local_store_path.exists()

        results = storage.search_documents("quarterly revenue", top_k=5, user_id="alice")
        assert results[0].metadata.file_name == "notes.txt"
        assert results[0].backend is Backend.REMOTE
        assert 0.0 <= results[0].score <= 1.0

    def test_verbatim_phrase_round_trip(self, storage):
        """Every four-word window of a stored note finds it with a positive score."""
        report = storage.store_document("notes.txt", "text/plain", HARBOUR_NOTES)
        assert report.backend is Backend.REMOTE
        assert report.chunk_count == 1

        words = HARBOUR_NOTES.split()
        for start in range(len(words) - 3):
            phrase = " ".join(words[start:start + 4])
            results = storage.search_documents(phrase, top_k=3)
            assert results, phrase
            assert results[0].metadata.file_name == "notes.txt"
            assert 0.0 < results[0].score <= 1.0, phrase

    def test_same_name_stored_repeatedly_keeps_every_copy(self, storage, index):
        reports = [
            storage.store_document("notes.txt", "text/plain", NOTES, "alice")
            for _ in range(5)
        ]

        record_ids = [rid for report in reports for rid in report.record_ids]
        assert len(set(record_ids)) == 5
        assert len(index) == 5

    def test_backends_implement_protocol(self, config, index, tmp_path):
        remote = RemoteBackend(index, FeatureHashEmbeddings(), config)
        local = LocalBackend(JsonDocumentStore(tmp_path / "documents.json"))
        assert isinstance(remote, DocumentBackend)
        assert isinstance(local, DocumentBackend)

    def test_short_content_skipped(self, storage, config, index):
        report = storage.store_document("tiny.txt", "text/plain", "Too short.", "alice")

        assert report.skipped
        assert report.backend is Backend.NONE
        assert len(index) == 0
        assert not config.local_store_path.exists()

    def test_markup_does_not_count_towards_length(self, storage, index):
        content = "## **Heading**\n\n- **A** short bullet"
        report = storage.store_document("md.txt", "text/markdown", content, "alice")
        assert report.skipped

    def test_results_sorted_best_first(self, storage):
        storage.store_document("notes.txt", "text/plain", NOTES, "alice")
        storage.store_document("penguins.txt", "text/plain", PENGUINS, "alice")

        results = storage.search_documents("revenue budget", top_k=5)
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert len(results) == 2

    def test_top_k_zero(self, storage):
        storage.store_document("notes.txt", "text/plain", NOTES, "alice")
        assert storage.search_documents("revenue", top_k=0) == []

    def test_user_isolation(self, storage):
        storage.store_document("alice.txt", "text/plain", NOTES, "alice")
        storage.store_document("bob.txt", "text/plain", PENGUINS, "bob")

        results = storage.search_documents("revenue", top_k=5, user_id="alice")
        assert {r.metadata.file_name for r in results} == {"alice.txt"}

    def test_default_user_recorded(self, storage, index):
        storage.store_document("notes.txt", "text/plain", NOTES)
        assert index.query_all("default-user")

    def test_list_one_summary_per_document(self, config, index):
        config.chunk_size = 80
        storage = get_document_storage(config=config, index=index, tracer=NoOpTracer())
        report = storage.store_document("notes.txt", "text/plain", NOTES, "alice")

        documents = storage.list_user_documents("alice")
        assert report.chunk_count == 2
        assert len(documents) == 1
        assert documents[0].file_name == "notes.txt"
        assert documents[0].total_chunks == 2
        assert documents[0].backend is Backend.REMOTE

    def test_clear_then_list_empty(self, storage, index):
        storage.store_document("notes.txt", "text/plain", NOTES, "alice")
        storage.store_document("penguins.txt", "text/plain", PENGUINS, "alice")

        report = storage.clear_user_documents("alice")

        assert report.local_cleared
        assert report.remote_cleared
        assert report.remote_deleted == 2
        assert storage.list_user_documents("alice") == []


# ---------------------------------------------------------------------------
# FALLBACK PATH
# ---------------------------------------------------------------------------


class TestFallback:
    """Test transparent fallback to the local store."""

    def test_store_falls_back(self, storage, config, index):
        index.available = False
        report = storage.store_document("notes.txt", "text/plain", NOTES, "alice")

        assert report.backend is Backend.LOCAL
        assert report.describe() == "local storage (fallback)"
        assert config.local_store_path.exists()
        assert len(index) == 0

    def test_search_falls_back_with_same_shape(self, storage, index):
        index.available = False
        storage.store_document("notes.txt", "text/plain", NOTES, "alice")

        results = storage.search_documents("revenue", top_k=5, user_id="alice")
        assert len(results) == 1
        result = results[0]
        assert isinstance(result, SearchResult)
        assert result.backend is Backend.LOCAL
        assert result.score == pytest.approx(0.9)
        assert result.metadata.file_name == "notes.txt"
        assert result.metadata.file_type == "text/plain"
        assert result.metadata.user_id == "alice"
        assert result.metadata.timestamp

    def test_local_scores_by_rank(self, storage, index):
        index.available = False
        storage.store_document("notes.txt", "text/plain", NOTES, "alice")
        storage.store_document("more.txt", "text/plain", NOTES + " Revenue again.", "alice")

        results = storage.search_documents("revenue marketing", top_k=5)
        assert [r.score for r in results] == pytest.approx([0.9, 0.8])

    def test_list_falls_back(self, storage, index):
        index.available = False
        storage.store_document("notes.txt", "text/plain", NOTES, "alice")

        documents = storage.list_user_documents("alice")
        assert [d.file_name for d in documents] == ["notes.txt"]
        assert documents[0].backend is Backend.LOCAL

    def test_clear_with_remote_down(self, storage, config, index):
        index.available = False
        storage.store_document("notes.txt", "text/plain", NOTES, "alice")

        report = storage.clear_user_documents("alice")
        assert report.local_cleared
        assert not report.remote_cleared
        assert not config.local_store_path.exists()

    def test_both_backends_fail(self, config, index):
        index.available = False
        failing_store = MagicMock(spec=JsonDocumentStore)
        failing_store.store.side_effect = LocalStoreError("disk full")
        storage = StorageOrchestrator(
            local=LocalBackend(failing_store),
            remote=RemoteBackend(index, FeatureHashEmbeddings(), config),
            config=config,
            tracer=NoOpTracer(),
        )

        with pytest.raises(BothBackendsFailed) as exc_info:
            storage.store_document("notes.txt", "text/plain", NOTES, "alice")

        assert isinstance(exc_info.value.remote_error, TransientRemoteError)
        assert isinstance(exc_info.value.local_error, LocalStoreError)

    def test_clear_both_fail(self, config, index):
        index.available = False
        failing_store = MagicMock(spec=JsonDocumentStore)
        failing_store.clear.side_effect = LocalStoreError("read-only")
        storage = StorageOrchestrator(
            local=LocalBackend(failing_store),
            remote=RemoteBackend(index, FeatureHashEmbeddings(), config),
            config=config,
            tracer=NoOpTracer(),
        )

        with pytest.raises(BothBackendsFailed):
            storage.clear_user_documents("alice")

    def test_fallback_recorded_on_span(self, config, index):
        index.available = False
        tracer = RecordingTracer()
        storage = get_document_storage(config=config, index=index, tracer=tracer)
        storage.store_document("notes.txt", "text/plain", NOTES, "alice")

        name, attributes, span = tracer.spans[0]
        assert name == "storage.store"
        assert attributes["storage.file_name"] == "notes.txt"
        span.set_attribute.assert_any_call(STORAGE_BACKEND, "local")
        span.set_attribute.assert_any_call(STORAGE_FALLBACK, True)


# ---------------------------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------------------------


class TestConfiguration:
    """Test how missing configuration is handled."""

    def test_configuration_error_is_not_swallowed(self, tmp_path):
        config = StorageConfig(local_store_path=tmp_path / "documents.json")
        storage = get_document_storage(config=config, use_remote=True, tracer=NoOpTracer())

        with pytest.raises(ConfigurationError):
            storage.store_document("notes.txt", "text/plain", NOTES, "alice")

        assert not config.local_store_path.exists()

    def test_factory_without_credentials_is_local_only(self, tmp_path):
        config = StorageConfig(local_store_path=tmp_path / "documents.json")
        storage = get_document_storage(config=config, tracer=NoOpTracer())

        assert not storage.has_remote
        report = storage.store_document("notes.txt", "text/plain", NOTES, "alice")
        assert report.backend is Backend.LOCAL


# ---------------------------------------------------------------------------
# REMOTE BACKEND DETAILS
# ---------------------------------------------------------------------------


class TestRemoteBackend:
    """Test record construction and score handling."""

    def test_metadata_content_capped(self, config, index):
        config.chunk_size = 5000
        backend = RemoteBackend(index, FeatureHashEmbeddings(), config)
        content = "word " * 400 + "end."
        backend.store("big.txt", "text/plain", content, "alice")

        match = index.query_all("alice")[0]
        assert len(match.metadata["content"]) == config.metadata_content_limit
        assert match.metadata["chunk_length"] == len(content.strip())
        assert match.id.startswith("big.txt_")
        assert match.id.endswith("_0")

    def test_similarity_mapped_onto_unit_interval(self, config):
        """Cosine in [-1, 1] maps to (1 + cos) / 2; ordering is unchanged."""
        index = MagicMock()
        index.query.return_value = [
            IndexMatch(id="a", score=1.0, metadata={"file_name": "a.txt"}),
            IndexMatch(id="c", score=0.2, metadata={"file_name": "c.txt"}),
            IndexMatch(id="b", score=-0.3, metadata={"file_name": "b.txt"}),
            IndexMatch(id="d", score=-1.0000000002, metadata={"file_name": "d.txt"}),
        ]
        backend = RemoteBackend(index, FeatureHashEmbeddings(), config)

        results = backend.search("anything", top_k=4)
        assert [r.id for r in results] == ["a", "c", "b", "d"]
        assert [r.score for r in results] == pytest.approx([1.0, 0.6, 0.35, 0.0])
        assert results[-1].score >= 0.0
        assert results[2].metadata.file_type == "unknown"
