"""
Core protocols defining contracts for the storage subsystem.

Every infrastructure component implements one of these protocols, so
the orchestrator can be assembled from production parts or test doubles:

- EmbeddingProvider: text -> fixed-length normalized vector
- VectorIndex: one named remote index (QdrantIndexClient, InMemoryIndexClient)
- DocumentBackend: the {store, search, list, clear} capability set,
  implemented by RemoteBackend and LocalBackend

The data classes here are the shapes that cross the public boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import numpy as np

from pulse_docstore.core.errors import PartialBatchFailure


# ---------------------------------------------------------------------------
# SHARED TYPES
# ---------------------------------------------------------------------------


class Backend(str, Enum):
    """Which backend satisfied an operation."""

    REMOTE = "remote"
    LOCAL = "local"
    NONE = "none"


@dataclass(frozen=True)
class TextChunk:
    """A sentence-aligned slice of a document. `index` is zero-based and dense."""

    text: str
    index: int
    total_chunks: int


@dataclass
class SearchMetadata:
    """Metadata returned with every search hit, whichever backend served it."""

    file_name: str
    file_type: str
    content: str
    timestamp: str
    user_id: str | None = None


@dataclass
class SearchResult:
    """A ranked search hit. Score is in [0, 1], higher is more relevant."""

    score: float
    metadata: SearchMetadata
    backend: Backend = Backend.REMOTE
    id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "score": self.score,
            "backend": self.backend.value,
            "metadata": {
                "fileName": self.metadata.file_name,
                "fileType": self.metadata.file_type,
                "content": self.metadata.content,
                "timestamp": self.metadata.timestamp,
                "userId": self.metadata.user_id,
            },
        }


@dataclass
class DocumentSummary:
    """One logical document, as reported by list operations."""

    file_name: str
    file_type: str
    timestamp: str
    total_chunks: int = 1
    score: float | None = None
    backend: Backend = Backend.REMOTE


@dataclass
class StoreReport:
    """Outcome of a store_document call."""

    backend: Backend
    chunk_count: int = 0
    record_ids: list[str] = field(default_factory=list)
    skipped: bool = False

    def describe(self) -> str:
        """Human-readable description of where the document went."""
        if self.skipped:
            return "not stored (content too short)"
        if self.backend is Backend.REMOTE:
            return f"remote vector index ({self.chunk_count} chunks)"
        if self.backend is Backend.LOCAL:
            return "local storage (fallback)"
        return "not stored"


@dataclass
class ClearReport:
    """Outcome of a clear_user_documents call."""

    local_cleared: bool
    remote_cleared: bool
    remote_deleted: int = 0


# ---------------------------------------------------------------------------
# REMOTE INDEX TYPES
# ---------------------------------------------------------------------------


@dataclass
class IndexVector:
    """A vector ready for upsert: record id, values and payload metadata."""

    id: str
    values: np.ndarray
    metadata: dict[str, Any]


@dataclass
class IndexMatch:
    """A raw match returned by a VectorIndex query."""

    id: str
    score: float
    metadata: dict[str, Any]


@dataclass
class BatchReport:
    """Result of a batched upsert or delete.

    Failed batches are recorded, not raised; callers decide what a
    partial result means.
    """

    operation: str
    total_items: int
    total_batches: int
    succeeded_items: int = 0
    failures: list[PartialBatchFailure] = field(default_factory=list)

    @property
    def failed_batches(self) -> int:
        return len(self.failures)

    @property
    def all_failed(self) -> bool:
        return self.total_batches > 0 and self.failed_batches == self.total_batches


# ---------------------------------------------------------------------------
# EMBEDDING PROVIDER PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Contract for embedding generation.

    Implementations:
    - FeatureHashEmbeddings (deterministic feature hashing)
    """

    @property
    def dimensions(self) -> int:
        """Length of every vector this provider returns."""
        ...

    def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        ...

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts."""
        ...


# ---------------------------------------------------------------------------
# VECTOR INDEX PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class VectorIndex(Protocol):
    """
    Contract for a single named remote vector index.

    Implementations:
    - QdrantIndexClient (production)
    - InMemoryIndexClient (testing/development)
    """

    def connect(self) -> None:
        """Initialize the index if needed. Idempotent."""
        ...

    def upsert(self, vectors: list[IndexVector]) -> BatchReport:
        """Insert or replace vectors in batches."""
        ...

    def query(
        self,
        vector: np.ndarray,
        top_k: int,
        user_id: str | None = None,
    ) -> list[IndexMatch]:
        """Return up to top_k matches, best first."""
        ...

    def delete_many(self, ids: list[str]) -> BatchReport:
        """Delete vectors by record id in batches."""
        ...

    def query_all(self, user_id: str | None = None) -> list[IndexMatch]:
        """Broad query returning as many stored vectors as the index allows."""
        ...

    def list_all(self, user_id: str | None = None) -> list[DocumentSummary]:
        """List stored documents, one summary per file name."""
        ...


# ---------------------------------------------------------------------------
# DOCUMENT BACKEND PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class DocumentBackend(Protocol):
    """
    The capability set every storage backend offers.

    Implementations:
    - RemoteBackend (chunk + embed + VectorIndex)
    - LocalBackend (JSON keyword store)
    """

    backend: Backend

    def store(
        self,
        file_name: str,
        file_type: str,
        content: str,
        user_id: str,
    ) -> StoreReport:
        """Persist a cleaned document."""
        ...

    def search(
        self,
        query: str,
        top_k: int,
        user_id: str | None = None,
    ) -> list[SearchResult]:
        """Return results sorted by score descending."""
        ...

    def list_documents(self, user_id: str | None = None) -> list[DocumentSummary]:
        """List stored documents."""
        ...

    def clear(self, user_id: str | None = None) -> int:
        """Remove stored documents. Returns the number of records removed."""
        ...
