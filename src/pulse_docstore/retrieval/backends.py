"""
The two variants of the storage capability set {store, search, list, clear}.

RemoteBackend chunks and embeds documents and talks to a VectorIndex.
LocalBackend keeps whole documents in a JsonDocumentStore and answers
searches by keyword matching. Both return the same result shapes, so
the orchestrator can swap one for the other without callers noticing.
"""

from __future__ import annotations

import logging

from pulse_docstore.core import (
    Backend,
    DocumentSummary,
    EmbeddingProvider,
    IndexVector,
    SearchMetadata,
    SearchResult,
    StorageConfig,
    StoreReport,
    TransientRemoteError,
    VectorIndex,
)
from pulse_docstore.ingest import chunk_text
from pulse_docstore.retrieval.document import (
    StoredDocumentRecord,
    chunk_record_id,
    unique_millis,
    utc_timestamp,
)
from pulse_docstore.retrieval.local_store import JsonDocumentStore

logger = logging.getLogger(__name__)


def relevance_score(similarity: float) -> float:
    """Map a cosine similarity in [-1, 1] onto [0, 1], preserving order."""
    return min(max((1.0 + similarity) / 2.0, 0.0), 1.0)


def local_rank_score(rank: int) -> float:
    """Synthesized score for the rank-th local match (0.9, 0.8, ... floor 0.1)."""
    return max(0.9 - 0.1 * rank, 0.1)


# ---------------------------------------------------------------------------
# REMOTE
# ---------------------------------------------------------------------------


class RemoteBackend:
    """Chunk + embed + remote vector index."""

    backend = Backend.REMOTE

    def __init__(
        self,
        index: VectorIndex,
        embeddings: EmbeddingProvider,
        config: StorageConfig,
    ):
        self._index = index
        self._embeddings = embeddings
        self._config = config

    def store(
        self,
        file_name: str,
        file_type: str,
        content: str,
        user_id: str,
    ) -> StoreReport:
        """Split into chunks, embed each chunk in order and upsert."""
        chunks = chunk_text(content, self._config.chunk_size)
        if not chunks:
            raise TransientRemoteError("No content chunks to process")
        logger.info(f"Created {len(chunks)} chunks for {file_name}")

        millis = unique_millis()
        timestamp = utc_timestamp()
        limit = self._config.metadata_content_limit
        embeddings = self._embeddings.embed_batch([chunk.text for chunk in chunks])

        vectors = []
        for chunk, embedding in zip(chunks, embeddings):
            record = StoredDocumentRecord(
                id=chunk_record_id(file_name, millis, chunk.index),
                file_name=file_name,
                file_type=file_type,
                content=chunk.text[:limit],
                timestamp=timestamp,
                user_id=user_id,
                chunk_index=chunk.index,
                total_chunks=chunk.total_chunks,
                chunk_length=len(chunk.text),
            )
            vectors.append(
                IndexVector(
                    id=record.id,
                    values=embedding,
                    metadata=record.model_dump(exclude={"id"}),
                )
            )

        report = self._index.upsert(vectors)
        if report.failed_batches:
            logger.warning(
                f"'{file_name}' partially indexed: {report.succeeded_items}/{report.total_items} chunks"
            )

        return StoreReport(
            backend=Backend.REMOTE,
            chunk_count=len(chunks),
            record_ids=[vector.id for vector in vectors],
        )

    def search(
        self,
        query: str,
        top_k: int,
        user_id: str | None = None,
    ) -> list[SearchResult]:
        query_embedding = self._embeddings.embed(query)
        matches = self._index.query(query_embedding, top_k, user_id)

        results = [
            SearchResult(
                id=match.id,
                score=relevance_score(match.score),
                metadata=SearchMetadata(
                    file_name=match.metadata.get("file_name", "Unknown"),
                    file_type=match.metadata.get("file_type", "unknown"),
                    content=match.metadata.get("content", ""),
                    timestamp=match.metadata.get("timestamp", ""),
                    user_id=match.metadata.get("user_id"),
                ),
                backend=Backend.REMOTE,
            )
            for match in matches
        ]
        results.sort(key=lambda r: r.score, reverse=True)
        return results

    def list_documents(self, user_id: str | None = None) -> list[DocumentSummary]:
        return self._index.list_all(user_id)

    def clear(self, user_id: str | None = None) -> int:
        """Find every vector for the user and delete them in batches."""
        ids = [match.id for match in self._index.query_all(user_id)]
        logger.info(f"Found {len(ids)} vectors to delete")
        if not ids:
            return 0
        report = self._index.delete_many(ids)
        return report.succeeded_items


# ---------------------------------------------------------------------------
# LOCAL
# ---------------------------------------------------------------------------


class LocalBackend:
    """Whole-document keyword store."""

    backend = Backend.LOCAL

    def __init__(self, store: JsonDocumentStore):
        self._store = store

    def store(
        self,
        file_name: str,
        file_type: str,
        content: str,
        user_id: str,
    ) -> StoreReport:
        record = self._store.store(file_name, file_type, content, user_id)
        return StoreReport(backend=Backend.LOCAL, chunk_count=1, record_ids=[record.id])

    def search(
        self,
        query: str,
        top_k: int,
        user_id: str | None = None,
    ) -> list[SearchResult]:
        records = self._store.search(query, user_id)[:top_k]
        return [
            SearchResult(
                id=record.id,
                score=local_rank_score(rank),
                metadata=record.to_search_metadata(),
                backend=Backend.LOCAL,
            )
            for rank, record in enumerate(records)
        ]

    def list_documents(self, user_id: str | None = None) -> list[DocumentSummary]:
        return [record.to_summary(Backend.LOCAL) for record in self._store.list_records(user_id)]

    def clear(self, user_id: str | None = None) -> int:
        # The local collection is always wiped as a whole
        return self._store.clear()
