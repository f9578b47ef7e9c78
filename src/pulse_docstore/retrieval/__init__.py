"""
Retrieval module - storing and searching documents.

This module provides:
- StoredDocumentRecord: the persisted record model
- QdrantIndexClient / InMemoryIndexClient: remote index and its test double
- JsonDocumentStore: the local fallback store
- RemoteBackend / LocalBackend: the two storage backends
- StorageOrchestrator / get_document_storage(): the public entry point
- format_search_context(): markdown rendering of search hits
"""

from pulse_docstore.retrieval.backends import (
    LocalBackend,
    RemoteBackend,
    local_rank_score,
    relevance_score,
)
from pulse_docstore.retrieval.context import (
    format_search_context,
    format_search_result,
)
from pulse_docstore.retrieval.document import StoredDocumentRecord
from pulse_docstore.retrieval.local_store import JsonDocumentStore
from pulse_docstore.retrieval.orchestrator import (
    StorageOrchestrator,
    get_document_storage,
)
from pulse_docstore.retrieval.remote_index import (
    BatchPolicy,
    InMemoryIndexClient,
    IndexState,
    QdrantIndexClient,
    ReadinessPolicy,
    run_batched,
)

__all__ = [
    # Records
    "StoredDocumentRecord",
    # Remote index
    "BatchPolicy",
    "ReadinessPolicy",
    "IndexState",
    "QdrantIndexClient",
    "InMemoryIndexClient",
    "run_batched",
    # Local store
    "JsonDocumentStore",
    # Backends
    "RemoteBackend",
    "LocalBackend",
    "local_rank_score",
    "relevance_score",
    # Orchestrator
    "StorageOrchestrator",
    "get_document_storage",
    # Formatting
    "format_search_context",
    "format_search_result",
]
