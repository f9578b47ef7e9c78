"""
pulse_docstore - document embedding, indexing and retrieval.

Uploaded text is cleaned, chunked, embedded with a deterministic feature
hash and stored in a remote Qdrant collection. When the remote index is
unavailable every operation is served by a local JSON store instead,
without changing what callers see.

USAGE:
------
from pulse_docstore import get_document_storage

storage = get_document_storage()
storage.store_document("notes.txt", "text/plain", text, user_id="alice")
results = storage.search_documents("quarterly revenue", top_k=3, user_id="alice")
"""

from pulse_docstore.core import (
    Backend,
    BothBackendsFailed,
    ConfigurationError,
    DocumentSummary,
    SearchResult,
    StorageConfig,
    StoreReport,
)
from pulse_docstore.retrieval.orchestrator import (
    StorageOrchestrator,
    get_document_storage,
)

__version__ = "0.1.0"

__all__ = [
    "Backend",
    "BothBackendsFailed",
    "ConfigurationError",
    "DocumentSummary",
    "SearchResult",
    "StorageConfig",
    "StoreReport",
    "StorageOrchestrator",
    "get_document_storage",
]
