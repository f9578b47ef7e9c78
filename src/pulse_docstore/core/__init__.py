"""
Core module - shared protocols, types, errors and configuration.

USAGE:
------
from pulse_docstore.core import VectorIndex, EmbeddingProvider

class MyIndex:
    '''Implements VectorIndex protocol.'''
    ...
"""

from pulse_docstore.core.config import (
    DEFAULT_INDEX_NAME,
    DEFAULT_USER_ID,
    EMBEDDING_DIMENSIONS,
    StorageConfig,
    get_config,
    reset_config,
)
from pulse_docstore.core.errors import (
    BothBackendsFailed,
    ConfigurationError,
    LocalStoreError,
    PartialBatchFailure,
    StorageError,
    TransientRemoteError,
)
from pulse_docstore.core.protocols import (
    # Protocols
    DocumentBackend,
    EmbeddingProvider,
    VectorIndex,
    # Data classes
    Backend,
    BatchReport,
    ClearReport,
    DocumentSummary,
    IndexMatch,
    IndexVector,
    SearchMetadata,
    SearchResult,
    StoreReport,
    TextChunk,
)

__all__ = [
    # Config
    "DEFAULT_INDEX_NAME",
    "DEFAULT_USER_ID",
    "EMBEDDING_DIMENSIONS",
    "StorageConfig",
    "get_config",
    "reset_config",
    # Errors
    "BothBackendsFailed",
    "ConfigurationError",
    "LocalStoreError",
    "PartialBatchFailure",
    "StorageError",
    "TransientRemoteError",
    # Protocols
    "DocumentBackend",
    "EmbeddingProvider",
    "VectorIndex",
    # Data classes
    "Backend",
    "BatchReport",
    "ClearReport",
    "DocumentSummary",
    "IndexMatch",
    "IndexVector",
    "SearchMetadata",
    "SearchResult",
    "StoreReport",
    "TextChunk",
]
