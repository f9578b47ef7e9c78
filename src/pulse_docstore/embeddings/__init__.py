"""
Embeddings module - text embedding generation.

1. Protocol (EmbeddingProvider, in core.protocols) defines the interface
2. FeatureHashEmbeddings implements it without any model download
3. get_embedding_provider() builds the configured provider
"""

from pulse_docstore.embeddings.hash_embeddings import (
    FeatureHashEmbeddings,
    get_embedding_provider,
    normalize_text,
    position_hash,
    shannon_entropy,
    tokenize,
    word_hash,
)

__all__ = [
    "FeatureHashEmbeddings",
    "get_embedding_provider",
    "normalize_text",
    "position_hash",
    "shannon_entropy",
    "tokenize",
    "word_hash",
]
