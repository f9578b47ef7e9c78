"""
Ingest module - turning uploaded content into chunks.

- clean_content(): strip presentation markup
- chunk_text(): sentence-aligned chunking
"""

from pulse_docstore.ingest.chunker import (
    DEFAULT_MAX_CHUNK_SIZE,
    chunk_text,
    split_sentences,
)
from pulse_docstore.ingest.cleaning import clean_content

__all__ = [
    "DEFAULT_MAX_CHUNK_SIZE",
    "chunk_text",
    "split_sentences",
    "clean_content",
]
