"""
Stored record model for the retrieval system.

One StoredDocumentRecord per chunk in the remote index, or one per
whole document in the local store. Records are created on store and
never mutated.
"""

from __future__ import annotations

import re
import threading
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from pulse_docstore.core import Backend, DocumentSummary, SearchMetadata

_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

_id_clock_lock = threading.Lock()
_last_id_millis = 0


class StoredDocumentRecord(BaseModel):
    """A persisted document record (chunk-level in the remote index)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique record id")
    file_name: str
    file_type: str
    content: str = Field(description="Chunk text, capped for metadata size")
    timestamp: str = Field(description="ISO-8601 creation time")
    user_id: str
    chunk_index: int = 0
    total_chunks: int = 1
    chunk_length: int = 0

    def to_search_metadata(self) -> SearchMetadata:
        return SearchMetadata(
            file_name=self.file_name,
            file_type=self.file_type,
            content=self.content,
            timestamp=self.timestamp,
            user_id=self.user_id,
        )

    def to_summary(self, backend: Backend, score: float | None = None) -> DocumentSummary:
        return DocumentSummary(
            file_name=self.file_name,
            file_type=self.file_type,
            timestamp=self.timestamp,
            total_chunks=self.total_chunks,
            score=score,
            backend=backend,
        )


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def epoch_millis() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def unique_millis() -> int:
    """
    Epoch milliseconds, strictly increasing within the process.

    Record ids embed this value, so two stores of the same file name in
    the same millisecond still get distinct ids.
    """
    global _last_id_millis
    with _id_clock_lock:
        _last_id_millis = max(epoch_millis(), _last_id_millis + 1)
        return _last_id_millis


def chunk_record_id(file_name: str, millis: int, chunk_index: int) -> str:
    """Remote record id: sanitised file name, store time and chunk index."""
    return f"{_UNSAFE_ID_CHARS.sub('_', file_name)}_{millis}_{chunk_index}"


def local_record_id(file_name: str, millis: int) -> str:
    """Local record id: file name and store time."""
    return f"{file_name}_{millis}"
