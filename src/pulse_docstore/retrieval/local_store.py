"""
Local fallback store - a JSON file of whole-document records.

Used only when the remote index is unavailable. Every write reads the
whole collection, appends and writes it back; that is acceptable on the
degraded path and keeps the file format trivial. Search is naive keyword
matching ranked by how many distinct query terms a record contains.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable

from pydantic import TypeAdapter, ValidationError

from pulse_docstore.core import DEFAULT_USER_ID, LocalStoreError
from pulse_docstore.retrieval.document import (
    StoredDocumentRecord,
    local_record_id,
    unique_millis,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

_RECORDS = TypeAdapter(list[StoredDocumentRecord])


class JsonDocumentStore:
    """Persisted, unordered collection of StoredDocumentRecords."""

    def __init__(
        self,
        file_path: Path | str,
        default_user_id: str = DEFAULT_USER_ID,
        clock: Callable[[], int] = unique_millis,
    ):
        self._path = Path(file_path)
        self._default_user_id = default_user_id
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[StoredDocumentRecord]:
        """Read every record. Missing or corrupt state reads as empty."""
        if not self._path.exists():
            return []

        try:
            return _RECORDS.validate_json(self._path.read_bytes())
        except (OSError, ValidationError, ValueError) as e:
            logger.error(f"Could not read local document store {self._path}, treating as empty: {e}")
            return []

    def _save(self, records: list[StoredDocumentRecord]) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(_RECORDS.dump_json(records, indent=2))
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise LocalStoreError(f"Could not write local document store {self._path}: {e}") from e

    def store(
        self,
        file_name: str,
        file_type: str,
        content: str,
        user_id: str | None = None,
    ) -> StoredDocumentRecord:
        """Append one whole-document record."""
        record = StoredDocumentRecord(
            id=local_record_id(file_name, self._clock()),
            file_name=file_name,
            file_type=file_type,
            content=content,
            timestamp=utc_timestamp(),
            user_id=user_id or self._default_user_id,
            chunk_index=0,
            total_chunks=1,
            chunk_length=len(content),
        )

        with self._lock:
            records = self.load()
            records.append(record)
            self._save(records)

        logger.info(f"Stored '{file_name}' locally as {record.id}")
        return record

    def search(self, query: str, user_id: str | None = None) -> list[StoredDocumentRecord]:
        """
        Records containing any query term, most distinct terms first.

        Ties keep insertion order.
        """
        terms = list(dict.fromkeys(query.lower().split()))
        if not terms:
            return []

        scored = []
        for record in self.list_records(user_id):
            haystack = f"{record.file_name} {record.content}".lower()
            hits = sum(1 for term in terms if term in haystack)
            if hits:
                scored.append((hits, record))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [record for _, record in scored]

    def list_records(self, user_id: str | None = None) -> list[StoredDocumentRecord]:
        """Raw records, optionally filtered by user."""
        records = self.load()
        if user_id:
            records = [r for r in records if r.user_id == user_id]
        return records

    def clear(self) -> int:
        """Remove the whole collection. Returns the number of records dropped."""
        with self._lock:
            count = len(self.load())
            try:
                self._path.unlink(missing_ok=True)
            except OSError as e:
                raise LocalStoreError(f"Could not clear local document store {self._path}: {e}") from e

        logger.info(f"Cleared {count} documents from local storage")
        return count
