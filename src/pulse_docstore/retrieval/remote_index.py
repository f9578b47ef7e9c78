"""
Remote vector index implementations.

Pattern: Protocol → Production impl → Test double

This module contains:
1. BatchPolicy / ReadinessPolicy - rate limiting and readiness polling knobs
2. QdrantIndexClient - one named Qdrant collection (production)
3. InMemoryIndexClient - same contract, no network (testing/development)

The production client moves through Uninitialized → Connecting → Ready.
Connecting resolves the collection by name, creates it if missing and
polls until it answers a stats request. Initialization is guarded by a
lock so concurrent first calls create at most one client handle.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence, TypeVar

import numpy as np
from qdrant_client import QdrantClient
from qdrant_client.http import models

from pulse_docstore.core import (
    Backend,
    BatchReport,
    ConfigurationError,
    DocumentSummary,
    IndexMatch,
    IndexVector,
    PartialBatchFailure,
    StorageConfig,
    TransientRemoteError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_ID_FIELD = "user_id"
RECORD_ID_FIELD = "record_id"
PROBE_VALUE = 0.1


# ---------------------------------------------------------------------------
# POLICIES
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BatchPolicy:
    """Batch size and pause between batches, to respect service rate limits."""

    batch_size: int
    delay_seconds: float = 0.0


@dataclass(frozen=True)
class ReadinessPolicy:
    """How long to wait for a freshly created collection."""

    max_attempts: int = 30
    interval_seconds: float = 2.0


DEFAULT_UPSERT_POLICY = BatchPolicy(batch_size=10, delay_seconds=0.2)
DEFAULT_DELETE_POLICY = BatchPolicy(batch_size=100, delay_seconds=0.2)


def run_batched(
    operation: str,
    items: Sequence[T],
    policy: BatchPolicy,
    action: Callable[[list[T]], Any],
    sleep: Callable[[float], None] = time.sleep,
) -> BatchReport:
    """
    Apply `action` to consecutive batches of `items`.

    A failing batch is logged and recorded; the remaining batches still run.
    """
    size = max(policy.batch_size, 1)
    total_batches = (len(items) + size - 1) // size
    report = BatchReport(operation=operation, total_items=len(items), total_batches=total_batches)

    for start in range(0, len(items), size):
        batch = list(items[start:start + size])
        batch_number = start // size + 1
        try:
            action(batch)
            report.succeeded_items += len(batch)
            logger.debug(f"{operation} batch {batch_number}/{total_batches} ({len(batch)} items) done")
        except Exception as e:
            failure = PartialBatchFailure(operation, batch_number, len(batch), e)
            report.failures.append(failure)
            logger.warning(str(failure))

        if start + size < len(items) and policy.delay_seconds > 0:
            sleep(policy.delay_seconds)

    return report


def point_id(record_id: str) -> str:
    """Qdrant point id for a record id (UUIDs pass through unchanged)."""
    try:
        return str(uuid.UUID(record_id))
    except ValueError:
        return str(uuid.uuid5(uuid.NAMESPACE_URL, record_id))


def summarize_matches(matches: list[IndexMatch]) -> list[DocumentSummary]:
    """Group matches by file name, keeping the first match seen per name."""
    summaries: dict[str, DocumentSummary] = {}
    for match in matches:
        file_name = match.metadata.get("file_name")
        if not file_name or file_name in summaries:
            continue
        summaries[file_name] = DocumentSummary(
            file_name=file_name,
            file_type=match.metadata.get("file_type", "unknown"),
            timestamp=match.metadata.get("timestamp", ""),
            total_chunks=match.metadata.get("total_chunks") or 1,
            score=match.score,
            backend=Backend.REMOTE,
        )
    return list(summaries.values())


# ---------------------------------------------------------------------------
# QDRANT INDEX (Production)
# ---------------------------------------------------------------------------


class IndexState(str, Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    READY = "ready"


class QdrantIndexClient:
    """
    A single named Qdrant collection.

    The qdrant client is created lazily through `client_factory`, which
    tests replace with a factory returning a mock.
    """

    def __init__(
        self,
        config: StorageConfig,
        client_factory: Callable[[], Any] | None = None,
        upsert_policy: BatchPolicy = DEFAULT_UPSERT_POLICY,
        delete_policy: BatchPolicy = DEFAULT_DELETE_POLICY,
        readiness: ReadinessPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self._client_factory = client_factory or self._create_client
        self._upsert_policy = upsert_policy
        self._delete_policy = delete_policy
        self._readiness = readiness or ReadinessPolicy()
        self._sleep = sleep
        self._client: Any = None
        self._state = IndexState.UNINITIALIZED
        self._lock = threading.Lock()

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def index_name(self) -> str:
        return self.config.index_name

    def _create_client(self) -> QdrantClient:
        return QdrantClient(
            url=self.config.qdrant_url,
            api_key=self.config.qdrant_api_key,
            timeout=self.config.request_timeout,
            prefer_grpc=False,
        )

    # -- lifecycle ----------------------------------------------------------

    def connect(self) -> None:
        """Create the client and make sure the collection exists. Idempotent."""
        if self._state is IndexState.READY:
            return

        with self._lock:
            if self._state is IndexState.READY:
                logger.debug("Reusing existing Qdrant client")
                return

            self.config.require_remote()
            self._state = IndexState.CONNECTING
            logger.info(f"Connecting to Qdrant collection '{self.index_name}'")

            try:
                client = self._client_factory()
                self._ensure_collection(client)
            except ConfigurationError:
                self._state = IndexState.UNINITIALIZED
                raise
            except Exception as e:
                self._state = IndexState.UNINITIALIZED
                raise TransientRemoteError(f"Could not initialize Qdrant collection: {e}") from e

            self._client = client
            self._state = IndexState.READY
            logger.info(f"Qdrant collection '{self.index_name}' ready")

    def _ensure_collection(self, client: Any) -> None:
        collections = client.get_collections()
        existing = [col.name for col in collections.collections]
        logger.debug(f"Available collections: {existing}")

        if self.index_name in existing:
            return

        logger.info(f"Creating Qdrant collection: {self.index_name}")
        client.create_collection(
            collection_name=self.index_name,
            vectors_config=models.VectorParams(
                size=self.config.embedding_dim,
                distance=models.Distance.COSINE,
            ),
        )

        try:
            client.create_payload_index(
                collection_name=self.index_name,
                field_name=USER_ID_FIELD,
                field_schema=models.PayloadSchemaType.KEYWORD,
            )
        except Exception as e:
            # Filtering still works without the index, only slower
            logger.warning(f"Failed to create {USER_ID_FIELD} payload index: {e}")

        self._wait_until_ready(client)

    def _wait_until_ready(self, client: Any) -> bool:
        """Poll collection stats. Times out softly and proceeds."""
        attempts = self._readiness.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                info = client.get_collection(collection_name=self.index_name)
                logger.info(f"Collection is ready, total vectors: {info.points_count}")
                return True
            except Exception as e:
                logger.debug(f"Collection not ready yet ({attempt}/{attempts}): {e}")
                if attempt < attempts:
                    self._sleep(self._readiness.interval_seconds)

        logger.warning(
            f"Collection '{self.index_name}' not ready after {attempts} attempts, proceeding anyway"
        )
        return False

    # -- operations ---------------------------------------------------------

    def upsert(self, vectors: list[IndexVector]) -> BatchReport:
        """Upsert vectors in rate-limited batches."""
        self.connect()

        points = [
            models.PointStruct(
                id=point_id(vector.id),
                vector=np.asarray(vector.values, dtype=float).tolist(),
                payload={**vector.metadata, RECORD_ID_FIELD: vector.id},
            )
            for vector in vectors
        ]

        report = run_batched(
            "upsert",
            points,
            self._upsert_policy,
            lambda batch: self._client.upsert(
                collection_name=self.index_name,
                points=batch,
                wait=True,
            ),
            self._sleep,
        )
        if report.all_failed:
            raise TransientRemoteError(f"All {report.total_batches} upsert batches failed")

        logger.info(
            f"Upserted {report.succeeded_items}/{report.total_items} vectors "
            f"({report.failed_batches} failed batches)"
        )
        return report

    def query(
        self,
        vector: np.ndarray,
        top_k: int,
        user_id: str | None = None,
    ) -> list[IndexMatch]:
        """Similarity query with an optional user_id equality filter."""
        self.connect()

        try:
            response = self._client.query_points(
                collection_name=self.index_name,
                query=np.asarray(vector, dtype=float).tolist(),
                limit=top_k,
                query_filter=self._user_filter(user_id),
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            raise TransientRemoteError(f"Qdrant query failed: {e}") from e

        matches = []
        for point in response.points:
            payload = dict(point.payload or {})
            matches.append(
                IndexMatch(
                    id=payload.get(RECORD_ID_FIELD, str(point.id)),
                    score=float(point.score),
                    metadata=payload,
                )
            )

        matches.sort(key=lambda m: m.score, reverse=True)
        logger.debug(f"Query returned {len(matches)} matches")
        return matches

    def delete_many(self, ids: list[str]) -> BatchReport:
        """Delete vectors by record id in rate-limited batches."""
        self.connect()

        report = run_batched(
            "delete",
            [point_id(record_id) for record_id in ids],
            self._delete_policy,
            lambda batch: self._client.delete(
                collection_name=self.index_name,
                points_selector=models.PointIdsList(points=batch),
                wait=True,
            ),
            self._sleep,
        )
        if report.all_failed:
            raise TransientRemoteError(f"All {report.total_batches} delete batches failed")
        return report

    def query_all(self, user_id: str | None = None) -> list[IndexMatch]:
        """Broad query with a flat probe vector, bounded by list_top_k."""
        probe = np.full(self.config.embedding_dim, PROBE_VALUE)
        return self.query(probe, self.config.list_top_k, user_id)

    def list_all(self, user_id: str | None = None) -> list[DocumentSummary]:
        """One summary per file name."""
        return summarize_matches(self.query_all(user_id))

    @staticmethod
    def _user_filter(user_id: str | None) -> models.Filter | None:
        if not user_id:
            return None
        return models.Filter(
            must=[
                models.FieldCondition(
                    key=USER_ID_FIELD,
                    match=models.MatchValue(value=user_id),
                )
            ]
        )


# ---------------------------------------------------------------------------
# IN-MEMORY INDEX (Testing/Development)
# ---------------------------------------------------------------------------


class InMemoryIndexClient:
    """
    In-memory vector index for development/testing.

    Implements the same interface as QdrantIndexClient using cosine
    similarity over numpy arrays. Set `available = False` to simulate an
    outage: every operation then raises TransientRemoteError.
    """

    def __init__(
        self,
        dimensions: int = 384,
        upsert_policy: BatchPolicy = BatchPolicy(batch_size=10),
        delete_policy: BatchPolicy = BatchPolicy(batch_size=100),
        list_top_k: int = 10000,
    ):
        self._dimensions = dimensions
        self._upsert_policy = upsert_policy
        self._delete_policy = delete_policy
        self._list_top_k = list_top_k
        self._vectors: dict[str, IndexVector] = {}
        self.available = True
        self.connect_calls = 0

    def __len__(self) -> int:
        return len(self._vectors)

    def _check_available(self) -> None:
        if not self.available:
            raise TransientRemoteError("In-memory index unavailable")

    def connect(self) -> None:
        self._check_available()
        self.connect_calls += 1

    def upsert(self, vectors: list[IndexVector]) -> BatchReport:
        self._check_available()

        def _insert(batch: list[IndexVector]) -> None:
            for vector in batch:
                self._vectors[vector.id] = vector

        return run_batched("upsert", vectors, self._upsert_policy, _insert)

    def _cosine_similarity(self, a: np.ndarray, b: np.ndarray) -> float:
        denom = np.linalg.norm(a) * np.linalg.norm(b)
        if denom == 0:
            return 0.0
        return float(np.dot(a, b) / denom)

    def query(
        self,
        vector: np.ndarray,
        top_k: int,
        user_id: str | None = None,
    ) -> list[IndexMatch]:
        self._check_available()

        scored = []
        for stored in self._vectors.values():
            if user_id and stored.metadata.get(USER_ID_FIELD) != user_id:
                continue
            score = self._cosine_similarity(np.asarray(vector), np.asarray(stored.values))
            scored.append(IndexMatch(id=stored.id, score=score, metadata=dict(stored.metadata)))

        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    def delete_many(self, ids: list[str]) -> BatchReport:
        self._check_available()

        def _remove(batch: list[str]) -> None:
            for record_id in batch:
                self._vectors.pop(record_id, None)

        return run_batched("delete", ids, self._delete_policy, _remove)

    def query_all(self, user_id: str | None = None) -> list[IndexMatch]:
        probe = np.full(self._dimensions, PROBE_VALUE)
        return self.query(probe, self._list_top_k, user_id)

    def list_all(self, user_id: str | None = None) -> list[DocumentSummary]:
        return summarize_matches(self.query_all(user_id))
