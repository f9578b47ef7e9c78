"""
Storage orchestrator - the only entry point other layers call.

Each operation is tried against the remote backend first. If that
attempt raises anything other than ConfigurationError, the same
operation runs against the local backend instead. A call commits to
whichever backend answered first; results from the two are never
merged and a document is never written to both.

Only ConfigurationError and BothBackendsFailed escape from here.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from pulse_docstore.core import (
    Backend,
    BothBackendsFailed,
    ClearReport,
    ConfigurationError,
    DocumentBackend,
    DocumentSummary,
    EmbeddingProvider,
    SearchResult,
    StorageConfig,
    StoreReport,
    VectorIndex,
    get_config,
)
from pulse_docstore.embeddings import get_embedding_provider
from pulse_docstore.ingest import clean_content
from pulse_docstore.observability import (
    STORAGE_BACKEND,
    STORAGE_CHUNK_COUNT,
    STORAGE_FALLBACK,
    STORAGE_RESULT_COUNT,
    TracerProtocol,
    get_tracer,
    storage_operation_attributes,
)
from pulse_docstore.retrieval.backends import LocalBackend, RemoteBackend
from pulse_docstore.retrieval.local_store import JsonDocumentStore
from pulse_docstore.retrieval.remote_index import QdrantIndexClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageOrchestrator:
    """
    Backend-agnostic store/search/list/clear.

    Dependencies are INJECTED: pass remote=None to run on the local
    store only.
    """

    def __init__(
        self,
        local: DocumentBackend,
        remote: DocumentBackend | None = None,
        config: StorageConfig | None = None,
        tracer: TracerProtocol | None = None,
    ):
        self._local = local
        self._remote = remote
        self.config = config or StorageConfig()
        self._tracer = tracer

    @property
    def tracer(self) -> TracerProtocol:
        return self._tracer or get_tracer()

    @property
    def has_remote(self) -> bool:
        return self._remote is not None

    def _with_fallback(
        self,
        operation: str,
        remote_call: Callable[[DocumentBackend], T],
        local_call: Callable[[DocumentBackend], T],
    ) -> tuple[T, Backend]:
        """Run remote_call, falling back to local_call on any remote failure."""
        remote_error: Exception | None = None

        if self._remote is not None:
            try:
                return remote_call(self._remote), Backend.REMOTE
            except ConfigurationError:
                raise
            except Exception as e:
                remote_error = e
                logger.warning(f"Remote {operation} failed, falling back to local store: {e}")
        else:
            logger.debug(f"No remote index configured, {operation} uses the local store")

        try:
            return local_call(self._local), Backend.LOCAL
        except Exception as e:
            logger.error(f"Local {operation} failed as well: {e}")
            raise BothBackendsFailed(operation, remote_error, e) from e

    # -- public contract ----------------------------------------------------

    def store_document(
        self,
        file_name: str,
        file_type: str,
        content: str,
        user_id: str | None = None,
    ) -> StoreReport:
        """
        Clean, chunk, embed and persist a document.

        Content whose cleaned length is at most min_content_length is not
        stored at all.

        Raises:
            BothBackendsFailed: neither backend accepted the document
        """
        user_id = user_id or self.config.default_user_id
        attrs = storage_operation_attributes("store", user_id=user_id, file_name=file_name)

        with self.tracer.start_span("storage.store", attributes=attrs) as span:
            cleaned = clean_content(content)
            if len(cleaned) <= self.config.min_content_length:
                logger.info(f"Content of '{file_name}' too short for storage ({len(cleaned)} chars)")
                span.set_attribute(STORAGE_BACKEND, Backend.NONE.value)
                return StoreReport(backend=Backend.NONE, skipped=True)

            try:
                report, backend = self._with_fallback(
                    "store",
                    lambda remote: remote.store(file_name, file_type, cleaned, user_id),
                    lambda local: local.store(file_name, file_type, cleaned, user_id),
                )
            except BothBackendsFailed as e:
                span.record_exception(e)
                span.set_status("error", str(e))
                raise

            span.set_attribute(STORAGE_BACKEND, backend.value)
            span.set_attribute(STORAGE_FALLBACK, backend is Backend.LOCAL)
            span.set_attribute(STORAGE_CHUNK_COUNT, report.chunk_count)
            logger.info(f"Stored '{file_name}' in {report.describe()}")
            return report

    def search_documents(
        self,
        query: str,
        top_k: int = 5,
        user_id: str | None = None,
    ) -> list[SearchResult]:
        """
        Ranked search, best first.

        Raises:
            BothBackendsFailed: neither backend could answer
        """
        attrs = storage_operation_attributes("search", user_id=user_id, top_k=top_k)

        with self.tracer.start_span("storage.search", attributes=attrs) as span:
            if top_k <= 0:
                return []

            try:
                results, backend = self._with_fallback(
                    "search",
                    lambda remote: remote.search(query, top_k, user_id),
                    lambda local: local.search(query, top_k, user_id),
                )
            except BothBackendsFailed as e:
                span.record_exception(e)
                span.set_status("error", str(e))
                raise

            results = sorted(results, key=lambda r: r.score, reverse=True)
            span.set_attribute(STORAGE_BACKEND, backend.value)
            span.set_attribute(STORAGE_FALLBACK, backend is Backend.LOCAL)
            span.set_attribute(STORAGE_RESULT_COUNT, len(results))
            logger.info(f"Found {len(results)} relevant document sections ({backend.value})")
            return results

    def list_user_documents(self, user_id: str | None = None) -> list[DocumentSummary]:
        """
        Document summaries for a user (all users when user_id is None).

        Raises:
            BothBackendsFailed: neither backend could answer
        """
        attrs = storage_operation_attributes("list", user_id=user_id)

        with self.tracer.start_span("storage.list", attributes=attrs) as span:
            try:
                documents, backend = self._with_fallback(
                    "list",
                    lambda remote: remote.list_documents(user_id),
                    lambda local: local.list_documents(user_id),
                )
            except BothBackendsFailed as e:
                span.record_exception(e)
                span.set_status("error", str(e))
                raise

            span.set_attribute(STORAGE_BACKEND, backend.value)
            span.set_attribute(STORAGE_FALLBACK, backend is Backend.LOCAL)
            span.set_attribute(STORAGE_RESULT_COUNT, len(documents))
            return documents

    def clear_user_documents(self, user_id: str | None = None) -> ClearReport:
        """
        Best-effort wipe of both backends.

        The local store is always cleared first, then the user's remote
        vectors are deleted. Failure is only raised when both sides fail.

        Raises:
            BothBackendsFailed: neither backend could be cleared
        """
        attrs = storage_operation_attributes("clear", user_id=user_id)

        with self.tracer.start_span("storage.clear", attributes=attrs) as span:
            local_error: Exception | None = None
            remote_error: Exception | None = None
            local_cleared = False
            remote_cleared = False
            remote_deleted = 0

            try:
                self._local.clear(user_id)
                local_cleared = True
            except Exception as e:
                local_error = e
                logger.error(f"Failed to clear local storage: {e}")

            if self._remote is not None:
                try:
                    remote_deleted = self._remote.clear(user_id)
                    remote_cleared = True
                except ConfigurationError:
                    raise
                except Exception as e:
                    remote_error = e
                    logger.error(f"Failed to clear remote index: {e}")

            if not local_cleared and not remote_cleared:
                error = BothBackendsFailed("clear", remote_error, local_error)
                span.record_exception(error)
                span.set_status("error", str(error))
                raise error

            report = ClearReport(
                local_cleared=local_cleared,
                remote_cleared=remote_cleared,
                remote_deleted=remote_deleted,
            )
            span.set_attribute(STORAGE_RESULT_COUNT, remote_deleted)
            logger.info(
                f"Cleared documents (local: {local_cleared}, remote: {remote_cleared}, "
                f"{remote_deleted} vectors deleted)"
            )
            return report


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_document_storage(
    config: StorageConfig | None = None,
    index: VectorIndex | None = None,
    embeddings: EmbeddingProvider | None = None,
    use_remote: bool | None = None,
    tracer: TracerProtocol | None = None,
) -> StorageOrchestrator:
    """
    Factory function for the storage orchestrator.

    Args:
        config: Storage configuration (loaded from env if not provided)
        index: Vector index to use (QdrantIndexClient built from config if not provided)
        embeddings: Embedding provider (FeatureHashEmbeddings if not provided)
        use_remote: Force the remote index on/off. Defaults to on when
            Qdrant credentials are configured.
        tracer: Tracer (global tracer if not provided)

    Returns:
        StorageOrchestrator
    """
    config = config or get_config()
    embeddings = embeddings or get_embedding_provider(config.embedding_dim)

    if index is None:
        if use_remote is None:
            use_remote = config.has_remote_credentials
        if use_remote:
            index = QdrantIndexClient(config)
        else:
            logger.warning("Qdrant credentials not configured, documents will be kept in the local store only")

    remote = RemoteBackend(index, embeddings, config) if index is not None else None
    local = LocalBackend(JsonDocumentStore(config.local_store_path, config.default_user_id))
    return StorageOrchestrator(local=local, remote=remote, config=config, tracer=tracer)
