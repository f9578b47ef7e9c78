"""
Error taxonomy for the storage subsystem.

Only ConfigurationError and BothBackendsFailed ever escape the
StorageOrchestrator. Everything else is contained at that boundary and
turned into a fallback attempt or a log line.
"""

from __future__ import annotations


class StorageError(Exception):
    """Base class for every error raised by pulse_docstore."""


class ConfigurationError(StorageError):
    """Missing credential or index configuration. Fatal, never retried."""


class TransientRemoteError(StorageError):
    """A call against the remote vector service failed."""


class PartialBatchFailure(StorageError):
    """One upsert/delete batch failed while the others carried on.

    Recorded on a BatchReport rather than raised.
    """

    def __init__(self, operation: str, batch_number: int, size: int, cause: Exception):
        super().__init__(f"{operation} batch {batch_number} ({size} items) failed: {cause}")
        self.operation = operation
        self.batch_number = batch_number
        self.size = size
        self.cause = cause


class LocalStoreError(StorageError):
    """The local document collection could not be written."""


class BothBackendsFailed(StorageError):
    """Remote and local backends both failed for the same operation."""

    def __init__(
        self,
        operation: str,
        remote_error: BaseException | None,
        local_error: BaseException | None,
    ):
        super().__init__(
            f"{operation} failed on both backends. "
            f"Remote: {remote_error}, Local: {local_error}"
        )
        self.operation = operation
        self.remote_error = remote_error
        self.local_error = local_error
