"""
Span attribute names for storage operations.
"""

STORAGE_OPERATION = "storage.operation"  # "store", "search", "list", "clear"
STORAGE_BACKEND = "storage.backend"  # "remote", "local", "none"
STORAGE_FALLBACK = "storage.fallback"  # True when the local store served the call
STORAGE_USER_ID = "storage.user_id"
STORAGE_CHUNK_COUNT = "storage.chunk_count"
STORAGE_RESULT_COUNT = "storage.result_count"
STORAGE_TOP_K = "storage.top_k"
STORAGE_FILE_NAME = "storage.file_name"


def storage_operation_attributes(
    operation: str,
    user_id: str | None = None,
    file_name: str | None = None,
    top_k: int | None = None,
) -> dict:
    """Initial attributes for a storage operation span."""
    attrs: dict = {STORAGE_OPERATION: operation}
    if user_id:
        attrs[STORAGE_USER_ID] = user_id
    if file_name is not None:
        attrs[STORAGE_FILE_NAME] = file_name
    if top_k is not None:
        attrs[STORAGE_TOP_K] = top_k
    return attrs
