"""
Storage configuration.

Loads settings from environment variables. The remote credentials are
optional here; they are only validated when the remote index is first
used, so a process without them can still run on the local store.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from pulse_docstore.core.errors import ConfigurationError

DEFAULT_INDEX_NAME = "pulse-documents"
DEFAULT_LOCAL_STORE_PATH = ".pulse_documents.json"
DEFAULT_USER_ID = "default-user"
EMBEDDING_DIMENSIONS = 384


@dataclass
class StorageConfig:
    """Configuration for the storage subsystem.

    Environment Variables:
        QDRANT_URL: Qdrant endpoint (required for the remote index)
        QDRANT_API_KEY: Qdrant API key (required for the remote index)
        PULSE_INDEX_NAME: Collection name (default: pulse-documents)
        PULSE_LOCAL_STORE_PATH: JSON file for the local store
        PULSE_DEFAULT_USER: User id recorded when none is given
        PULSE_CHUNK_SIZE: Maximum characters per chunk (default: 800)
    """

    qdrant_url: str | None = None
    qdrant_api_key: str | None = None
    index_name: str = DEFAULT_INDEX_NAME
    local_store_path: Path = Path(DEFAULT_LOCAL_STORE_PATH)
    default_user_id: str = DEFAULT_USER_ID
    embedding_dim: int = EMBEDDING_DIMENSIONS
    chunk_size: int = 800
    min_content_length: int = 50
    metadata_content_limit: int = 1000
    list_top_k: int = 10000
    request_timeout: int = 60

    @classmethod
    def from_env(cls) -> "StorageConfig":
        """Load config from environment variables."""
        return cls(
            qdrant_url=os.environ.get("QDRANT_URL") or None,
            qdrant_api_key=os.environ.get("QDRANT_API_KEY") or None,
            index_name=os.environ.get("PULSE_INDEX_NAME", DEFAULT_INDEX_NAME),
            local_store_path=Path(
                os.environ.get("PULSE_LOCAL_STORE_PATH", DEFAULT_LOCAL_STORE_PATH)
            ),
            default_user_id=os.environ.get("PULSE_DEFAULT_USER", DEFAULT_USER_ID),
            chunk_size=int(os.environ.get("PULSE_CHUNK_SIZE", "800")),
        )

    @property
    def has_remote_credentials(self) -> bool:
        return bool(self.qdrant_url and self.qdrant_api_key)

    def require_remote(self) -> None:
        """Raise ConfigurationError unless the remote index can be used."""
        missing = []
        if not self.qdrant_url:
            missing.append("QDRANT_URL")
        if not self.qdrant_api_key:
            missing.append("QDRANT_API_KEY")
        if not self.index_name:
            missing.append("PULSE_INDEX_NAME")
        if missing:
            raise ConfigurationError(
                f"Remote index not configured, missing: {', '.join(missing)}"
            )


# Global config singleton
_config: StorageConfig | None = None


def get_config() -> StorageConfig:
    """Get the global storage config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = StorageConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
