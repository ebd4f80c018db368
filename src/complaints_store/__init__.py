"""File-backed complaint store with an optional in-memory cache."""

from .aio import AsyncRepository
from .config import StorageConfig, load_config, save_config
from .context import OperationContext
from .docs import DocsExporter
from .errors import (
    ComplaintStoreError,
    InvalidConfigurationError,
    NotFoundError,
    OperationCancelledError,
    StorageIOError,
    ValidationFailedError,
)
from .models import CacheStats, Complaint, Severity
from .repo import (
    CachedRepository,
    EvictionPolicy,
    FileRepository,
    FileStore,
    RecordCache,
    Repository,
    create_repository,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncRepository",
    "CacheStats",
    "CachedRepository",
    "Complaint",
    "ComplaintStoreError",
    "DocsExporter",
    "EvictionPolicy",
    "FileRepository",
    "FileStore",
    "InvalidConfigurationError",
    "NotFoundError",
    "OperationCancelledError",
    "OperationContext",
    "RecordCache",
    "Repository",
    "Severity",
    "StorageConfig",
    "StorageIOError",
    "ValidationFailedError",
    "create_repository",
    "load_config",
    "save_config",
]
