"""Storage layer: file store, cache, queries and the repository facade."""

from .cache import EvictionPolicy, RecordCache
from .factory import create_repository
from .file_store import FileStore
from .query import QueryEngine
from .repository import CachedRepository, FileRepository, Repository

__all__ = [
    "CachedRepository",
    "EvictionPolicy",
    "FileRepository",
    "FileStore",
    "QueryEngine",
    "RecordCache",
    "Repository",
    "create_repository",
]
