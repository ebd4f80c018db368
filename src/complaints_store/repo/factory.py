"""Build a repository from configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..tracing import Tracer
from .cache import RecordCache
from .file_store import FileStore
from .repository import CachedRepository, FileRepository, Repository

if TYPE_CHECKING:
    from ..config import StorageConfig

logger = logging.getLogger(__name__)


def create_repository(config: StorageConfig, tracer: Tracer | None = None) -> Repository:
    """Create the cached or uncached repository selected by ``config``."""
    store = FileStore(config.base_dir, tracer=tracer)
    if not config.cache_enabled:
        logger.debug("Creating uncached repository at %s", config.base_dir)
        return FileRepository(store, tracer=tracer)

    logger.debug(
        "Creating cached repository at %s (max_size=%d, eviction=%s)",
        config.base_dir,
        config.cache_max_size,
        config.cache_eviction.value,
    )
    cache = RecordCache(config.cache_max_size, config.cache_eviction)
    return CachedRepository(store, cache, tracer=tracer)
