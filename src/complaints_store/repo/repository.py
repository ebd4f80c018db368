"""Repository facade over the file store, with and without caching."""

from __future__ import annotations

import functools
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from ..context import OperationContext, check_context
from ..models import CacheStats, Complaint, Severity, parse_complaint_id
from ..tracing import Tracer
from .cache import RecordCache
from .file_store import FileStore, creation_order
from .query import Predicate, QueryEngine

logger = logging.getLogger(__name__)


class Repository(ABC):
    """The single storage interface used by business logic.

    Subclasses decide where lookups and query snapshots come from; the
    queries themselves, resolution and tracing are shared. Every method
    takes an optional OperationContext which is checked before any I/O.
    """

    def __init__(self, store: FileStore, tracer: Tracer | None = None) -> None:
        self.store = store
        self.tracer = tracer or store.tracer
        # Serializes writes and read-modify-write sequences (update, resolve).
        self._write_lock = threading.RLock()

    @abstractmethod
    def save(self, complaint: Complaint, *, ctx: OperationContext | None = None) -> Complaint:
        """Persist a new complaint."""
        ...

    @abstractmethod
    def find_by_id(self, complaint_id: str, *, ctx: OperationContext | None = None) -> Complaint:
        """Return one complaint or raise NotFoundError."""
        ...

    @abstractmethod
    def update(self, complaint: Complaint, *, ctx: OperationContext | None = None) -> Complaint:
        """Rewrite an existing complaint in place."""
        ...

    @abstractmethod
    def get_cache_stats(self) -> CacheStats:
        ...

    @abstractmethod
    def warm_cache(self, *, ctx: OperationContext | None = None) -> int:
        """Load every complaint into the cache. Returns the number loaded."""
        ...

    @abstractmethod
    def _snapshot(self, ctx: OperationContext | None = None) -> list[Complaint]:
        """All complaints in creation order."""
        ...

    def _queries(self, ctx: OperationContext | None) -> QueryEngine:
        return QueryEngine(functools.partial(self._snapshot, ctx))

    def resolve(
        self,
        complaint_id: str,
        resolved_by: str,
        *,
        ctx: OperationContext | None = None,
    ) -> Complaint:
        """Mark a complaint resolved.

        Resolving an already-resolved complaint is a successful no-op that
        returns the original resolution unchanged.

        Raises:
            NotFoundError: If the complaint does not exist.
            ValidationFailedError: If resolved_by is empty.
        """
        with self.tracer.start("repository.resolve", complaint_id=complaint_id):
            check_context(ctx, "resolve")
            with self._write_lock:
                current = self.find_by_id(complaint_id, ctx=ctx)
                if current.resolved:
                    logger.info(
                        "Complaint %s already resolved by %s", current.id, current.resolved_by
                    )
                    return current
                resolved = self.update(current.resolve(resolved_by), ctx=ctx)
            logger.info("Complaint %s resolved by %s", resolved.id, resolved.resolved_by)
            return resolved

    def find_all(
        self,
        limit: int | None = None,
        offset: int = 0,
        *,
        ctx: OperationContext | None = None,
    ) -> list[Complaint]:
        """Page through all complaints, oldest first."""
        with self.tracer.start("repository.find_all", limit=limit, offset=offset):
            check_context(ctx, "find_all")
            return self._queries(ctx).find_all(limit, offset)

    def find_by_project(
        self, project_name: str, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        with self.tracer.start("repository.find_by_project", project_name=project_name):
            check_context(ctx, "find_by_project")
            return self._queries(ctx).find_by_project(project_name, limit)

    def find_by_severity(
        self, severity: Severity, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        with self.tracer.start("repository.find_by_severity", severity=str(severity)):
            check_context(ctx, "find_by_severity")
            return self._queries(ctx).find_by_severity(severity, limit)

    def find_by_session(
        self, session_name: str, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        with self.tracer.start("repository.find_by_session", session_name=session_name):
            check_context(ctx, "find_by_session")
            return self._queries(ctx).find_by_session(session_name, limit)

    def find_by_agent(
        self, agent_name: str, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        with self.tracer.start("repository.find_by_agent", agent_name=agent_name):
            check_context(ctx, "find_by_agent")
            return self._queries(ctx).find_by_agent(agent_name, limit)

    def find_unresolved(
        self, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        with self.tracer.start("repository.find_unresolved"):
            check_context(ctx, "find_unresolved")
            return self._queries(ctx).find_unresolved(limit)

    def search(
        self, query: str, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        """Case-insensitive substring search, oldest match first."""
        with self.tracer.start("repository.search", query=query):
            check_context(ctx, "search")
            results = self._queries(ctx).search(query, limit)
            logger.debug("Search %r matched %d complaint(s)", query, len(results))
            return results

    def where(
        self, predicate: Predicate, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        """Filter with a composed predicate (see repo.query)."""
        with self.tracer.start("repository.where"):
            check_context(ctx, "where")
            return self._queries(ctx).where(predicate, limit)

    def get_file_path(self, complaint_id: str, *, ctx: OperationContext | None = None) -> Path:
        """Path of the file currently holding a complaint."""
        with self.tracer.start("repository.get_file_path", complaint_id=complaint_id):
            check_context(ctx, "get_file_path")
            return self.store.path_for(complaint_id, ctx)


class FileRepository(Repository):
    """Uncached repository: every call goes to the file store."""

    def save(self, complaint: Complaint, *, ctx: OperationContext | None = None) -> Complaint:
        with self.tracer.start("repository.save", complaint_id=complaint.id):
            check_context(ctx, "save")
            with self._write_lock:
                self.store.save(complaint, ctx)
            logger.info("Complaint %s saved", complaint.id)
            return complaint

    def find_by_id(self, complaint_id: str, *, ctx: OperationContext | None = None) -> Complaint:
        with self.tracer.start("repository.find_by_id", complaint_id=complaint_id):
            check_context(ctx, "find_by_id")
            return self.store.find_by_id(complaint_id, ctx)

    def update(self, complaint: Complaint, *, ctx: OperationContext | None = None) -> Complaint:
        with self.tracer.start("repository.update", complaint_id=complaint.id):
            check_context(ctx, "update")
            with self._write_lock:
                return self.store.update(complaint, ctx)

    def get_cache_stats(self) -> CacheStats:
        return CacheStats.disabled()

    def warm_cache(self, *, ctx: OperationContext | None = None) -> int:
        return 0

    def _snapshot(self, ctx: OperationContext | None = None) -> list[Complaint]:
        return self.store.load_all(ctx)


class CachedRepository(Repository):
    """Repository with a bounded in-memory index over the file store.

    Writes go to disk first and reach the cache only once they succeeded.
    Queries read the cache while it is known to hold every complaint on
    disk (warm-up succeeded and nothing was evicted since); otherwise they
    fall back to a directory scan so results never depend on the cache.
    """

    def __init__(
        self,
        store: FileStore,
        cache: RecordCache | None = None,
        tracer: Tracer | None = None,
    ) -> None:
        super().__init__(store, tracer)
        self.cache = cache if cache is not None else RecordCache()
        self._complete = False
        try:
            self.warm_cache()
        except Exception as e:
            # The cache fills lazily instead; queries fall back to disk.
            logger.warning("Cache warm-up failed, starting empty: %s", e, exc_info=True)

    @property
    def complete(self) -> bool:
        """True while the cache mirrors every complaint on disk."""
        return self._complete

    def warm_cache(self, *, ctx: OperationContext | None = None) -> int:
        with self.tracer.start("repository.warm_cache"):
            check_context(ctx, "warm_cache")
            with self._write_lock:
                self._complete = False
                complaints = self.store.load_all(ctx)
                self.cache.clear()
                complete = True
                for complaint in complaints:
                    if self.cache.put(complaint):
                        complete = False
                self._complete = complete
            logger.info(
                "Cache warmed with %d complaint(s) (policy=%s, max_size=%d)",
                len(complaints),
                self.cache.policy.value,
                self.cache.max_size,
            )
            return len(complaints)

    def save(self, complaint: Complaint, *, ctx: OperationContext | None = None) -> Complaint:
        with self.tracer.start("repository.save", complaint_id=complaint.id):
            check_context(ctx, "save")
            with self._write_lock:
                self.store.save(complaint, ctx)
                self._remember(complaint)
            logger.info("Complaint %s saved and cached", complaint.id)
            return complaint

    def find_by_id(self, complaint_id: str, *, ctx: OperationContext | None = None) -> Complaint:
        with self.tracer.start("repository.find_by_id", complaint_id=complaint_id):
            check_context(ctx, "find_by_id")
            complaint_id = parse_complaint_id(complaint_id)
            cached = self.cache.get(complaint_id)
            if cached is not None:
                return cached

            logger.debug("Cache miss for %s, reading from disk", complaint_id)
            with self._write_lock:
                # A concurrent write may have filled the entry meanwhile.
                cached = self.cache.peek(complaint_id)
                if cached is not None:
                    return cached
                complaint = self.store.find_by_id(complaint_id, ctx)
                self._remember(complaint)
                return complaint

    def update(self, complaint: Complaint, *, ctx: OperationContext | None = None) -> Complaint:
        with self.tracer.start("repository.update", complaint_id=complaint.id):
            check_context(ctx, "update")
            with self._write_lock:
                written = self.store.update(complaint, ctx)
                self._remember(written)
            logger.info("Complaint %s updated", written.id)
            return written

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def _remember(self, complaint: Complaint) -> None:
        if self.cache.put(complaint):
            self._complete = False

    def _snapshot(self, ctx: OperationContext | None = None) -> list[Complaint]:
        if self._complete:
            return creation_order(self.cache.values())
        return self.store.load_all(ctx)
