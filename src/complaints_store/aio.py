"""Asyncio adapter for the blocking repository.

File I/O is synchronous, so each call runs in the event loop's default
executor and the loop itself never blocks on the filesystem.
"""

import asyncio
import functools
from pathlib import Path
from typing import Any, Callable, TypeVar

from .context import OperationContext
from .models import CacheStats, Complaint, Severity
from .repo.repository import Repository

T = TypeVar("T")


class AsyncRepository:
    """Coroutine front for a Repository."""

    def __init__(self, repository: Repository) -> None:
        self.repository = repository

    async def _run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    async def save(self, complaint: Complaint, *, ctx: OperationContext | None = None) -> Complaint:
        return await self._run(self.repository.save, complaint, ctx=ctx)

    async def find_by_id(
        self, complaint_id: str, *, ctx: OperationContext | None = None
    ) -> Complaint:
        return await self._run(self.repository.find_by_id, complaint_id, ctx=ctx)

    async def find_all(
        self, limit: int | None = None, offset: int = 0, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        return await self._run(self.repository.find_all, limit, offset, ctx=ctx)

    async def find_by_project(
        self, project_name: str, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        return await self._run(self.repository.find_by_project, project_name, limit, ctx=ctx)

    async def find_by_severity(
        self, severity: Severity, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        return await self._run(self.repository.find_by_severity, severity, limit, ctx=ctx)

    async def find_by_session(
        self, session_name: str, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        return await self._run(self.repository.find_by_session, session_name, limit, ctx=ctx)

    async def find_by_agent(
        self, agent_name: str, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        return await self._run(self.repository.find_by_agent, agent_name, limit, ctx=ctx)

    async def find_unresolved(
        self, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        return await self._run(self.repository.find_unresolved, limit, ctx=ctx)

    async def search(
        self, query: str, limit: int | None = None, *, ctx: OperationContext | None = None
    ) -> list[Complaint]:
        return await self._run(self.repository.search, query, limit, ctx=ctx)

    async def update(
        self, complaint: Complaint, *, ctx: OperationContext | None = None
    ) -> Complaint:
        return await self._run(self.repository.update, complaint, ctx=ctx)

    async def resolve(
        self, complaint_id: str, resolved_by: str, *, ctx: OperationContext | None = None
    ) -> Complaint:
        return await self._run(self.repository.resolve, complaint_id, resolved_by, ctx=ctx)

    async def get_file_path(
        self, complaint_id: str, *, ctx: OperationContext | None = None
    ) -> Path:
        return await self._run(self.repository.get_file_path, complaint_id, ctx=ctx)

    async def warm_cache(self, *, ctx: OperationContext | None = None) -> int:
        return await self._run(self.repository.warm_cache, ctx=ctx)

    async def get_cache_stats(self) -> CacheStats:
        # In-memory snapshot, no I/O.
        return self.repository.get_cache_stats()
