"""Filtering, pagination and text search over complaints.

The engine reads from a snapshot provider that returns complaints in
creation order, so the same code serves the disk-backed and the
cache-backed repository.
"""

from collections.abc import Callable, Iterable

from ..errors import ValidationFailedError
from ..models import Complaint, Severity

Predicate = Callable[[Complaint], bool]

SEARCH_FIELDS = (
    "agent_name",
    "project_name",
    "task_description",
    "context_info",
    "missing_info",
    "confused_by",
    "future_wishes",
)


def by_severity(severity: Severity) -> Predicate:
    return lambda c: c.severity == severity


def by_project(project_name: str) -> Predicate:
    return lambda c: c.project_name == project_name


def by_session(session_name: str) -> Predicate:
    return lambda c: c.session_name == session_name


def by_agent(agent_name: str) -> Predicate:
    return lambda c: c.agent_name == agent_name


def unresolved() -> Predicate:
    return lambda c: not c.resolved


def matches_text(query: str) -> Predicate:
    """Case-insensitive substring match over the searchable text fields."""
    needle = query.casefold()

    def predicate(c: Complaint) -> bool:
        return any(needle in getattr(c, name).casefold() for name in SEARCH_FIELDS)

    return predicate


def all_of(*predicates: Predicate) -> Predicate:
    return lambda c: all(p(c) for p in predicates)


def any_of(*predicates: Predicate) -> Predicate:
    return lambda c: any(p(c) for p in predicates)


def negate(predicate: Predicate) -> Predicate:
    return lambda c: not predicate(c)


def _check_limit(limit: int | None) -> None:
    if limit is not None and limit < 0:
        raise ValidationFailedError("limit", "must be >= 0")


def filter_complaints(
    complaints: Iterable[Complaint],
    predicate: Predicate,
    limit: int | None = None,
) -> list[Complaint]:
    """Keep matching complaints, stopping as soon as ``limit`` are found."""
    _check_limit(limit)
    if limit == 0:
        return []
    matched: list[Complaint] = []
    for complaint in complaints:
        if predicate(complaint):
            matched.append(complaint)
            if limit is not None and len(matched) >= limit:
                break
    return matched


def paginate(complaints: list[Complaint], limit: int | None, offset: int = 0) -> list[Complaint]:
    """Slice one page; an offset past the end yields an empty page."""
    _check_limit(limit)
    if offset < 0:
        raise ValidationFailedError("offset", "must be >= 0")
    if limit is None:
        return complaints[offset:]
    return complaints[offset:offset + limit]


class QueryEngine:
    """Read-only queries over a creation-ordered snapshot of complaints."""

    def __init__(self, snapshot: Callable[[], list[Complaint]]) -> None:
        """Initialize the engine.

        Args:
            snapshot: Returns all complaints, oldest first.
        """
        self._snapshot = snapshot

    def find_all(self, limit: int | None = None, offset: int = 0) -> list[Complaint]:
        return paginate(self._snapshot(), limit, offset)

    def find_by_project(self, project_name: str, limit: int | None = None) -> list[Complaint]:
        return self.where(by_project(project_name), limit)

    def find_by_severity(self, severity: Severity, limit: int | None = None) -> list[Complaint]:
        return self.where(by_severity(Severity.parse(severity)), limit)

    def find_by_session(self, session_name: str, limit: int | None = None) -> list[Complaint]:
        return self.where(by_session(session_name), limit)

    def find_by_agent(self, agent_name: str, limit: int | None = None) -> list[Complaint]:
        return self.where(by_agent(agent_name), limit)

    def find_unresolved(self, limit: int | None = None) -> list[Complaint]:
        return self.where(unresolved(), limit)

    def search(self, query: str, limit: int | None = None) -> list[Complaint]:
        return self.where(matches_text(query), limit)

    def where(self, predicate: Predicate, limit: int | None = None) -> list[Complaint]:
        """Run an arbitrary predicate, e.g. one built with all_of()."""
        _check_limit(limit)
        if limit == 0:
            return []
        return filter_complaints(self._snapshot(), predicate, limit)
