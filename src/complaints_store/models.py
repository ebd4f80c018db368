"""Data models for complaints and cache statistics."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .errors import ValidationFailedError

FILENAME_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

TEXT_FIELDS = (
    "task_description",
    "context_info",
    "missing_info",
    "confused_by",
    "future_wishes",
)


class Severity(str, Enum):
    """How badly the missing information hurt the agent."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: str) -> Severity:
        """Parse a raw string into a Severity.

        Raises:
            ValidationFailedError: If the value is not a known severity.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValidationFailedError(
                "severity", f"invalid severity '{value}' (expected one of: {valid})"
            ) from None


def new_complaint_id() -> str:
    """Generate a fresh complaint identifier."""
    return str(uuid.uuid4())


def parse_complaint_id(value: str) -> str:
    """Normalize a complaint identifier, rejecting anything that is not a UUID."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailedError("id", "complaint id cannot be empty")
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError:
        raise ValidationFailedError("id", f"invalid complaint id '{value}'") from None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(field_name: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationFailedError(field_name, f"invalid timestamp '{value}'") from None
    else:
        raise ValidationFailedError(field_name, "timestamp must be an ISO 8601 string")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Complaint:
    """A complaint filed by an agent about missing or confusing information.

    Complaints are immutable values. Resolution produces a new instance,
    so a cached copy can be shared without locking.

    Attributes:
        task_description: What the agent was trying to do.
        severity: Parsed severity level.
        agent_name: Name of the filing agent (may be empty).
        session_name: Session label (may be empty).
        project_name: Project label (may be empty).
        context_info: Surrounding context.
        missing_info: What information was missing.
        confused_by: What was confusing.
        future_wishes: What would have helped.
        id: UUID string, assigned at creation.
        timestamp: Creation time in UTC, never changed.
        resolved_at: When the complaint was resolved, None while open.
        resolved_by: Who resolved it, None while open.
    """

    task_description: str
    severity: Severity = Severity.MEDIUM
    agent_name: str = ""
    session_name: str = ""
    project_name: str = ""
    context_info: str = ""
    missing_info: str = ""
    confused_by: str = ""
    future_wishes: str = ""
    id: str = field(default_factory=new_complaint_id)
    timestamp: datetime = field(default_factory=_utcnow)
    resolved_at: datetime | None = None
    resolved_by: str | None = None

    def __post_init__(self) -> None:
        # Normalize at construction so ids are always safe to use as file names.
        object.__setattr__(self, "id", parse_complaint_id(self.id))
        object.__setattr__(self, "severity", Severity.parse(self.severity))
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc))
        if (self.resolved_at is None) != (self.resolved_by is None):
            raise ValidationFailedError(
                "resolved_at", "resolved_at and resolved_by must be set together"
            )

    @property
    def resolved(self) -> bool:
        """True once the complaint has been resolved."""
        return self.resolved_at is not None

    def resolve(self, resolved_by: str, at: datetime | None = None) -> Complaint:
        """Return a resolved copy of this complaint.

        Resolving an already-resolved complaint returns it unchanged, so the
        original resolution metadata is never overwritten.
        """
        if self.resolved:
            return self
        if not resolved_by or not resolved_by.strip():
            raise ValidationFailedError("resolved_by", "resolver name cannot be empty")
        return replace(self, resolved_at=at or _utcnow(), resolved_by=resolved_by.strip())

    def summary(self) -> str:
        """One-line human summary."""
        return f"[{self.severity.value}] {self.agent_name} - {self.task_description}"

    def filename(self) -> str:
        """File name used by the file store: ``<id>-<timestamp>.json``."""
        stamp = self.timestamp.astimezone(timezone.utc).strftime(FILENAME_TIMESTAMP_FORMAT)
        return f"{self.id}-{stamp}.json"

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dict, omitting absent resolution fields."""
        data: dict[str, Any] = {
            "id": self.id,
            "agent_name": self.agent_name,
            "session_name": self.session_name,
            "project_name": self.project_name,
            "task_description": self.task_description,
            "context_info": self.context_info,
            "missing_info": self.missing_info,
            "confused_by": self.confused_by,
            "future_wishes": self.future_wishes,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "resolved": self.resolved,
        }
        if self.resolved_at is not None:
            data["resolved_at"] = self.resolved_at.isoformat()
        if self.resolved_by is not None:
            data["resolved_by"] = self.resolved_by
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Complaint:
        """Build a Complaint from its stored dict form.

        The derived ``resolved`` flag is ignored; ``resolved_at`` decides.

        Raises:
            ValidationFailedError: If a required field is missing or malformed.
        """
        if not isinstance(data, dict):
            raise ValidationFailedError("complaint", "payload must be a JSON object")

        for required in ("id", "task_description", "severity", "timestamp"):
            if required not in data:
                raise ValidationFailedError(required, "missing required field")

        strings: dict[str, str] = {}
        for name in ("agent_name", "session_name", "project_name", *TEXT_FIELDS):
            value = data.get(name, "")
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise ValidationFailedError(name, "must be a string")
            strings[name] = value

        resolved_at = data.get("resolved_at")
        resolved_by = data.get("resolved_by")
        if resolved_by is not None and not isinstance(resolved_by, str):
            raise ValidationFailedError("resolved_by", "must be a string")

        return cls(
            id=parse_complaint_id(data["id"]),
            severity=Severity.parse(data["severity"]),
            timestamp=_parse_timestamp("timestamp", data["timestamp"]),
            resolved_at=(
                _parse_timestamp("resolved_at", resolved_at) if resolved_at is not None else None
            ),
            resolved_by=resolved_by,
            **strings,
        )


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time snapshot of cache counters.

    A ``max_size`` of 0 means caching is disabled.
    """

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    current_size: int = 0
    max_size: int = 0

    @classmethod
    def disabled(cls) -> CacheStats:
        """Sentinel returned by repositories that do not cache."""
        return cls()

    @property
    def enabled(self) -> bool:
        return self.max_size > 0

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage of all lookups."""
        lookups = self.hits + self.misses
        if lookups == 0:
            return 0.0
        return self.hits / lookups * 100.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "current_size": self.current_size,
            "max_size": self.max_size,
            "hit_rate_percent": round(self.hit_rate, 2),
        }
