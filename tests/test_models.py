"""Tests for complaint models."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from complaints_store.errors import ValidationFailedError
from complaints_store.models import (
    CacheStats,
    Complaint,
    Severity,
    new_complaint_id,
    parse_complaint_id,
)


def make_complaint(**kwargs) -> Complaint:
    defaults = {
        "task_description": "Deploy the service",
        "agent_name": "claude",
        "session_name": "s1",
        "project_name": "infra",
        "missing_info": "no runbook",
    }
    defaults.update(kwargs)
    return Complaint(**defaults)


class TestSeverity:
    """Tests for Severity parsing."""

    def test_parse_valid_values(self):
        """Every severity name parses to its member."""
        assert Severity.parse("low") is Severity.LOW
        assert Severity.parse("medium") is Severity.MEDIUM
        assert Severity.parse("high") is Severity.HIGH
        assert Severity.parse("critical") is Severity.CRITICAL

    def test_parse_passes_members_through(self):
        assert Severity.parse(Severity.HIGH) is Severity.HIGH

    def test_parse_rejects_unknown(self):
        """Unknown names raise ValidationFailedError naming the field."""
        with pytest.raises(ValidationFailedError) as exc_info:
            Severity.parse("urgent")
        assert exc_info.value.field == "severity"

    def test_parse_is_case_sensitive(self):
        with pytest.raises(ValidationFailedError):
            Severity.parse("HIGH")


class TestComplaintId:
    """Tests for complaint id helpers."""

    def test_new_ids_are_unique_uuids(self):
        ids = {new_complaint_id() for _ in range(50)}
        assert len(ids) == 50
        for value in ids:
            uuid.UUID(value)

    def test_parse_normalizes_case(self):
        value = str(uuid.uuid4())
        assert parse_complaint_id(value.upper()) == value

    @pytest.mark.parametrize("bad", ["", "   ", "not-a-uuid", "../etc/passwd"])
    def test_parse_rejects_invalid(self, bad):
        with pytest.raises(ValidationFailedError) as exc_info:
            parse_complaint_id(bad)
        assert exc_info.value.field == "id"


class TestComplaint:
    """Tests for the Complaint value."""

    def test_defaults(self):
        """A new complaint is open, medium severity, with a UTC timestamp."""
        complaint = Complaint(task_description="Do something")
        assert complaint.severity is Severity.MEDIUM
        assert complaint.resolved is False
        assert complaint.resolved_at is None
        assert complaint.resolved_by is None
        assert complaint.timestamp.tzinfo is not None

    def test_string_severity_is_parsed(self):
        complaint = make_complaint(severity="high")
        assert complaint.severity is Severity.HIGH

    def test_naive_timestamp_becomes_utc(self):
        complaint = make_complaint(timestamp=datetime(2024, 1, 2, 3, 4, 5))
        assert complaint.timestamp == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_invalid_id_rejected(self):
        with pytest.raises(ValidationFailedError):
            make_complaint(id="abc")

    def test_half_resolution_rejected(self):
        """resolved_at and resolved_by must be set together."""
        with pytest.raises(ValidationFailedError):
            make_complaint(resolved_by="alice")

    def test_is_immutable(self):
        complaint = make_complaint()
        with pytest.raises(AttributeError):
            complaint.task_description = "changed"

    def test_filename(self):
        """File name is <id>-<UTC timestamp>.json."""
        ts = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
        complaint = make_complaint(timestamp=ts)
        assert complaint.filename() == f"{complaint.id}-2024-05-06_07-08-09.json"

    def test_filename_uses_utc(self):
        tz = timezone(timedelta(hours=2))
        complaint = make_complaint(timestamp=datetime(2024, 5, 6, 9, 0, 0, tzinfo=tz))
        assert complaint.filename().endswith("-2024-05-06_07-00-00.json")

    def test_summary(self):
        complaint = make_complaint(severity=Severity.HIGH)
        assert complaint.summary() == "[high] claude - Deploy the service"


class TestComplaintResolve:
    """Tests for resolution."""

    def test_resolve_returns_new_resolved_copy(self):
        complaint = make_complaint()
        resolved = complaint.resolve("alice")

        assert resolved.resolved is True
        assert resolved.resolved_by == "alice"
        assert resolved.resolved_at is not None
        assert complaint.resolved is False
        assert resolved.id == complaint.id
        assert resolved.timestamp == complaint.timestamp

    def test_resolve_is_idempotent(self):
        """Resolving twice keeps the first resolution."""
        at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        first = make_complaint().resolve("alice", at=at)
        second = first.resolve("bob")

        assert second is first
        assert second.resolved_by == "alice"
        assert second.resolved_at == at

    @pytest.mark.parametrize("name", ["", "   "])
    def test_resolve_requires_name(self, name):
        with pytest.raises(ValidationFailedError) as exc_info:
            make_complaint().resolve(name)
        assert exc_info.value.field == "resolved_by"


class TestComplaintSerialization:
    """Tests for to_dict/from_dict."""

    def test_round_trip_open(self):
        complaint = make_complaint(context_info="ctx", confused_by="docs", future_wishes="more")
        assert Complaint.from_dict(complaint.to_dict()) == complaint

    def test_round_trip_resolved(self):
        complaint = make_complaint().resolve("alice")
        restored = Complaint.from_dict(complaint.to_dict())
        assert restored == complaint
        assert restored.resolved is True

    def test_to_dict_omits_absent_resolution(self):
        data = make_complaint().to_dict()
        assert data["resolved"] is False
        assert "resolved_at" not in data
        assert "resolved_by" not in data
        assert data["severity"] == "medium"

    def test_from_dict_ignores_resolved_flag(self):
        """The derived flag is ignored; resolved_at decides."""
        data = make_complaint().to_dict()
        data["resolved"] = True
        assert Complaint.from_dict(data).resolved is False

    def test_from_dict_accepts_zulu_timestamps(self):
        data = make_complaint().to_dict()
        data["timestamp"] = "2024-01-02T03:04:05Z"
        restored = Complaint.from_dict(data)
        assert restored.timestamp == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_from_dict_null_strings_become_empty(self):
        data = make_complaint().to_dict()
        data["agent_name"] = None
        assert Complaint.from_dict(data).agent_name == ""

    @pytest.mark.parametrize("field", ["id", "task_description", "severity", "timestamp"])
    def test_from_dict_requires_fields(self, field):
        data = make_complaint().to_dict()
        del data[field]
        with pytest.raises(ValidationFailedError) as exc_info:
            Complaint.from_dict(data)
        assert exc_info.value.field == field

    def test_from_dict_rejects_bad_values(self):
        data = make_complaint().to_dict()
        data["severity"] = "extreme"
        with pytest.raises(ValidationFailedError):
            Complaint.from_dict(data)

        data = make_complaint().to_dict()
        data["timestamp"] = "yesterday"
        with pytest.raises(ValidationFailedError):
            Complaint.from_dict(data)

        data = make_complaint().to_dict()
        data["project_name"] = 42
        with pytest.raises(ValidationFailedError):
            Complaint.from_dict(data)

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(ValidationFailedError):
            Complaint.from_dict(["not", "a", "dict"])


class TestCacheStats:
    """Tests for CacheStats."""

    def test_disabled(self):
        stats = CacheStats.disabled()
        assert stats.enabled is False
        assert stats.max_size == 0
        assert stats.hit_rate == 0.0

    def test_hit_rate_percent(self):
        stats = CacheStats(hits=3, misses=1, evictions=0, current_size=2, max_size=10)
        assert stats.enabled is True
        assert stats.hit_rate == 75.0
        assert stats.to_dict()["hit_rate_percent"] == 75.0
