"""Tests for span tracers."""

import json
import logging
from pathlib import Path

import pytest

from complaints_store.tracing import (
    JSONLTracer,
    LoggingTracer,
    NoOpTracer,
    RecordingTracer,
    SpanRecord,
)


class TestRecordingTracer:
    """Tests for the in-memory tracer."""

    def test_records_finished_span(self):
        tracer = RecordingTracer()
        with tracer.start("find_by_id", complaint_id="abc"):
            pass

        assert tracer.names == ["find_by_id"]
        record = tracer.records[0]
        assert record.attributes == {"complaint_id": "abc"}
        assert record.duration_ms >= 0
        assert record.error is None

    def test_end_is_idempotent(self):
        tracer = RecordingTracer()
        span = tracer.start("save")
        span.end()
        span.end()
        assert len(tracer.records) == 1

    def test_records_error_and_reraises(self):
        tracer = RecordingTracer()
        with pytest.raises(RuntimeError):
            with tracer.start("save"):
                raise RuntimeError("boom")
        assert tracer.records[0].error == "RuntimeError: boom"


class TestNoOpTracer:
    def test_span_is_usable(self):
        tracer = NoOpTracer()
        with tracer.start("anything", key="value") as span:
            span.end()


class TestLoggingTracer:
    def test_logs_span_lifecycle(self, caplog):
        tracer = LoggingTracer()
        with caplog.at_level(logging.DEBUG, logger="complaints_store.tracing"):
            with tracer.start("load_all"):
                pass
        assert "span start: load_all" in caplog.text
        assert "span end: load_all" in caplog.text


class TestJSONLTracer:
    """Tests for the JSONL span file."""

    def test_writes_one_line_per_span(self, tmp_path: Path):
        path = tmp_path / "traces" / "spans.jsonl"
        tracer = JSONLTracer(path)
        with tracer.start("save", complaint_id="a"):
            pass
        with tracer.start("update"):
            pass

        lines = path.read_text().strip().split("\n")
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["name"] == "save"
        assert first["attributes"] == {"complaint_id": "a"}
        assert "error" not in first
        assert json.loads(lines[1])["name"] == "update"

    def test_rotates_when_file_too_large(self, tmp_path: Path):
        path = tmp_path / "spans.jsonl"
        path.write_text("x" * 200)
        tracer = JSONLTracer(path, max_size_mb=100 / (1024 * 1024))

        with tracer.start("save"):
            pass

        rotated = list(tmp_path.glob("spans_*.jsonl"))
        assert len(rotated) == 1
        assert rotated[0].read_text() == "x" * 200
        assert json.loads(path.read_text())["name"] == "save"


class TestSpanRecord:
    def test_to_dict_drops_empty_values(self):
        record = SpanRecord(name="x", started_at="now", duration_ms=1.0)
        assert record.to_dict() == {"name": "x", "started_at": "now", "duration_ms": 1.0}
