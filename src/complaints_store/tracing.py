"""Span tracing capability injected into storage components.

A tracer has one operation, ``start(name) -> Span``, and a span has one,
``end()``. Spans also work as context managers so callers can write::

    with tracer.start("find_by_id"):
        ...
"""

import json
import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Span(Protocol):
    def end(self) -> None: ...

    def __enter__(self) -> "Span": ...

    def __exit__(self, *exc: object) -> None: ...


class Tracer(Protocol):
    def start(self, name: str, **attributes: Any) -> Span: ...


@dataclass
class SpanRecord:
    """A finished span."""

    name: str
    started_at: str
    duration_ms: float
    error: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding empty values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {}}


class _TimedSpan:
    """Span that measures its own duration and reports to a sink once."""

    def __init__(self, name: str, sink: "_SpanSink", attributes: dict[str, Any]) -> None:
        self.name = name
        self.attributes = attributes
        self._sink = sink
        self._started_at = datetime.now(timezone.utc).isoformat()
        self._start = time.monotonic()
        self._error: str | None = None
        self._ended = False

    def end(self) -> None:
        if self._ended:
            return
        self._ended = True
        record = SpanRecord(
            name=self.name,
            started_at=self._started_at,
            duration_ms=(time.monotonic() - self._start) * 1000,
            error=self._error,
            attributes=self.attributes,
        )
        self._sink.finish(record)

    def __enter__(self) -> "_TimedSpan":
        return self

    def __exit__(self, exc_type: type | None, exc: BaseException | None, tb: object) -> None:
        if exc is not None:
            self._error = f"{type(exc).__name__}: {exc}"
        self.end()


class _SpanSink(Protocol):
    def finish(self, record: SpanRecord) -> None: ...


class _NoOpSpan:
    def end(self) -> None:
        pass

    def __enter__(self) -> "_NoOpSpan":
        return self

    def __exit__(self, *exc: object) -> None:
        pass


class NoOpTracer:
    """Tracer that records nothing."""

    _span = _NoOpSpan()

    def start(self, name: str, **attributes: Any) -> Span:
        return self._span


class LoggingTracer:
    """Tracer that reports finished spans to a stdlib logger at DEBUG."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def start(self, name: str, **attributes: Any) -> Span:
        self.log.debug("span start: %s %s", name, attributes or "")
        return _TimedSpan(name, self, attributes)

    def finish(self, record: SpanRecord) -> None:
        if record.error:
            self.log.debug(
                "span end: %s (%.2f ms) error=%s", record.name, record.duration_ms, record.error
            )
        else:
            self.log.debug("span end: %s (%.2f ms)", record.name, record.duration_ms)


class RecordingTracer:
    """Tracer that keeps finished spans in memory."""

    def __init__(self) -> None:
        self.records: list[SpanRecord] = []
        self._lock = threading.Lock()

    def start(self, name: str, **attributes: Any) -> Span:
        return _TimedSpan(name, self, attributes)

    def finish(self, record: SpanRecord) -> None:
        with self._lock:
            self.records.append(record)

    @property
    def names(self) -> list[str]:
        with self._lock:
            return [r.name for r in self.records]


class JSONLTracer:
    """Tracer that appends finished spans to a JSONL file.

    The file is rotated to ``<stem>_<timestamp>.jsonl`` once it grows past
    ``max_size_mb``.
    """

    def __init__(self, path: str | Path, max_size_mb: float = 10.0) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self._lock = threading.Lock()

    def start(self, name: str, **attributes: Any) -> Span:
        return _TimedSpan(name, self, attributes)

    def _rotate_if_needed(self) -> None:
        """Rotate the span file if it exceeds max size."""
        if not self.path.exists():
            return

        if self.path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
            rotated_name = f"{self.path.stem}_{timestamp}.jsonl"
            self.path.rename(self.path.parent / rotated_name)

    def finish(self, record: SpanRecord) -> None:
        line = json.dumps(record.to_dict(), default=str) + "\n"
        with self._lock:
            try:
                self._rotate_if_needed()
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line)
            except OSError as e:
                # Tracing must never break the traced operation.
                logger.warning("Cannot write span to %s: %s", self.path, e)
