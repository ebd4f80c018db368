"""File-per-record storage for complaints.

Each complaint lives in its own JSON file named
``<id>-<YYYY-MM-DD_HH-MM-SS>.json`` inside one directory. The directory is
the source of truth; this module does no indexing and no locking.
"""

import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path

from ..context import OperationContext, check_context
from ..errors import NotFoundError, StorageIOError, ValidationFailedError
from ..models import Complaint, parse_complaint_id
from ..tracing import NoOpTracer, Tracer

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"


def creation_order(complaints: list[Complaint]) -> list[Complaint]:
    """Sort complaints oldest first, ties broken by id."""
    return sorted(complaints, key=lambda c: (c.timestamp, c.id))


class FileStore:
    """Durable JSON storage, one file per complaint."""

    def __init__(self, base_dir: Path | str, tracer: Tracer | None = None) -> None:
        """Initialize the store.

        Args:
            base_dir: Directory holding the complaint files. Created lazily
                on first write.
            tracer: Span tracer for I/O operations.
        """
        self.base_dir = Path(base_dir)
        self.tracer = tracer or NoOpTracer()

    def save(self, complaint: Complaint, ctx: OperationContext | None = None) -> Path:
        """Write a new complaint to its own file.

        Returns:
            Path of the written file.

        Raises:
            ValidationFailedError: If a file already holds this id.
            StorageIOError: If the directory or file cannot be written.
        """
        check_context(ctx, "save")
        with self.tracer.start("file_store.save", complaint_id=complaint.id):
            candidates = self._candidates(self._record_files(), complaint.id)
            existing = self._find_in(candidates, complaint.id)
            if existing is not None:
                raise ValidationFailedError(
                    "id", f"complaint {complaint.id} already exists in {existing[0].name}"
                )
            path = self.base_dir / complaint.filename()
            self._write_json(path, complaint, operation="save")
            logger.debug("Saved complaint %s to %s", complaint.id, path)
            return path

    def update(self, complaint: Complaint, ctx: OperationContext | None = None) -> Complaint:
        """Rewrite an existing complaint's file in place.

        The filename is never changed and the creation timestamp already on
        disk wins over whatever the caller passed.

        Returns:
            The complaint as written.

        Raises:
            NotFoundError: If no file holds this complaint.
            StorageIOError: If the file cannot be read or written.
        """
        check_context(ctx, "update")
        with self.tracer.start("file_store.update", complaint_id=complaint.id):
            path, existing = self._locate(complaint.id)
            if complaint.timestamp != existing.timestamp:
                complaint = replace(complaint, timestamp=existing.timestamp)
            self._write_json(path, complaint, operation="update")
            logger.debug("Updated complaint %s in %s", complaint.id, path)
            return complaint

    def load_all(self, ctx: OperationContext | None = None) -> list[Complaint]:
        """Load every parseable complaint in creation order.

        Malformed files are skipped with a warning. A missing directory
        yields an empty list.

        Raises:
            StorageIOError: If an existing directory cannot be listed.
        """
        check_context(ctx, "load_all")
        with self.tracer.start("file_store.load_all"):
            complaints = [c for _, c in self._iter_records()]
            return creation_order(complaints)

    def find_by_id(self, complaint_id: str, ctx: OperationContext | None = None) -> Complaint:
        """Find one complaint by id.

        Raises:
            NotFoundError: If no file holds this complaint.
            ValidationFailedError: If the id is not a valid complaint id.
        """
        check_context(ctx, "find_by_id")
        with self.tracer.start("file_store.find_by_id", complaint_id=complaint_id):
            _, complaint = self._locate(parse_complaint_id(complaint_id))
            return complaint

    def path_for(self, complaint_id: str, ctx: OperationContext | None = None) -> Path:
        """Return the file currently holding a complaint."""
        check_context(ctx, "path_for")
        path, _ = self._locate(parse_complaint_id(complaint_id))
        return path

    def _record_files(self) -> list[Path]:
        """List record files, sorted by name. Missing directory means none."""
        try:
            entries = list(self.base_dir.iterdir())
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Failed to read complaints directory %s: %s", self.base_dir, e)
            raise StorageIOError("list", self.base_dir, str(e)) from e
        return sorted(p for p in entries if p.suffix == RECORD_SUFFIX and p.is_file())

    def _read(self, path: Path) -> Complaint:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return Complaint.from_dict(data)

    def _iter_records(self, files: list[Path] | None = None):
        """Yield (path, complaint) for every file that parses."""
        for path in self._record_files() if files is None else files:
            try:
                yield path, self._read(path)
            # ValueError covers JSONDecodeError and UnicodeDecodeError;
            # RecursionError comes from pathologically nested JSON.
            except (
                OSError,
                ValueError,
                TypeError,
                RecursionError,
                ValidationFailedError,
            ) as e:
                logger.warning("Skipping unreadable complaint file %s: %s", path, e)

    @staticmethod
    def _candidates(files: list[Path], complaint_id: str) -> list[Path]:
        return [p for p in files if p.name.startswith(f"{complaint_id}-")]

    def _find_in(self, files: list[Path], complaint_id: str) -> tuple[Path, Complaint] | None:
        for path, complaint in self._iter_records(files):
            if complaint.id == complaint_id:
                return path, complaint
        return None

    def _locate(self, complaint_id: str) -> tuple[Path, Complaint]:
        """Find the file and record for an id.

        Files named after the id are tried first; if none of them holds the
        record, every file is scanned.
        """
        files = self._record_files()
        for records in (self._candidates(files, complaint_id), files):
            found = self._find_in(records, complaint_id)
            if found is not None:
                return found
        raise NotFoundError(complaint_id)

    def _write_json(self, path: Path, complaint: Complaint, operation: str) -> None:
        """Atomically write a complaint: temp file in the same dir, then rename."""
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Failed to create complaints directory %s: %s", self.base_dir, e)
            raise StorageIOError(operation, self.base_dir, str(e)) from e

        payload = json.dumps(complaint.to_dict(), indent=2, ensure_ascii=False)
        tmp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.base_dir,
                prefix=f".{complaint.id}-",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            logger.error("Failed to write complaint file %s: %s", path, e)
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
            raise StorageIOError(operation, path, str(e)) from e
