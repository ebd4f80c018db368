"""Export complaints as human-readable documentation files.

Markdown exports carry the complaint metadata as YAML front matter so the
files stay machine-readable; text exports are plain reports.
"""

import logging
import re
from datetime import timezone
from pathlib import Path

import frontmatter

from .errors import InvalidConfigurationError, StorageIOError
from .models import FILENAME_TIMESTAMP_FORMAT, Complaint
from .tracing import NoOpTracer, Tracer

logger = logging.getLogger(__name__)

DOCS_FORMATS = ("markdown", "text")

EXTENSIONS = {
    "markdown": ".md",
    "text": ".txt",
}

MAX_SESSION_LENGTH = 50

# Replacements applied in order; anything mapped to "" is dropped.
_SESSION_REPLACEMENTS = (
    (" ", "_"),
    ("/", "_"),
    ("..", "_"),
    (":", "-"),
    ('"', ""),
    ("'", ""),
    ("\\", "_"),
    ("<", ""),
    (">", ""),
    ("|", ""),
    ("?", ""),
    ("*", ""),
)

SECTIONS = (
    ("Task Description", "task_description"),
    ("Context Information", "context_info"),
    ("Missing Information", "missing_info"),
    ("What Confused Me", "confused_by"),
    ("Future Wishes", "future_wishes"),
)


def sanitize_session_name(session_name: str) -> str:
    """Make a session name safe to embed in a file name."""
    name = session_name
    for old, new in _SESSION_REPLACEMENTS:
        name = name.replace(old, new)
    name = re.sub(r"_{2,}", "_", name).strip("_")
    name = name[:MAX_SESSION_LENGTH]
    return name or "no-session"


def _format_time(value) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class DocsExporter:
    """Writes one documentation file per complaint.

    Exporting again overwrites the previous file for the same complaint, so
    a resolved complaint can be re-exported to refresh its status.
    """

    def __init__(
        self,
        docs_dir: Path | str,
        format: str = "markdown",
        enabled: bool = True,
        tracer: Tracer | None = None,
    ) -> None:
        if format not in DOCS_FORMATS:
            raise InvalidConfigurationError(
                f"invalid docs format '{format}' (expected one of: {', '.join(DOCS_FORMATS)})"
            )
        self.docs_dir = Path(docs_dir)
        self.format = format
        self.enabled = enabled
        self.tracer = tracer or NoOpTracer()

    def filename_for(self, complaint: Complaint) -> str:
        """``<YYYY-MM-DD_HH-MM-SS>-<session>.<ext>``"""
        stamp = complaint.timestamp.astimezone(timezone.utc).strftime(FILENAME_TIMESTAMP_FORMAT)
        session = sanitize_session_name(complaint.session_name)
        return f"{stamp}-{session}{EXTENSIONS[self.format]}"

    def path_for(self, complaint: Complaint) -> Path:
        return self.docs_dir / self.filename_for(complaint)

    def render(self, complaint: Complaint) -> str:
        if self.format == "markdown":
            return self._render_markdown(complaint)
        return self._render_text(complaint)

    def export(self, complaint: Complaint) -> Path | None:
        """Write the documentation file.

        Returns:
            Path written, or None when export is disabled.

        Raises:
            StorageIOError: If the file cannot be written.
        """
        if not self.enabled:
            logger.debug("Documentation export disabled")
            return None

        with self.tracer.start("docs.export", complaint_id=complaint.id, format=self.format):
            path = self.path_for(complaint)
            content = self.render(complaint)
            try:
                self.docs_dir.mkdir(parents=True, exist_ok=True)
                path.write_text(content, encoding="utf-8")
            except OSError as e:
                logger.error("Failed to export complaint %s to %s: %s", complaint.id, path, e)
                raise StorageIOError("export", path, str(e)) from e

            logger.info("Complaint %s exported to %s (%s)", complaint.id, path, self.format)
            return path

    def _metadata(self, complaint: Complaint) -> dict:
        meta = {
            "id": complaint.id,
            "agent": complaint.agent_name,
            "session": complaint.session_name,
            "project": complaint.project_name,
            "severity": complaint.severity.value,
            "status": "resolved" if complaint.resolved else "open",
            "created": complaint.timestamp.isoformat(),
        }
        if complaint.resolved:
            meta["resolved_by"] = complaint.resolved_by
            meta["resolved_at"] = complaint.resolved_at.isoformat()
        return meta

    def _render_markdown(self, complaint: Complaint) -> str:
        title = complaint.agent_name or "Agent"
        lines = [
            f"# {title} Complaint",
            "",
            f"**Created:** {_format_time(complaint.timestamp)}  ",
            f"**Session:** {complaint.session_name}  ",
            f"**Severity:** {complaint.severity.value}  ",
            f"**Project:** {complaint.project_name}  ",
            f"**Status:** {'Resolved' if complaint.resolved else 'Open'}  ",
        ]
        if complaint.resolved:
            lines.append(f"**Resolved By:** {complaint.resolved_by}  ")
            lines.append(f"**Resolved At:** {_format_time(complaint.resolved_at)}  ")
        for heading, attr in SECTIONS:
            lines.extend(["", "---", "", f"## {heading}", "", getattr(complaint, attr)])

        post = frontmatter.Post("\n".join(lines), **self._metadata(complaint))
        return frontmatter.dumps(post) + "\n"

    def _render_text(self, complaint: Complaint) -> str:
        title = f"{complaint.agent_name or 'Agent'} Complaint"
        lines = [
            title,
            "=" * len(title),
            "",
            f"ID:       {complaint.id}",
            f"Created:  {_format_time(complaint.timestamp)}",
            f"Session:  {complaint.session_name}",
            f"Severity: {complaint.severity.value}",
            f"Project:  {complaint.project_name}",
            f"Status:   {'Resolved' if complaint.resolved else 'Open'}",
        ]
        if complaint.resolved:
            lines.append(f"Resolved By: {complaint.resolved_by}")
            lines.append(f"Resolved At: {_format_time(complaint.resolved_at)}")
        for heading, attr in SECTIONS:
            lines.extend(["", heading.upper(), "-" * len(heading), getattr(complaint, attr)])
        return "\n".join(lines) + "\n"
