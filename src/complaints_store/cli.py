"""Admin CLI for the complaint store.

Provides subcommands for filing, listing, searching, resolving and
exporting complaints, plus cache statistics.
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import StorageConfig, load_config
from .docs import DocsExporter
from .errors import ComplaintStoreError
from .models import Complaint, Severity
from .repo import Repository, create_repository
from .repo.query import all_of, by_agent, by_project, by_session, by_severity, paginate, unresolved
from .tracing import JSONLTracer, LoggingTracer, NoOpTracer, Tracer

logger = logging.getLogger(__name__)


def _load(args: argparse.Namespace) -> StorageConfig:
    """Load config from disk and apply command-line overrides."""
    config = load_config(args.config)
    if args.base_dir is not None:
        config.base_dir = args.base_dir.expanduser()
    if args.no_cache:
        config.cache_enabled = False
    return config


def _tracer(config: StorageConfig) -> Tracer:
    if config.trace_file is not None:
        return JSONLTracer(config.trace_file)
    if config.log_level == "DEBUG":
        return LoggingTracer()
    return NoOpTracer()


def _get_repository(config: StorageConfig, tracer: Tracer) -> Repository:
    return create_repository(config, tracer=tracer)


def _format_status(complaint: Complaint) -> str:
    """Format resolution status for display."""
    if complaint.resolved:
        return "\033[32mresolved\033[0m"
    return "\033[33mopen\033[0m"


def _print_table(complaints: list[Complaint]) -> None:
    print(f"\n{'ID':<36}  {'Severity':<9} {'Status':<17} {'Agent':<16} Task")
    print("-" * 100)
    for c in complaints:
        task = c.task_description
        if len(task) > 30:
            task = task[:27] + "..."
        agent = c.agent_name or "-"
        print(f"{c.id:<36}  {c.severity.value:<9} {_format_status(c):<17} {agent:<16} {task}")
    print(f"\nTotal: {len(complaints)} complaint(s)")


def cmd_file(args: argparse.Namespace, config: StorageConfig, tracer: Tracer) -> int:
    """File a new complaint."""
    complaint = Complaint(
        task_description=args.task,
        severity=Severity.parse(args.severity),
        agent_name=args.agent,
        session_name=args.session,
        project_name=args.project,
        context_info=args.context,
        missing_info=args.missing,
        confused_by=args.confused,
        future_wishes=args.wishes,
    )
    repo = _get_repository(config, tracer)
    repo.save(complaint)
    print(f"Filed complaint: {complaint.id}")
    print(f"  File: {repo.get_file_path(complaint.id)}")

    exporter = DocsExporter(
        config.docs_dir, config.docs_format, enabled=config.docs_enabled, tracer=tracer
    )
    docs_path = exporter.export(complaint)
    if docs_path is not None:
        print(f"  Docs: {docs_path}")
    return 0


def cmd_show(args: argparse.Namespace, config: StorageConfig, tracer: Tracer) -> int:
    """Show one complaint in full."""
    repo = _get_repository(config, tracer)
    c = repo.find_by_id(args.id)

    print(f"\nComplaint: {c.id}")
    print("-" * 40)
    print(f"Task: {c.task_description}")
    print(f"Severity: {c.severity.value}")
    print(f"Status: {_format_status(c)}")
    print(f"Filed: {c.timestamp.isoformat()}")
    for label, value in (
        ("Agent", c.agent_name),
        ("Session", c.session_name),
        ("Project", c.project_name),
        ("Context", c.context_info),
        ("Missing", c.missing_info),
        ("Confused by", c.confused_by),
        ("Future wishes", c.future_wishes),
    ):
        if value:
            print(f"{label}: {value}")
    if c.resolved:
        print(f"Resolved by: {c.resolved_by} at {c.resolved_at.isoformat()}")
    print(f"Path: {repo.get_file_path(c.id)}")
    return 0


def cmd_list(args: argparse.Namespace, config: StorageConfig, tracer: Tracer) -> int:
    """List complaints, optionally filtered."""
    repo = _get_repository(config, tracer)

    predicates = []
    if args.project:
        predicates.append(by_project(args.project))
    if args.session:
        predicates.append(by_session(args.session))
    if args.agent:
        predicates.append(by_agent(args.agent))
    if args.severity:
        predicates.append(by_severity(Severity.parse(args.severity)))
    if args.unresolved:
        predicates.append(unresolved())

    if predicates:
        complaints = paginate(repo.where(all_of(*predicates)), args.limit, args.offset)
    else:
        complaints = repo.find_all(args.limit, args.offset)

    if not complaints:
        print("No complaints found.")
        return 0
    _print_table(complaints)
    return 0


def cmd_search(args: argparse.Namespace, config: StorageConfig, tracer: Tracer) -> int:
    """Search complaint text."""
    repo = _get_repository(config, tracer)
    complaints = repo.search(args.query, args.limit)
    if not complaints:
        print(f"No complaints match '{args.query}'.")
        return 0
    _print_table(complaints)
    return 0


def cmd_resolve(args: argparse.Namespace, config: StorageConfig, tracer: Tracer) -> int:
    """Resolve a complaint."""
    repo = _get_repository(config, tracer)
    before = repo.find_by_id(args.id)
    if before.resolved:
        print(f"Complaint {before.id} is already resolved by {before.resolved_by}.")
        return 0

    resolved = repo.resolve(args.id, args.by)
    print(f"Resolved complaint: {resolved.id} (by {resolved.resolved_by})")

    exporter = DocsExporter(
        config.docs_dir, config.docs_format, enabled=config.docs_enabled, tracer=tracer
    )
    exporter.export(resolved)
    return 0


def cmd_stats(args: argparse.Namespace, config: StorageConfig, tracer: Tracer) -> int:
    """Show cache statistics."""
    repo = _get_repository(config, tracer)
    stats = repo.get_cache_stats()

    if not stats.enabled:
        print("Cache: disabled")
        return 0

    print("\nCache statistics")
    print("-" * 40)
    print(f"Policy: {config.cache_eviction.value}")
    print(f"Size: {stats.current_size}/{stats.max_size}")
    print(f"Hits: {stats.hits}")
    print(f"Misses: {stats.misses}")
    print(f"Evictions: {stats.evictions}")
    print(f"Hit rate: {stats.hit_rate:.1f}%")
    return 0


def cmd_export(args: argparse.Namespace, config: StorageConfig, tracer: Tracer) -> int:
    """Export complaints as documentation."""
    if args.id is None and not args.all:
        print("Error: Pass a complaint id or --all.")
        return 1

    repo = _get_repository(config, tracer)
    exporter = DocsExporter(
        args.docs_dir or config.docs_dir,
        args.format or config.docs_format,
        tracer=tracer,
    )
    complaints = repo.find_all() if args.all else [repo.find_by_id(args.id)]

    for complaint in complaints:
        path = exporter.export(complaint)
        print(f"Exported {complaint.id} -> {path}")
    print(f"\nTotal: {len(complaints)} exported")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the complaints CLI."""
    parser = argparse.ArgumentParser(
        prog="complaints-store",
        description="Manage filed complaints",
    )
    parser.add_argument("--config", type=Path, help="Path to config.json")
    parser.add_argument("--base-dir", type=Path, help="Override the complaints directory")
    parser.add_argument("--no-cache", action="store_true", help="Bypass the in-memory cache")

    subparsers = parser.add_subparsers(dest="command", help="Sub-command help")
    severities = [s.value for s in Severity]

    # file command
    file_parser = subparsers.add_parser("file", help="File a new complaint")
    file_parser.add_argument("task", help="What the agent was trying to do")
    file_parser.add_argument("-s", "--severity", default="medium", choices=severities)
    file_parser.add_argument("--agent", default="", help="Agent name")
    file_parser.add_argument("--session", default="", help="Session name")
    file_parser.add_argument("--project", default="", help="Project name")
    file_parser.add_argument("--context", default="", help="Context information")
    file_parser.add_argument("--missing", default="", help="Missing information")
    file_parser.add_argument("--confused", default="", help="What was confusing")
    file_parser.add_argument("--wishes", default="", help="What would have helped")

    # show command
    show_parser = subparsers.add_parser("show", help="Show one complaint")
    show_parser.add_argument("id", help="Complaint id")

    # list command
    list_parser = subparsers.add_parser("list", help="List complaints")
    list_parser.add_argument("-n", "--limit", type=int, default=None)
    list_parser.add_argument("--offset", type=int, default=0)
    list_parser.add_argument("--project")
    list_parser.add_argument("--session")
    list_parser.add_argument("--agent")
    list_parser.add_argument("--severity", choices=severities)
    list_parser.add_argument(
        "-u", "--unresolved",
        action="store_true",
        help="Only open complaints",
    )

    # search command
    search_parser = subparsers.add_parser("search", help="Search complaint text")
    search_parser.add_argument("query", help="Case-insensitive substring")
    search_parser.add_argument("-n", "--limit", type=int, default=None)

    # resolve command
    resolve_parser = subparsers.add_parser("resolve", help="Resolve a complaint")
    resolve_parser.add_argument("id", help="Complaint id")
    resolve_parser.add_argument("--by", required=True, help="Who resolved it")

    # stats command
    subparsers.add_parser("stats", help="Show cache statistics")

    # export command
    export_parser = subparsers.add_parser("export", help="Export complaints as documentation")
    export_parser.add_argument("id", nargs="?", help="Complaint id")
    export_parser.add_argument("-a", "--all", action="store_true", help="Export every complaint")
    export_parser.add_argument("--docs-dir", type=Path, help="Output directory")
    export_parser.add_argument("--format", choices=["markdown", "text"])

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Run the CLI with given arguments.

    Args:
        argv: Command-line arguments. Uses sys.argv[1:] if None.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "file": cmd_file,
        "show": cmd_show,
        "list": cmd_list,
        "search": cmd_search,
        "resolve": cmd_resolve,
        "stats": cmd_stats,
        "export": cmd_export,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        config = _load(args)
        logging.basicConfig(
            level=config.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        return handler(args, config, _tracer(config))
    except ComplaintStoreError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(run_cli())
