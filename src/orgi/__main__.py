"""Entry point for the orgi command line.

This module provides the ``orgi`` command. It handles:
- Configuration loading
- Logging setup
- Dispatch to the document helpers (init, list, add)
- Dispatch to the engine operations (gather, sync, validate)

Every orgi or filesystem error becomes a one-line ``Error: ...`` message
on stderr and exit code 1.
"""

import argparse
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

import structlog

from orgi._version import __version__
from orgi.config.schema import OrgiConfig
from orgi.models.issue import Issue, IssueState, Priority
from orgi.models.results import FindingKind
from orgi.utils.errors import OrgiError, OrgiFileNotFoundError
from orgi.utils.logging import LogEventNames, bind_context, clear_context

log = structlog.get_logger()


def setup_logging(
    debug: bool = False,
    log_format: str = "console",
    file_path: Path | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structured logging.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
        file_path: Path to log file (if file logging enabled)
        file_enabled: Whether to enable file logging
    """
    from orgi.utils.logging import LogFormat, LogLevel, configure_logging

    level = LogLevel.DEBUG if debug else LogLevel.WARNING
    fmt = LogFormat(log_format.lower()) if isinstance(log_format, str) else log_format

    configure_logging(
        level=level,
        log_format=fmt,
        file_path=file_path,
        file_enabled=file_enabled,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="orgi",
        description="orgi - org-mode issue tracking synchronized with source TODO comments",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: .orgi/config.yaml if present)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default=None,
        help="Log output format (default: from configuration)",
    )

    commands = parser.add_subparsers(dest="command", metavar="<command>")

    init = commands.add_parser("init", help="Create the org document")
    init.add_argument("file", nargs="?", type=Path, help="Org document path")

    list_cmd = commands.add_parser("list", help="List issues")
    list_cmd.add_argument("file", nargs="?", type=Path, help="Org document path")

    add = commands.add_parser("add", help="Append a new issue")
    add.add_argument("file", nargs="?", type=Path, help="Org document path")
    add.add_argument("-t", "--title", help="Issue title (prompted when omitted)")
    add.add_argument(
        "-p", "--priority", type=str.upper, choices=["A", "B", "C", "NONE"], default=None
    )
    add.add_argument(
        "-s",
        "--state",
        type=str.upper,
        choices=[state.value for state in IssueState],
        default=None,
    )
    add.add_argument("--tags", default=None, help="Comma-separated tags")
    add.add_argument("-b", "--body", default="", help="Issue body")

    gather = commands.add_parser("gather", help="Create issues from source TODO comments")
    gather.add_argument("directory", nargs="?", type=Path, default=Path("."))
    gather.add_argument("--org", type=Path, default=None, help="Org document path")
    gather.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be gathered without writing anything",
    )

    sync = commands.add_parser("sync", help="Remove TODO lines of issues marked DONE")
    sync.add_argument("--org", type=Path, default=None, help="Org document path")
    sync.add_argument("-y", "--yes", action="store_true", help="Remove without asking")

    validate = commands.add_parser("validate", help="Report drift between source and issues")
    validate.add_argument("directory", nargs="?", type=Path, default=Path("."))
    validate.add_argument("--org", type=Path, default=None, help="Org document path")

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument namespace
    """
    return build_parser().parse_args(argv)


# =============================================================================
# Commands
# =============================================================================


def cmd_init(args: argparse.Namespace, config: OrgiConfig) -> int:
    from orgi.core.org_writer import init_document

    path = args.file or config.document.path
    if init_document(path):
        print(f"Initialized orgi repository at {path}")
    else:
        print(f"orgi repository already exists at {path}")
    return 0


def format_issue(issue: Issue) -> str:
    line = f"  {issue.id}: {issue.title} ({issue.state.value}) [{issue.priority.value}]"
    if issue.tags:
        line += " :" + ":".join(issue.tags) + ":"
    return line


def cmd_list(args: argparse.Namespace, config: OrgiConfig) -> int:
    from orgi.core.org_parser import OrgParser

    path = args.file or config.document.path
    try:
        issues = OrgParser().parse_file(path)
    except OrgiFileNotFoundError as e:
        raise OrgiFileNotFoundError(f"File not found: {path}. Maybe first run orgi init?") from e

    print(f"Found {len(issues)} issues:")
    for issue in issues:
        print(format_issue(issue))
    return 0


def _prompt(label: str) -> str:
    try:
        return input(label).strip()
    except EOFError:
        return ""


def cmd_add(args: argparse.Namespace, config: OrgiConfig) -> int:
    from orgi.core.org_writer import append_issues, new_issue

    path = args.file or config.document.path
    interactive = args.title is None

    title = args.title if not interactive else _prompt("Title: ")
    if not title or not title.strip():
        print("Error: Title is required.", file=sys.stderr)
        return 1

    raw_priority = args.priority
    if raw_priority is None and interactive:
        raw_priority = _prompt("Priority (A/B/C/None): ")
    priority = Priority.parse(raw_priority or "None") or Priority.NONE

    raw_state = args.state
    if raw_state is None and interactive:
        raw_state = _prompt("State (TODO/INPROGRESS/DONE/KILL): ").upper()
    state = IssueState.from_keyword(raw_state or "TODO") or IssueState.TODO

    raw_tags = args.tags
    if raw_tags is None and interactive:
        raw_tags = _prompt("Tags (comma-separated): ")
    tags = [tag.strip() for tag in (raw_tags or "").split(",") if tag.strip()]

    issue = new_issue(title, priority=priority, state=state, tags=tags, body=args.body)
    append_issues(path, [issue])
    log.info(LogEventNames.ORG_ISSUE_ADDED, issue_id=issue.id, path=str(path))
    print(f"Added issue {issue.id}")
    return 0


def cmd_gather(args: argparse.Namespace, config: OrgiConfig) -> int:
    from orgi.core.synchronizer import IssueSynchronizer

    org_path = args.org or config.document.path
    result = IssueSynchronizer(config=config).gather_from_source(
        args.directory, org_path, dry_run=args.dry_run
    )

    header = "Dry run, nothing written" if result.dry_run else f"Gathered into {org_path}"
    print(f"{header}:")
    print(f"  Source files scanned: {result.source_files_scanned}")
    print(f"  TODOs found: {result.todos_found}")
    print(f"  Existing issues: {result.existing_issues_found}")
    print(f"  Matched issues: {result.matched_issues}")
    if result.dry_run:
        print(f"  New issues to create: {result.unmatched_todos}")
    else:
        print(f"  New issues created: {result.new_issues_created}")
        print(f"  Files modified: {result.files_modified}")

    for issue in result.new_issues:
        print(format_issue(issue))
    for failure in result.rewrite_failures:
        print(f"Warning: {failure.file_path}: {failure.message}", file=sys.stderr)
    return 0


def cmd_sync(args: argparse.Namespace, config: OrgiConfig) -> int:
    from orgi.core.synchronizer import IssueSynchronizer

    org_path = args.org or config.document.path
    result = IssueSynchronizer(config=config).sync_to_source(org_path, auto_confirm=args.yes)

    for rewrite in result.rewrite_results:
        mark = "Removed" if rewrite.changed else "Failed"
        print(f"{mark}: {rewrite.file_path}: {rewrite.message}")

    print("Sync complete:")
    print(f"  Issues checked: {result.total_issues_checked}")
    print(f"  Completed source issues: {result.completed_source_issues_found}")
    print(f"  TODOs removed: {result.todos_removed}")
    print(f"  TODOs skipped: {result.todos_skipped}")
    print(f"  Files modified: {result.files_modified}")
    return 0


def cmd_validate(args: argparse.Namespace, config: OrgiConfig) -> int:
    """Print drift findings; exit 1 when any are found."""
    from orgi.core.synchronizer import IssueSynchronizer

    org_path = args.org or config.document.path
    result = IssueSynchronizer(config=config).validate_sync(args.directory, org_path)

    if result.is_valid:
        print("Source TODOs and issues are in sync.")
        return 0

    missing_todos = result.of_kind(FindingKind.SOURCE_TODO_MISSING)
    missing_issues = result.of_kind(FindingKind.ORGI_ISSUE_MISSING)
    print(f"Found {len(result.findings)} sync problems:")
    for finding in missing_todos + missing_issues:
        print(f"  {finding.message}")
    return 1


COMMANDS: dict[str, Callable[[argparse.Namespace, OrgiConfig], int]] = {
    "init": cmd_init,
    "list": cmd_list,
    "add": cmd_add,
    "gather": cmd_gather,
    "sync": cmd_sync,
    "validate": cmd_validate,
}


def run_command(args: argparse.Namespace) -> int:
    """Load configuration and run the selected command.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        from orgi.config.loader import load_config

        config = load_config(args.config)
        log.debug(LogEventNames.CONFIG_LOADED, path=str(args.config) if args.config else None)

        # Reconfigure logging from config file settings
        from orgi.utils.logging import configure_logging

        configure_logging(
            level="DEBUG" if args.debug else config.logging.level,
            log_format=args.format or config.logging.format,
            file_path=config.logging.file.path if config.logging.file.enabled else None,
            file_enabled=config.logging.file.enabled,
        )

        command = args.command or "list"
        if args.command is None:
            args.file = None
        bind_context(command=command)
        log.debug(LogEventNames.COMMAND_STARTED)
        return COMMANDS[command](args, config)

    except (OrgiError, OSError, ValueError) as e:
        log.debug(LogEventNames.COMMAND_FAILED, error=str(e), error_type=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    finally:
        clear_context()


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Setup logging with CLI options
    setup_logging(
        debug=args.debug,
        log_format=args.format or "console",
    )

    return run_command(args)


if __name__ == "__main__":
    sys.exit(main())
