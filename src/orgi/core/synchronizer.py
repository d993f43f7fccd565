"""Reconciliation between source TODO comments and the org document.

The synchronizer runs the three engine operations:
- gather: new source TODOs become issues and get an identity marker
- sync: issues marked DONE have their TODO line removed from source
- validate: report drift between the two without changing anything

Source TODOs and issues are matched by ``(relative path, line number)``.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable, Iterable
from datetime import datetime
from enum import Enum
from pathlib import Path

import structlog

from orgi.config.schema import OrgiConfig
from orgi.core.file_discovery import SourceFileDiscovery
from orgi.core.org_parser import OrgParser
from orgi.core.org_writer import append_issues
from orgi.core.source_rewriter import SourceRewriter
from orgi.core.timestamp import format_timestamp
from orgi.core.todo_extractor import SourceTodoExtractor
from orgi.models.issue import (
    SOURCE_COLUMN,
    SOURCE_FILE,
    SOURCE_LINE,
    SOURCE_UUID,
    Issue,
    IssueState,
    Priority,
    PropertyMap,
)
from orgi.models.results import (
    FindingKind,
    GatherResult,
    RewriteOutcome,
    RewriteResult,
    SyncResult,
    ValidationFinding,
    ValidationResult,
)
from orgi.models.source_reference import SourceReference
from orgi.utils.errors import DirectoryNotFoundError, OrgiFileNotFoundError, OrgParseError
from orgi.utils.logging import LogEventNames

log = structlog.get_logger()

DEFAULT_TITLE_MAX_LENGTH = 50

PRIORITY_BY_KEYWORD = {
    "FIXME": Priority.A,
    "BUG": Priority.A,
    "TODO": Priority.B,
    "HACK": Priority.C,
}


class ConfirmChoice(Enum):
    """Answer to "remove this TODO line?"."""

    YES = "y"
    NO = "n"
    ALL = "a"


ConfirmCallback = Callable[[Issue, Path], ConfirmChoice]


def prompt_confirm(issue: Issue, path: Path) -> ConfirmChoice:
    """Ask on stdin whether to remove the TODO line of ``issue``."""
    print(f"\nRemove TODO from {issue.source_file}:{issue.source_line}?")
    print(f"Issue: {issue.title}")
    try:
        answer = input("Remove? (y/N/a=remove all): ")
    except EOFError:
        return ConfirmChoice.NO

    answer = answer.strip().lower()
    if answer == "a":
        return ConfirmChoice.ALL
    if answer == "y":
        return ConfirmChoice.YES
    return ConfirmChoice.NO


def generate_token() -> str:
    """Return 8 random hex digits for issue ids."""
    return secrets.token_hex(4)


def _normalize_path(path: str) -> str:
    return path.replace("\\", "/").casefold()


def find_matching_issue(reference: SourceReference, issues: Iterable[Issue]) -> Issue | None:
    """Return the first source-linked issue pointing at the reference's file and line."""
    wanted = _normalize_path(reference.relative_path)
    for issue in issues:
        if (
            issue.has_source_reference
            and _normalize_path(issue.source_file or "") == wanted
            and issue.source_line == reference.line_number
        ):
            return issue
    return None


def create_issue_from_todo(
    reference: SourceReference,
    token: str | None = None,
    now: datetime | None = None,
    title_max_length: int = DEFAULT_TITLE_MAX_LENGTH,
) -> Issue:
    """Build a gathered issue for a source TODO.

    Args:
        reference: The TODO occurrence
        token: Random part of the id; generated when omitted
        now: Creation time; defaults to the current time
        title_max_length: Longest title; longer text is cut so that it fits
            together with a trailing ``...``

    Returns:
        Issue with id ``gather-YYYYMMDD-HHMMSS-<token>`` and a full source
        reference in its properties
    """
    now = now or datetime.now()
    token = token or generate_token()

    title = reference.todo_text
    if len(title) > title_max_length:
        title = title[: title_max_length - 3] + "..."

    priority = PRIORITY_BY_KEYWORD.get(reference.todo_keyword.upper(), Priority.NONE)
    tags = ["gathered", reference.comment_style.lower()]
    issue_id = f"gather-{now:%Y%m%d-%H%M%S}-{token}"

    properties = PropertyMap()
    properties["ID"] = issue_id
    properties["TITLE"] = title
    properties["CREATED"] = format_timestamp(now)
    properties[SOURCE_FILE] = reference.relative_path
    properties[SOURCE_LINE] = str(reference.line_number)
    properties[SOURCE_COLUMN] = str(reference.column_number)
    properties[SOURCE_UUID] = reference.content_hash
    properties["PRIORITY"] = priority.value
    properties["TAGS"] = ":".join(tags)

    return Issue(
        id=issue_id,
        title=title,
        description=reference.full_todo_text,
        created_at=now.replace(second=0, microsecond=0),
        state=IssueState.TODO,
        priority=priority,
        tags=tags,
        properties=properties,
    )


class IssueSynchronizer:
    """Keeps the org document and source TODO comments in step.

    Example:
        synchronizer = IssueSynchronizer()
        result = synchronizer.gather_from_source("src", ".orgi/orgi.org")
        print(f"{result.new_issues_created} new issues")
    """

    def __init__(
        self,
        discovery: SourceFileDiscovery | None = None,
        extractor: SourceTodoExtractor | None = None,
        rewriter: SourceRewriter | None = None,
        parser: OrgParser | None = None,
        config: OrgiConfig | None = None,
        confirm: ConfirmCallback | None = None,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            discovery: File discovery; default instance when omitted
            extractor: TODO extractor; default instance when omitted
            rewriter: Source rewriter; built from ``config.rewriter`` when omitted
            parser: Org parser; default instance when omitted
            config: Settings for discovery filters, rewriter and titles
            confirm: Asked before each removal in sync; defaults to a stdin prompt
        """
        self.config = config or OrgiConfig()
        self.discovery = discovery or SourceFileDiscovery()
        self.extractor = extractor or SourceTodoExtractor()
        self.rewriter = rewriter or SourceRewriter(
            backup_dir=self.config.rewriter.backup_dir,
            max_backups=self.config.rewriter.max_backups,
        )
        self.parser = parser or OrgParser()
        self.confirm = confirm or prompt_confirm

    # -------------------------------------------------------------------------
    # Gather
    # -------------------------------------------------------------------------

    def gather_from_source(
        self,
        source_dir: Path | str,
        org_path: Path | str | None = None,
        dry_run: bool = False,
    ) -> GatherResult:
        """Turn unmatched source TODOs into issues.

        Unless ``dry_run``, new issues are appended to the document and each
        originating line gets a ``[orgi:<id>]`` marker. Running gather twice
        on an unchanged tree creates nothing the second time.

        Raises:
            DirectoryNotFoundError: If ``source_dir`` does not exist
        """
        source_dir = Path(source_dir)
        org_path = Path(org_path) if org_path else self.config.document.path
        if not source_dir.is_dir():
            raise DirectoryNotFoundError(f"Source directory not found: {source_dir}")

        log.info(LogEventNames.GATHER_STARTED, source_dir=str(source_dir), dry_run=dry_run)

        files = self._discover(source_dir)
        references = self.extractor.extract_many(files)
        existing = self.load_existing_issues(org_path)

        unmatched = [ref for ref in references if find_matching_issue(ref, existing) is None]

        result = GatherResult(
            source_files_scanned=len(files),
            todos_found=len(references),
            existing_issues_found=len(existing),
            matched_issues=len(references) - len(unmatched),
            unmatched_todos=len(unmatched),
            dry_run=dry_run,
        )

        if dry_run or not unmatched:
            log.info(LogEventNames.GATHER_COMPLETED, **self._gather_summary(result))
            return result

        now = datetime.now()
        pairs = [
            (
                ref,
                create_issue_from_todo(
                    ref, generate_token(), now, self.config.gather.title_max_length
                ),
            )
            for ref in unmatched
        ]

        # Document first, so a marker never points at an issue that was not written
        append_issues(org_path, [issue for _, issue in pairs])
        result.new_issues = [issue for _, issue in pairs]
        result.new_issues_created = len(pairs)

        for ref, issue in pairs:
            result.rewrite_results.append(self._insert_identity(ref, issue))

        result.files_modified = len(
            {rewrite.file_path for rewrite in result.rewrite_results if rewrite.changed}
        )
        log.info(LogEventNames.GATHER_COMPLETED, **self._gather_summary(result))
        return result

    def load_existing_issues(self, org_path: Path) -> list[Issue]:
        """Parse the document, treating a missing or broken one as empty."""
        if not org_path.is_file():
            log.debug("org_document_missing", path=str(org_path))
            return []
        try:
            return self.parser.parse_file(org_path)
        except OrgParseError as e:
            log.warning(
                LogEventNames.ORG_PARSE_FAILED,
                path=str(org_path),
                error=str(e),
                line_number=e.line_number,
            )
            return []

    def _insert_identity(self, reference: SourceReference, issue: Issue) -> RewriteResult:
        try:
            return self.rewriter.insert_identity(reference.file_path, reference, issue.id)
        except OrgiFileNotFoundError as e:
            log.warning(LogEventNames.REWRITE_FAILED, path=str(reference.file_path), error=str(e))
            return RewriteResult(reference.file_path, RewriteOutcome.FAILED, str(e))

    # -------------------------------------------------------------------------
    # Sync
    # -------------------------------------------------------------------------

    def sync_to_source(
        self, org_path: Path | str | None = None, auto_confirm: bool = False
    ) -> SyncResult:
        """Remove the source TODO lines of issues marked DONE.

        Removals are applied per file from the bottom up, so removing one
        line never shifts another target. The document itself is left as is.

        Raises:
            OrgiFileNotFoundError: If the document does not exist
            OrgParseError: If the document is malformed
        """
        org_path = Path(org_path) if org_path else self.config.document.path
        if not org_path.is_file():
            raise OrgiFileNotFoundError(f"Org file not found: {org_path}")

        log.info(LogEventNames.SYNC_STARTED, path=str(org_path), auto_confirm=auto_confirm)

        issues = self.parser.parse_file(org_path)
        completed = [
            issue
            for issue in issues
            if issue.state is IssueState.DONE and issue.has_source_reference
        ]
        result = SyncResult(
            total_issues_checked=len(issues),
            completed_source_issues_found=len(completed),
        )

        accepted: dict[Path, dict[int, Issue]] = {}
        confirm_all = auto_confirm
        for issue in completed:
            path = (Path.cwd() / (issue.source_file or "")).resolve()
            line = issue.source_line or 0
            if not path.is_file():
                log.warning("sync_source_missing", path=str(path), issue_id=issue.id)
                result.todos_skipped += 1
                continue
            if line in accepted.get(path, {}):
                log.warning("sync_duplicate_target", path=str(path), line=line, issue_id=issue.id)
                result.todos_skipped += 1
                continue

            if not confirm_all:
                choice = self.confirm(issue, path)
                if choice is ConfirmChoice.ALL:
                    confirm_all = True
                elif choice is not ConfirmChoice.YES:
                    result.todos_skipped += 1
                    continue

            accepted.setdefault(path, {})[line] = issue

        modified: set[Path] = set()
        for path, targets in accepted.items():
            for line in sorted(targets, reverse=True):
                rewrite = self.rewriter.remove_line(path, line)
                result.rewrite_results.append(rewrite)
                if rewrite.changed:
                    result.todos_removed += 1
                    modified.add(path)
                else:
                    result.todos_skipped += 1

        result.files_modified = len(modified)
        log.info(
            LogEventNames.SYNC_COMPLETED,
            total_issues_checked=result.total_issues_checked,
            completed_source_issues=result.completed_source_issues_found,
            todos_removed=result.todos_removed,
            todos_skipped=result.todos_skipped,
            files_modified=result.files_modified,
        )
        return result

    # -------------------------------------------------------------------------
    # Validate
    # -------------------------------------------------------------------------

    def validate_sync(
        self, source_dir: Path | str, org_path: Path | str | None = None
    ) -> ValidationResult:
        """Report drift between source TODOs and source-linked issues.

        Raises:
            DirectoryNotFoundError: If ``source_dir`` does not exist
            OrgiFileNotFoundError: If the document does not exist
            OrgParseError: If the document is malformed
        """
        source_dir = Path(source_dir)
        org_path = Path(org_path) if org_path else self.config.document.path
        if not source_dir.is_dir():
            raise DirectoryNotFoundError(f"Source directory not found: {source_dir}")
        if not org_path.is_file():
            raise OrgiFileNotFoundError(f"Org file not found: {org_path}")

        references = self.extractor.extract_many(
            self._discover(source_dir), include_gathered=True
        )
        linked = [issue for issue in self.parser.parse_file(org_path) if issue.has_source_reference]

        result = ValidationResult()
        for issue in linked:
            if not any(find_matching_issue(ref, [issue]) for ref in references):
                result.findings.append(
                    ValidationFinding(
                        kind=FindingKind.SOURCE_TODO_MISSING,
                        message=(
                            f"TODO at {issue.source_file}:{issue.source_line} was removed "
                            f"from source but issue {issue.id} still exists"
                        ),
                        issue=issue,
                    )
                )

        for ref in references:
            if find_matching_issue(ref, linked) is None:
                result.findings.append(
                    ValidationFinding(
                        kind=FindingKind.ORGI_ISSUE_MISSING,
                        message=(
                            f"TODO at {ref.relative_path}:{ref.line_number} has no "
                            "corresponding issue"
                        ),
                        source_todo=ref,
                    )
                )

        log.info(
            LogEventNames.VALIDATE_COMPLETED,
            is_valid=result.is_valid,
            findings=len(result.findings),
        )
        return result

    def _discover(self, source_dir: Path) -> list[Path]:
        return self.discovery.discover(
            source_dir,
            include_extensions=self.config.discovery.include_extensions,
            exclude_patterns=self.config.discovery.exclude_patterns,
        )

    @staticmethod
    def _gather_summary(result: GatherResult) -> dict[str, int | bool]:
        return {
            "source_files_scanned": result.source_files_scanned,
            "todos_found": result.todos_found,
            "existing_issues": result.existing_issues_found,
            "matched_issues": result.matched_issues,
            "new_issues_created": result.new_issues_created,
            "files_modified": result.files_modified,
            "dry_run": result.dry_run,
        }
