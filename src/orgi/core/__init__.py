"""Synchronization engine.

This module exports the engine components:
- OrgParser: Parses the org document into issues
- SourceTodoExtractor: Finds TODO comments in source files
- SourceFileDiscovery: Lists source files to scan
- SourceRewriter: Patches source lines with backups
- IssueSynchronizer: Runs gather, sync and validate
"""

from orgi.core.file_discovery import SourceFileDiscovery, matches_pattern
from orgi.core.org_parser import OrgParser, ParserState, parse_org_file
from orgi.core.org_writer import append_issues, init_document, new_issue, render_issue
from orgi.core.source_rewriter import SourceRewriter
from orgi.core.synchronizer import (
    ConfirmChoice,
    IssueSynchronizer,
    create_issue_from_todo,
    find_matching_issue,
    generate_token,
)
from orgi.core.timestamp import format_timestamp, is_valid_timestamp, parse_timestamp
from orgi.core.todo_extractor import CommentGrammar, SourceTodoExtractor, grammar_for

__all__ = [
    "CommentGrammar",
    "ConfirmChoice",
    "IssueSynchronizer",
    "OrgParser",
    "ParserState",
    "SourceFileDiscovery",
    "SourceRewriter",
    "SourceTodoExtractor",
    "append_issues",
    "create_issue_from_todo",
    "find_matching_issue",
    "format_timestamp",
    "generate_token",
    "grammar_for",
    "init_document",
    "is_valid_timestamp",
    "matches_pattern",
    "new_issue",
    "parse_org_file",
    "parse_timestamp",
    "render_issue",
]
