"""Shared test fixtures for orgi."""

from datetime import datetime
from pathlib import Path

import pytest

from orgi.config.schema import OrgiConfig
from orgi.core.source_rewriter import SourceRewriter
from orgi.core.synchronizer import ConfirmChoice, IssueSynchronizer
from orgi.models.issue import Issue, IssueState

# Get the fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"
ORG_DIR = FIXTURES_DIR / "org"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def simple_org() -> str:
    """Load a document with three hand-written issues."""
    return (ORG_DIR / "simple.org").read_text()


@pytest.fixture
def gathered_org() -> str:
    """Load a document with two issues gathered from app.py."""
    return (ORG_DIR / "gathered.org").read_text()


@pytest.fixture
def fixed_now() -> datetime:
    """Return a fixed creation time."""
    return datetime(2025, 12, 18, 14, 30, 45)


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the test inside an empty project directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def rewriter(workspace: Path) -> SourceRewriter:
    """Create a rewriter backing up into the workspace."""
    return SourceRewriter(backup_dir=workspace / ".orgi" / "backups")


@pytest.fixture
def synchronizer(rewriter: SourceRewriter) -> IssueSynchronizer:
    """Create a synchronizer that answers yes to every removal prompt."""
    return IssueSynchronizer(
        rewriter=rewriter,
        config=OrgiConfig(),
        confirm=lambda issue, path: ConfirmChoice.YES,
    )


@pytest.fixture
def sample_issue(fixed_now: datetime) -> Issue:
    """Create a manually added issue."""
    return Issue(
        id="task-20251218143045",
        title="Sample issue",
        description="First line\nSecond line",
        created_at=fixed_now.replace(second=0),
        state=IssueState.TODO,
        tags=["alpha", "beta"],
    )
