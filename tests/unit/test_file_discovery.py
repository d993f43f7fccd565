"""Tests for source file discovery."""

import os
import sys
from pathlib import Path

import pytest

from orgi.config.schema import DEFAULT_INCLUDE_EXTENSIONS
from orgi.core.file_discovery import SourceFileDiscovery, matches_pattern
from orgi.core.todo_extractor import GRAMMARS
from orgi.utils.errors import DirectoryNotFoundError


def touch(directory: Path, *names: str) -> None:
    for name in names:
        (directory / name).write_text("")


class TestMatchesPattern:
    """Tests for segment-wise glob matching."""

    @pytest.mark.parametrize(
        ("path", "pattern"),
        [
            ("bin/Debug/app.cs", "bin/**"),
            ("bin", "bin/**"),
            ("BIN/x.cs", "bin/**"),
            ("widget.test.js", "**/*.test.*"),
            ("src/ui/widget.spec.ts", "**/*.spec.*"),
            ("a/vendor/lib.go", "**/vendor/**"),
            ("src/main.py", "src/*"),
            ("src/main.py", "*/main.py"),
            ("src\\main.py", "src/*"),
        ],
    )
    def test_matches(self, path: str, pattern: str) -> None:
        """Test paths that match."""
        assert matches_pattern(path, pattern)

    @pytest.mark.parametrize(
        ("path", "pattern"),
        [
            ("src/bin/app.cs", "bin/**"),
            ("widget.js", "**/*.test.*"),
            ("src/deep/main.py", "src/*"),
            ("main.py", "src/*"),
            ("binary.cs", "bin/**"),
        ],
    )
    def test_does_not_match(self, path: str, pattern: str) -> None:
        """Test paths that do not match."""
        assert not matches_pattern(path, pattern)


class TestDiscover:
    """Tests for SourceFileDiscovery.discover."""

    def test_filters_and_sorts(self, tmp_path: Path) -> None:
        """Test extension filtering, exclusion and ordering."""
        touch(tmp_path, "zeta.py", "alpha.JS", "notes.txt", "widget.test.js", "main.cs")
        (tmp_path / "sub").mkdir()
        touch(tmp_path / "sub", "nested.py")

        found = SourceFileDiscovery().discover(tmp_path)

        assert [p.name for p in found] == ["alpha.JS", "main.cs", "zeta.py"]

    def test_directories_with_source_suffix_skipped(self, tmp_path: Path) -> None:
        """Test that only regular files are returned."""
        (tmp_path / "pkg.py").mkdir()
        assert SourceFileDiscovery().discover(tmp_path) == []

    def test_custom_filters(self, tmp_path: Path) -> None:
        """Test explicit extension and exclude lists."""
        touch(tmp_path, "a.py", "b.md", "skip_me.md")
        found = SourceFileDiscovery().discover(
            tmp_path, include_extensions=["md"], exclude_patterns=["skip_*"]
        )
        assert [p.name for p in found] == ["b.md"]

    def test_empty_exclude_list_disables_defaults(self, tmp_path: Path) -> None:
        """Test that an explicit empty exclude list excludes nothing."""
        touch(tmp_path, "widget.test.js")
        found = SourceFileDiscovery().discover(tmp_path, exclude_patterns=[])
        assert [p.name for p in found] == ["widget.test.js"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        """Test that a missing directory raises DirectoryNotFoundError."""
        with pytest.raises(DirectoryNotFoundError):
            SourceFileDiscovery().discover(tmp_path / "absent")

    @pytest.mark.skipif(
        sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="permissions are not enforced",
    )
    def test_unreadable_directory(self, tmp_path: Path) -> None:
        """Test that an unreadable directory yields no files."""
        locked = tmp_path / "locked"
        locked.mkdir()
        touch(locked, "a.py")
        locked.chmod(0o000)
        try:
            assert SourceFileDiscovery().discover(locked) == []
        finally:
            locked.chmod(0o755)

    def test_defaults_cover_known_grammars(self) -> None:
        """Test that every extension with a grammar is discovered by default."""
        assert set(GRAMMARS) <= set(DEFAULT_INCLUDE_EXTENSIONS)
