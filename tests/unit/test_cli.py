"""Tests for the orgi command line."""

from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from orgi.__main__ import main, parse_args

ORG_PATH = Path(".orgi") / "orgi.org"

APP_SOURCE = "def f():\n    # TODO: first thing\n    return 1\n# BUG: second thing\n"


def feed_input(monkeypatch: pytest.MonkeyPatch, answers: list[str]) -> None:
    replies: Iterator[str] = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt: next(replies))


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        """Test global defaults and the default command."""
        args = parse_args([])
        assert args.command is None
        assert args.config is None
        assert args.debug is False
        assert args.format is None

    def test_gather_options(self) -> None:
        """Test gather arguments."""
        args = parse_args(["--format", "json", "gather", "src", "--org", "x.org", "--dry-run"])
        assert args.format == "json"
        assert args.directory == Path("src")
        assert args.org == Path("x.org")
        assert args.dry_run is True

    def test_add_normalizes_choices(self) -> None:
        """Test that priority and state are case-insensitive."""
        args = parse_args(["add", "-t", "x", "-p", "b", "-s", "done"])
        assert args.priority == "B"
        assert args.state == "DONE"

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test --version exits cleanly."""
        with pytest.raises(SystemExit) as exc:
            parse_args(["--version"])
        assert exc.value.code == 0
        assert capsys.readouterr().out.startswith("orgi ")


class TestDocumentCommands:
    """Tests for init, add and list."""

    def test_init(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test creating the document twice."""
        assert main(["init"]) == 0
        assert (workspace / ORG_PATH).exists()
        assert "Initialized orgi repository" in capsys.readouterr().out

        assert main(["init"]) == 0
        assert "already exists" in capsys.readouterr().out

    def test_log_context_cleared_after_command(self, workspace: Path) -> None:
        """Test that the command name is not left bound after main returns."""
        assert main(["init"]) == 0
        assert structlog.contextvars.get_contextvars() == {}

    def test_list_without_document(
        self, workspace: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test the hint printed when the document is missing."""
        assert main(["list"]) == 1
        assert "Maybe first run orgi init?" in capsys.readouterr().err

    def test_add_and_list(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test adding an issue from flags and listing it."""
        assert main(["add", "-t", "Fix it", "-p", "a", "--tags", "x, y", "-b", "Details"]) == 0
        assert "Added issue task-" in capsys.readouterr().out

        assert main(["list"]) == 0
        out = capsys.readouterr().out
        assert "Found 1 issues:" in out
        assert ": Fix it (TODO) [A] :x:y:" in out

    def test_list_is_default(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that no command lists issues."""
        main(["init"])
        capsys.readouterr()
        assert main([]) == 0
        assert "Found 0 issues:" in capsys.readouterr().out

    def test_add_interactive(
        self,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test prompting for fields when no title is given."""
        feed_input(monkeypatch, ["Prompted", "b", "inprogress", "one,two"])
        assert main(["add"]) == 0
        capsys.readouterr()

        main(["list"])
        assert ": Prompted (INPROGRESS) [B] :one:two:" in capsys.readouterr().out

    def test_add_requires_title(
        self,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test that an empty title is rejected."""
        feed_input(monkeypatch, ["   "])
        assert main(["add"]) == 1
        assert "Title is required" in capsys.readouterr().err
        assert not (workspace / ORG_PATH).exists()

    def test_add_rejects_tag_only_title(
        self, workspace: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that a title made only of tags is rejected."""
        assert main(["add", "-t", ":later:"]) == 1
        assert "Title cannot consist only of tags" in capsys.readouterr().err
        assert not (workspace / ORG_PATH).exists()


class TestEngineCommands:
    """Tests for gather, sync and validate."""

    def test_round_trip(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test gather, validate, sync and validate again."""
        app = workspace / "app.py"
        app.write_text(APP_SOURCE)

        assert main(["gather"]) == 0
        out = capsys.readouterr().out
        assert "New issues created: 2" in out
        assert "[orgi:gather-" in app.read_text()

        assert main(["validate"]) == 0
        assert "in sync" in capsys.readouterr().out

        org = workspace / ORG_PATH
        org.write_text(org.read_text().replace("* TODO ", "* DONE "))
        assert main(["sync", "-y"]) == 0
        assert "TODOs removed: 2" in capsys.readouterr().out
        assert app.read_text() == "def f():\n    return 1\n"

        assert main(["validate"]) == 1
        assert "Found 2 sync problems" in capsys.readouterr().out

    def test_gather_dry_run(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a dry run reports without writing."""
        (workspace / "app.py").write_text(APP_SOURCE)
        assert main(["gather", "--dry-run"]) == 0
        out = capsys.readouterr().out
        assert "Dry run" in out
        assert "New issues to create: 2" in out
        assert not (workspace / ORG_PATH).exists()

    def test_sync_prompts(
        self,
        workspace: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test that sync asks before removing without -y."""
        app = workspace / "app.py"
        app.write_text(APP_SOURCE)
        main(["gather"])
        org = workspace / ORG_PATH
        org.write_text(org.read_text().replace("* TODO ", "* DONE "))
        feed_input(monkeypatch, ["n", "y"])

        assert main(["sync"]) == 0
        out = capsys.readouterr().out
        assert "TODOs removed: 1" in out
        assert "TODOs skipped: 1" in out
        assert "first thing" in app.read_text()
        assert "second thing" not in app.read_text()

    def test_gather_missing_directory(
        self, workspace: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test the error for a missing source directory."""
        assert main(["gather", "nowhere"]) == 1
        assert "Error: Source directory not found" in capsys.readouterr().err

    def test_sync_missing_document(
        self, workspace: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test the error for a missing document."""
        assert main(["sync", "-y"]) == 1
        assert "Error: Org file not found" in capsys.readouterr().err

    def test_config_file_used(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that the document path comes from the config file."""
        config = workspace / "orgi.yaml"
        config.write_text("document:\n  path: issues.org\n")
        assert main(["-c", str(config), "init"]) == 0
        assert (workspace / "issues.org").exists()

    def test_missing_config_file(
        self, workspace: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that an explicit missing config file is an error."""
        assert main(["-c", "absent.yaml", "list"]) == 1
        assert "Configuration file not found" in capsys.readouterr().err

    def test_malformed_config_file(
        self, workspace: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that a config file with broken YAML is an error, not a crash."""
        (workspace / "bad.yaml").write_text("document: [unclosed\n")
        assert main(["-c", "bad.yaml", "list"]) == 1
        assert "Error: Invalid YAML in configuration file" in capsys.readouterr().err
