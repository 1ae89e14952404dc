"""
Tests for the command line entry point.
"""

import json
import sys

import pytest

from jobhound import __version__
from jobhound.app import main
from jobhound.logger import get_logger


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Isolated working directory, store and log directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("JOBHOUND_DB", str(tmp_path / "data" / "jobs.db"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    yield tmp_path
    # Detach the console handler bound to the captured stdout
    get_logger().reconfigure("INFO", tmp_path / "logs", enable_console=False)


def run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["jobhound", *args])
    main()


class TestCommands:
    """Subcommands that need no browser."""

    def test_version(self, cli_env, monkeypatch, capsys):
        run(monkeypatch, "--version")
        assert capsys.readouterr().out.strip() == __version__

    def test_stats_on_empty_store(self, cli_env, monkeypatch, capsys):
        run(monkeypatch, "stats")
        assert "total=0 pending=0 scored=0 failed=0" in capsys.readouterr().out

    def test_validate_valid(self, cli_env, monkeypatch, capsys):
        path = cli_env / "posting.json"
        path.write_text(json.dumps({
            "title": "Frontend Developer",
            "company": "Acme",
            "url": "https://example.com/jobs/1",
        }))

        run(monkeypatch, "validate", "--input", str(path))

        assert "Valid" in capsys.readouterr().out

    def test_validate_invalid(self, cli_env, monkeypatch, capsys):
        path = cli_env / "posting.json"
        path.write_text(json.dumps({"title": "AB", "url": "nope"}))

        with pytest.raises(SystemExit) as exc_info:
            run(monkeypatch, "validate", "--input", str(path))

        assert exc_info.value.code == 2
        assert "Invalid:" in capsys.readouterr().out

    def test_score_with_criteria(self, cli_env, monkeypatch, capsys, frontend_posting):
        posting_path = cli_env / "posting.json"
        posting_path.write_text(json.dumps(frontend_posting.to_dict()))
        criteria_path = cli_env / "criteria.json"
        criteria_path.write_text(json.dumps({
            "coreSkills": ["React", "TypeScript"],
            "experienceLevel": "mid",
            "remotePreference": "remote",
        }))

        run(monkeypatch, "score", "--input", str(posting_path), "--criteria", str(criteria_path))

        out = capsys.readouterr().out
        assert "Score: 90" in out
        assert "skills=30 experience=30 location=30" in out

    def test_missing_input_file(self, cli_env, monkeypatch):
        with pytest.raises(SystemExit):
            run(monkeypatch, "validate", "--input", str(cli_env / "missing.json"))

    def test_report_dry_run(self, cli_env, monkeypatch, capsys):
        run(monkeypatch, "report", "--dry-run")
        assert "No postings matched your criteria." in capsys.readouterr().out

    def test_cleanup_without_store(self, cli_env, monkeypatch, capsys):
        run(monkeypatch, "cleanup")
        assert "Removed 0 stale postings, 0 remaining" in capsys.readouterr().out


class TestStoreUnavailable:
    """An unusable store path ends every store-backed command with a message."""

    @pytest.mark.parametrize("command", [
        ["stats"],
        ["best"],
        ["report", "--dry-run"],
        ["analyze"],
    ])
    def test_store_under_regular_file(self, cli_env, monkeypatch, command):
        blocker = cli_env / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(SystemExit) as exc_info:
            run(monkeypatch, "--db", str(blocker / "jobs.db"), *command)

        assert str(exc_info.value.code).startswith("Store unavailable:")
