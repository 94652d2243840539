"""Unit tests for the command-line entry point."""

from __future__ import annotations

from pathlib import Path

import pytest

from legacy_migration import cli, orchestrator
from legacy_migration.errors import TargetStoreUnavailableError
from tests.fakes import FakeTargetStore, write_legacy_files


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A working directory with no .env and the default data layout."""
    monkeypatch.chdir(tmp_path)
    for key in ("MONGODB_URI", "MONGODB_DATABASE", "DRY_RUN", "LEGACY_USERS_FILE",
                "LEGACY_LEADS_FILE", "BACKUP_DIR", "REPORT_DIR", "ASSIGNMENT_TIE_BREAK"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    return tmp_path


def test_missing_uri_exits_with_failure(workspace: Path) -> None:
    """A fatal configuration error maps to exit code 1."""
    assert cli.main(["run"]) == cli.EXIT_FATAL
    assert not (workspace / "data" / "backups").exists()


def test_run_prints_summary(
    workspace: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A completed run exits 0 and prints the per-entity summary."""
    store = FakeTargetStore()
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost/kejamatch")
    monkeypatch.setattr(orchestrator, "create_mongo_store", lambda config: store)
    write_legacy_files(workspace / "data", users=[{"email": "a@x.com", "password": "h1"}])

    assert cli.main(["run"]) == cli.EXIT_OK

    out = capsys.readouterr().out
    assert "MIGRATION SUMMARY" in out
    assert "Status: completed" in out
    assert "Default admin created: admin@kejamatch.com" in out
    assert store.close_calls == 1


def test_run_flags_override_environment(
    workspace: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """--dry-run and file flags take precedence over the environment."""
    store = FakeTargetStore()
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost/kejamatch")
    monkeypatch.setattr(orchestrator, "create_mongo_store", lambda config: store)
    users_path, _ = write_legacy_files(workspace / "elsewhere", users=[{"email": "a@x.com", "password": "h1"}])

    assert cli.main(["run", "--dry-run", "--users-file", str(users_path)]) == cli.EXIT_OK

    assert "Dry run" in capsys.readouterr().out
    assert store.count("users", {}) == 0


def test_backup_command_needs_no_store(workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """The backup subcommand copies files without a connection string."""
    write_legacy_files(workspace / "data", users=[], leads=[])

    assert cli.main(["backup"]) == cli.EXIT_OK

    assert capsys.readouterr().out.count("Backup created:") == 2
    assert len(list((workspace / "data" / "backups").iterdir())) == 2


def test_no_command_prints_help(workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([]) == cli.EXIT_FATAL
    assert "usage:" in capsys.readouterr().out


def test_unknown_option_is_usage_error(workspace: Path) -> None:
    """argparse rejects bad flags with exit code 2."""
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["run", "--tie-break", "random"])

    assert excinfo.value.code == 2


class _DroppingStore(FakeTargetStore):
    """Loses its connection when the admin check counts users."""

    def count(self, entity: str, filter: dict) -> int:
        raise TargetStoreUnavailableError("connection lost")


def test_store_failure_mid_run_exits_with_failure(
    workspace: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Store errors after the connection check end the run with exit code 1."""
    store = _DroppingStore()
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost/kejamatch")
    monkeypatch.setattr(orchestrator, "create_mongo_store", lambda config: store)
    write_legacy_files(workspace / "data", users=[{"email": "a@x.com", "password": "h1"}])

    assert cli.main(["run"]) == cli.EXIT_FATAL
    assert store.close_calls == 1
