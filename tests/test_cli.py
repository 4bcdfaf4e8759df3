from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import structlog
from typer.testing import CliRunner

from envswitch.cli import app
from envswitch.core.config import get_settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


def _invoke(project: Path, *args: str, input: str | None = None):
    return runner.invoke(app, ["--project-path", str(project), *args], input=input)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_create_switch_and_current(tmp_path: Path) -> None:
    project = tmp_path / "shop"
    project.mkdir()

    result = _invoke(project, "create", "staging", "--template")
    assert result.exit_code == 0, result.output
    assert "Environment file created: .env.staging" in result.output

    result = _invoke(project, "switch", "staging")
    assert result.exit_code == 0, result.output
    assert (project / ".env").read_text(encoding="utf-8") == (project / ".env.staging").read_text(encoding="utf-8")

    result = _invoke(project, "current")
    assert result.exit_code == 0, result.output
    assert "Environment: staging" in result.output


def test_create_existing_fails(tmp_path: Path) -> None:
    _write(tmp_path / ".env.example", "A=1\n")
    _write(tmp_path / ".env.local", "A=1\n")

    result = _invoke(tmp_path, "create", "local")

    assert result.exit_code == 1


def test_switch_missing_env_fails(tmp_path: Path) -> None:
    assert _invoke(tmp_path, "switch", "nope").exit_code == 1


def test_list_and_ls_alias(tmp_path: Path) -> None:
    _write(tmp_path / ".env.local", "APP_ENV=local\n")
    _write(tmp_path / ".env", "APP_ENV=local\n")

    for command in ("list", "ls"):
        result = _invoke(tmp_path, command)
        assert result.exit_code == 0, result.output
        assert "* local" in result.output
        assert "Total: 1 environment files" in result.output


def test_diff_json(tmp_path: Path) -> None:
    _write(tmp_path / ".env.local", "A=1\nB=2\n")
    _write(tmp_path / ".env", "A=1\nB=3\nC=4\n")

    result = _invoke(tmp_path, "diff", "local", "--json")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload == {
        "added": {"C": "4"},
        "removed": {},
        "changed": {"B": {"from": "2", "to": "3"}},
        "unchanged": {"A": "1"},
    }


def test_diff_text_summary(tmp_path: Path) -> None:
    _write(tmp_path / ".env.local", "A=1\n")
    _write(tmp_path / ".env.staging", "A=2\nB=1\n")

    result = _invoke(tmp_path, "diff", "local", "staging")

    assert result.exit_code == 0, result.output
    assert "+ B=1" in result.output
    assert "2 differences, 0 unchanged" in result.output


def test_diff_missing_env_fails(tmp_path: Path) -> None:
    _write(tmp_path / ".env.local", "A=1\n")
    assert _invoke(tmp_path, "diff", "local").exit_code == 1


def test_validate_exit_codes(tmp_path: Path) -> None:
    _write(tmp_path / ".env", "FOO\nBAR=1\nBAR=2\n")
    _write(tmp_path / ".env.local", "APP_ENV=local\nDB_PASSWORD=admin\n")

    bad = _invoke(tmp_path, "validate")
    assert bad.exit_code == 1
    assert "malformed" in bad.output
    assert "duplicate variable" in bad.output

    good = _invoke(tmp_path, "validate", "local")
    assert good.exit_code == 0, good.output
    assert "possible default password" in good.output
    assert ".env.local: valid" in good.output


def test_check_required(tmp_path: Path) -> None:
    _write(tmp_path / ".env", "APP_ENV=local\nDB_HOST=\n")

    ok = _invoke(tmp_path, "check", "--require", "APP_ENV")
    assert ok.exit_code == 0, ok.output

    missing = _invoke(tmp_path, "check", "-r", "APP_ENV", "-r", "DB_HOST", "-r", "DB_PORT")
    assert missing.exit_code == 1
    assert "missing: DB_PORT" in missing.output
    assert "empty: DB_HOST" in missing.output


def test_backup_lifecycle(tmp_path: Path) -> None:
    _write(tmp_path / ".env", "APP_ENV=staging\nDB_HOST=x\n")

    created = _invoke(tmp_path, "backup", "create")
    assert created.exit_code == 0, created.output
    backup_name = next(p.name for p in (tmp_path / ".env-backups").iterdir() if p.name.startswith(".env.backup."))
    assert f"Backup created: {backup_name}" in created.output

    listed = _invoke(tmp_path, "backup", "list")
    assert listed.exit_code == 0, listed.output
    assert "staging" in listed.output
    assert "Total: 1 backups" in listed.output

    info = _invoke(tmp_path, "backup", "info", backup_name)
    assert info.exit_code == 0, info.output
    assert "Variables: 2" in info.output

    _write(tmp_path / ".env", "APP_ENV=broken\n")
    restored = _invoke(tmp_path, "backup", "restore", backup_name, "--yes")
    assert restored.exit_code == 0, restored.output
    assert (tmp_path / ".env").read_text(encoding="utf-8") == "APP_ENV=staging\nDB_HOST=x\n"

    history = _invoke(tmp_path, "backup", "history")
    assert history.exit_code == 0, history.output
    assert "restore" in history.output


def test_backup_restore_can_be_cancelled(tmp_path: Path) -> None:
    _write(tmp_path / ".env", "A=1\n")
    (tmp_path / ".env-backups").mkdir()
    _write(tmp_path / ".env-backups" / ".env.backup.old.20260101_000000", "A=0\n")

    result = _invoke(tmp_path, "backup", "restore", ".env.backup.old.20260101_000000", input="n\n")

    assert result.exit_code == 0, result.output
    assert "Restore cancelled" in result.output
    assert (tmp_path / ".env").read_text(encoding="utf-8") == "A=1\n"


def test_backup_restore_missing_fails(tmp_path: Path) -> None:
    assert _invoke(tmp_path, "backup", "restore", ".env.backup.x.1", "--yes").exit_code == 1


def test_backup_clean_reports_counts(tmp_path: Path) -> None:
    (tmp_path / ".env-backups").mkdir()
    for i in range(3):
        _write(tmp_path / ".env-backups" / f".env.backup.local.20260101_00000{i}", "A=1\n")

    result = _invoke(tmp_path, "backup", "clean", "--days", "30", "--keep", "5")

    assert result.exit_code == 0, result.output
    assert "Deleted: 0, kept: 3" in result.output


def test_init_bootstraps_from_example(tmp_path: Path) -> None:
    _write(tmp_path / ".env.example", "APP_ENV=local\n")

    result = _invoke(tmp_path, "init", "--yes")

    assert result.exit_code == 0, result.output
    assert (tmp_path / ".env.local").exists()
    assert (tmp_path / ".env").read_text(encoding="utf-8") == "APP_ENV=local\n"

    again = _invoke(tmp_path, "init")
    assert "Current environment: local" in again.output


def test_validate_undecodable_file_fails_cleanly(tmp_path: Path) -> None:
    (tmp_path / ".env").write_bytes(b"A=\xff\xfe\n")

    result = _invoke(tmp_path, "validate")

    assert result.exit_code == 1
    assert not isinstance(result.exception, UnicodeDecodeError)
    assert "not valid UTF-8" in result.output


def test_backup_history_with_undecodable_log(tmp_path: Path) -> None:
    (tmp_path / ".env-backups").mkdir()
    (tmp_path / ".env-backups" / ".backup-log").write_bytes(b"\xff\xfe[]")

    result = _invoke(tmp_path, "backup", "history")

    assert result.exit_code == 0, result.output
    assert "No history recorded" in result.output


def test_backup_restore_outside_backup_dir_fails(tmp_path: Path) -> None:
    _write(tmp_path / ".env", "A=1\n")
    _write(tmp_path / ".env.production", "A=2\n")

    result = _invoke(tmp_path, "backup", "restore", "../.env.production", "--yes")

    assert result.exit_code == 1
    assert "Invalid backup name" in result.output
    assert (tmp_path / ".env").read_text(encoding="utf-8") == "A=1\n"


def test_project_path_from_environment(tmp_path: Path, monkeypatch) -> None:
    _write(tmp_path / ".env.local", "APP_ENV=local\n")
    monkeypatch.setenv("ENVSWITCH_PROJECT_PATH", str(tmp_path))
    get_settings.cache_clear()
    try:
        result = runner.invoke(app, ["list"])
    finally:
        get_settings.cache_clear()

    assert result.exit_code == 0, result.output
    assert "local" in result.output
    assert "Total: 1 environment files" in result.output
