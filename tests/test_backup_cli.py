import io
import json

import pytest

from backup.cli import cli
from core.settings import ENV_OVERRIDES, save_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (*ENV_OVERRIDES, "TOME_HOME"):
        monkeypatch.delenv(name, raising=False)


def _run(working_dir, *argv):
    out = io.StringIO()
    code = cli(["--working-dir", str(working_dir), *argv], out=out)
    return code, out.getvalue()


def _answers(monkeypatch, *replies):
    queue = list(replies)
    monkeypatch.setattr("builtins.input", lambda prompt="": queue.pop(0))


def test_backup_then_list(tmp_path, make_db):
    make_db(tmp_path / "tome.db")

    code, output = _run(tmp_path, "backup")
    assert code == 0
    assert "Primary database backed up" in output
    assert "Secondary" not in output

    code, output = _run(tmp_path, "--json", "list")
    assert code == 0
    listed = json.loads(output)
    assert len(listed) == 1
    assert listed[0]["db"] == "tome.db"
    assert (tmp_path / "logs" / "backup.jsonl").exists()


def test_backup_without_database_fails(tmp_path):
    code, output = _run(tmp_path, "backup", "--docker-mode")

    assert code == 1
    assert "Primary backup failed" in output


def test_list_with_no_backups(tmp_path):
    code, output = _run(tmp_path, "list")

    assert code == 0
    assert "No backups found" in output


def test_validate_reports_invalid_file(tmp_path):
    bogus = tmp_path / "bogus.db"
    bogus.write_text("hello", encoding="utf-8")

    code, output = _run(tmp_path, "validate", str(bogus))

    assert code == 1
    assert "not_a_database" in output


def test_restore_explicit_path(tmp_path, make_db, row_count):
    live = make_db(tmp_path / "tome.db", rows=2)
    _run(tmp_path, "backup")
    artifact = next((tmp_path / "backups").glob("*/tome.db.backup-*"))
    live.write_bytes(b"broken")

    code, output = _run(tmp_path, "restore", str(artifact), "--yes")

    assert code == 0
    assert "Database restored" in output
    assert "Safety backup created" in output
    assert row_count(live) == 2


def test_restore_interactive_selection(tmp_path, make_db, monkeypatch, row_count):
    live = make_db(tmp_path / "tome.db", rows=3)
    _run(tmp_path, "backup")
    live.write_bytes(b"broken")
    _answers(monkeypatch, "1", "yes")

    code, output = _run(tmp_path, "restore")

    assert code == 0
    assert "Available backups" in output
    assert row_count(live) == 3


def test_restore_can_be_cancelled(tmp_path, make_db, monkeypatch):
    live = make_db(tmp_path / "tome.db")
    _run(tmp_path, "backup")
    live.write_bytes(b"keep me")
    _answers(monkeypatch, "1", "no")

    code, output = _run(tmp_path, "restore")

    assert code == 0
    assert "Restore cancelled" in output
    assert live.read_bytes() == b"keep me"


def test_restore_rejects_bad_selection(tmp_path, make_db, monkeypatch):
    make_db(tmp_path / "tome.db")
    _run(tmp_path, "backup")
    _answers(monkeypatch, "7")

    code, output = _run(tmp_path, "restore")

    assert code == 1
    assert "Invalid selection" in output


def test_restore_without_backups(tmp_path):
    code, output = _run(tmp_path, "restore")

    assert code == 1
    assert "No tome.db backups found" in output


def test_cleanup_keeps_requested_folders(tmp_path):
    for day in range(1, 5):
        folder = tmp_path / "backups" / f"2024-12-{day:02d}"
        folder.mkdir(parents=True)
        (folder / f"tome.db.backup-202412{day:02d}_010000").write_bytes(b"x")

    code, output = _run(tmp_path, "--json", "cleanup", "--keep", "1")

    assert code == 0
    assert json.loads(output) == {"deleted_folders": 3, "kept_max": 1}
    assert [p.name for p in (tmp_path / "backups").iterdir()] == ["2024-12-04"]


def test_json_file_logging_can_be_turned_off(tmp_path, make_db):
    make_db(tmp_path / "tome.db")
    save_settings({"logging": {"json_file": False}}, tmp_path)

    code, output = _run(tmp_path, "backup")

    assert code == 0
    assert "Primary database backed up" in output
    assert not (tmp_path / "logs" / "tome.log.jsonl").exists()
    assert not (tmp_path / "logs" / "backup.jsonl").exists()
