import pytest

from backup import api as api_module
from backup.api import BackupService
from backup.config import BackupConfig
from backup.errors import ErrorKind
from backup.types import BackupTarget


def _config(tmp_path, **overrides):
    values = {
        "primary_path": tmp_path / "data" / "tome.db",
        "secondary_path": tmp_path / "calibre" / "metadata.db",
        "backup_dir": tmp_path / "backups",
        "max_folders": 6,
    }
    values.update(overrides)
    return BackupConfig(**values)


def _old_folders(root, count):
    for day in range(1, count + 1):
        folder = root / f"2024-12-{day:02d}"
        folder.mkdir(parents=True)
        (folder / f"tome.db.backup-202412{day:02d}_010000").write_bytes(b"old")


@pytest.fixture
def service(fixed_clock, stub_logger):
    return BackupService(clock=fixed_clock, logger=stub_logger)


def test_create_backups_shares_one_timestamp(tmp_path, make_db, service):
    config = _config(tmp_path)
    make_db(config.primary_path)
    make_db(config.secondary_path)

    result = service.create_backups(config)

    assert result.success
    assert result.secondary is not None and result.secondary.success
    primary, secondary = result.primary.artifact, result.secondary.artifact
    assert primary.timestamp == secondary.timestamp == "20250115_093000"
    assert primary.main_file_path.parent == secondary.main_file_path.parent
    assert primary.name == "tome.db.backup-20250115_093000"
    assert secondary.name == "metadata.db.backup-20250115_093000"
    assert result.deleted_folders == 0


def test_secondary_failure_does_not_fail_the_run(tmp_path, make_db, service, stub_logger):
    config = _config(tmp_path)
    make_db(config.primary_path)

    result = service.create_backups(config)

    assert result.success
    assert not result.secondary.success
    assert result.secondary.kind is ErrorKind.SOURCE_NOT_FOUND
    assert "secondary_backup_failed" in stub_logger.names()


def test_disabled_secondary_is_skipped(tmp_path, make_db, service, stub_logger):
    config = _config(tmp_path, secondary_enabled=False)
    make_db(config.primary_path)
    make_db(config.secondary_path)

    result = service.create_backups(config)

    assert result.success
    assert result.secondary is None
    assert not list((tmp_path / "backups").glob("*/metadata.db*"))
    skipped = [entry for entry in stub_logger.events if entry[1] == "secondary_backup_skipped"]
    assert skipped and skipped[0][2]["reason"] == "disabled"


def test_unset_secondary_is_skipped(tmp_path, make_db, service):
    config = _config(tmp_path, secondary_path=None)
    make_db(config.primary_path)

    result = service.create_backups(config)

    assert result.success
    assert result.secondary is None


def test_primary_failure_stops_the_run(tmp_path, make_db, service):
    config = _config(tmp_path, max_folders=1)
    make_db(config.secondary_path)
    _old_folders(config.backup_dir, 3)

    result = service.create_backups(config)

    assert not result.success
    assert result.primary.kind is ErrorKind.SOURCE_NOT_FOUND
    assert result.secondary is None
    assert result.deleted_folders == 0
    assert len(list(config.backup_dir.iterdir())) == 3


def test_retention_runs_after_backups(tmp_path, make_db, service):
    config = _config(tmp_path, max_folders=3)
    make_db(config.primary_path)
    make_db(config.secondary_path)
    _old_folders(config.backup_dir, 4)

    result = service.create_backups(config)

    assert result.success
    assert result.deleted_folders == 2
    remaining = sorted(p.name for p in config.backup_dir.iterdir())
    assert remaining == ["2024-12-03", "2024-12-04", "2025-01-15"]


def test_secondary_failure_still_applies_primary_retention(tmp_path, make_db, service):
    config = _config(tmp_path, max_folders=2)
    make_db(config.primary_path)
    _old_folders(config.backup_dir, 3)

    result = service.create_backups(config)

    assert not result.secondary.success
    assert result.deleted_folders == 2


def test_service_round_trip(tmp_path, make_db, service, row_count):
    live = make_db(tmp_path / "data" / "tome.db", rows=4)
    backups = tmp_path / "backups"
    created = service.create_backup(BackupTarget(live, "tome.db"), backups)
    assert created.success

    listed = service.list_backups(backups)
    assert [item.main_file_path for item in listed] == [created.artifact.main_file_path]
    assert service.validate_backup(listed[0].main_file_path).valid

    live.write_bytes(b"clobbered")
    restored = service.restore_backup(listed[0].main_file_path, live)

    assert restored.success
    assert row_count(live) == 4
    assert service.cleanup_old_backups(backups, "tome.db", 6) == 0


def test_module_level_functions_use_shared_service(tmp_path, make_db, monkeypatch, fixed_clock):
    monkeypatch.setattr(api_module, "_DEFAULT_SERVICE", BackupService(clock=fixed_clock))
    live = make_db(tmp_path / "tome.db")

    created = api_module.create_backup(BackupTarget(live, "tome.db"), tmp_path / "backups")

    assert created.success
    assert api_module.list_backups(tmp_path / "backups", "tome.db")[0].timestamp == "20250115_093000"
    assert api_module.validate_backup(created.artifact.main_file_path).valid
    assert api_module.cleanup_old_backups(tmp_path / "backups", "tome.db", 1) == 0
