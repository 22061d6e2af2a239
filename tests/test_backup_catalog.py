from backup.api import BackupService
from backup.catalog import BackupCatalog


def _touch(path, payload=b"x"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    return path


def test_list_orders_newest_first_across_folders(tmp_path):
    root = tmp_path / "backups"
    _touch(root / "2025-01-14" / "tome.db.backup-20250114_080000")
    _touch(root / "2025-01-14" / "metadata.db.backup-20250114_080000")
    _touch(root / "2025-01-15" / "tome.db.backup-20250115_093000", b"newest")
    _touch(root / "2025-01-15" / "tome.db.backup-20250115_070000")

    items = BackupCatalog().list(root)

    assert [(item.logical_name, item.timestamp) for item in items] == [
        ("tome.db", "20250115_093000"),
        ("tome.db", "20250115_070000"),
        ("metadata.db", "20250114_080000"),
        ("tome.db", "20250114_080000"),
    ]
    newest = items[0]
    assert newest.folder == "2025-01-15"
    assert newest.size_bytes == len(b"newest")
    assert newest.formatted_date == "2025-01-15 09:30:00"
    assert newest.size_label == "6B"


def test_list_folds_companions_into_their_artifact(tmp_path):
    root = tmp_path / "backups"
    main = _touch(root / "2025-01-15" / "tome.db.backup-20250115_093000")
    _touch(main.with_name(main.name + "-wal"))
    other = _touch(root / "2025-01-15" / "metadata.db.backup-20250115_093000")
    _touch(other.with_name(other.name + "-shm"))

    items = {item.logical_name: item for item in BackupCatalog().list(root)}

    assert len(items) == 2
    assert items["tome.db"].has_wal and not items["tome.db"].has_shm
    assert items["metadata.db"].has_shm and not items["metadata.db"].has_wal


def test_list_skips_unrecognised_entries(tmp_path):
    root = tmp_path / "backups"
    _touch(root / "2025-01-15" / "tome.db.backup-20250115_093000")
    _touch(root / "2025-01-15" / "tome.db.backup-2025")
    _touch(root / "2025-01-15" / "tome.db.before-restore-20250115_093000")
    _touch(root / "2025-01-15" / "README.txt")
    (root / "2025-01-15" / "metadata.db.backup-20250115_093000").mkdir()
    _touch(root / "misc" / "tome.db.backup-20250101_000000")
    _touch(root / "stray.db.backup-20250101_000000")

    items = BackupCatalog().list(root)

    assert [item.name for item in items] == ["tome.db.backup-20250115_093000"]


def test_list_filters_by_logical_name(tmp_path):
    root = tmp_path / "backups"
    _touch(root / "2025-01-15" / "tome.db.backup-20250115_093000")
    _touch(root / "2025-01-15" / "metadata.db.backup-20250115_093000")

    items = BackupCatalog().list(root, logical_name="metadata.db")

    assert [item.logical_name for item in items] == ["metadata.db"]


def test_list_of_empty_or_missing_root(tmp_path):
    (tmp_path / "empty").mkdir()

    assert BackupCatalog().list(tmp_path / "empty") == []
    assert BackupCatalog().list(tmp_path / "missing") == []


def test_latest_returns_newest_for_database(tmp_path):
    root = tmp_path / "backups"
    _touch(root / "2025-01-14" / "tome.db.backup-20250114_080000")
    _touch(root / "2025-01-15" / "tome.db.backup-20250115_093000")
    _touch(root / "2025-01-16" / "metadata.db.backup-20250116_093000")

    latest = BackupCatalog().latest(root, "tome.db")

    assert latest is not None
    assert latest.timestamp == "20250115_093000"
    assert BackupCatalog().latest(root, "other.db") is None


def test_service_list_reports_scan_failure_as_empty(tmp_path, monkeypatch, stub_logger):
    service = BackupService(logger=stub_logger)

    def boom(self, backup_root, *, logical_name=None):
        raise PermissionError("denied")

    monkeypatch.setattr(BackupCatalog, "list", boom)

    assert service.list_backups(tmp_path) == []
    assert "list_failed" in stub_logger.names()
