import shutil
import sqlite3
from datetime import datetime
from pathlib import Path

import pytest

FIXED_NOW = datetime(2025, 1, 15, 9, 30, 0)


class StubLogger:
    def __init__(self) -> None:
        self.events = []

    def debug(self, event: str, **extra):  # pragma: no cover - recorder
        self.events.append(("debug", event, extra))

    def info(self, event: str, **extra):  # pragma: no cover - recorder
        self.events.append(("info", event, extra))

    def warning(self, event: str, **extra):  # pragma: no cover - recorder
        self.events.append(("warning", event, extra))

    def error(self, event: str, **extra):  # pragma: no cover - recorder
        self.events.append(("error", event, extra))

    def event(self, *, event: str, phase: str, ok: bool, **extra):  # pragma: no cover - recorder
        self.events.append(("event", event, phase, ok, extra))

    def names(self):
        return [entry[1] for entry in self.events]


def build_database(path: Path, rows: int = 10) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        conn.execute("CREATE TABLE books (id INTEGER PRIMARY KEY, title TEXT NOT NULL)")
        conn.executemany(
            "INSERT INTO books (title) VALUES (?)",
            [(f"Book {index} " * 8,) for index in range(rows)],
        )
        conn.commit()
    finally:
        conn.close()
    return path


def build_wal_only_database(path: Path, rows: int = 5, wal_rows: int = 5) -> Path:
    """A WAL-mode database whose last *wal_rows* rows live only in ``-wal``; no ``-shm``."""

    writer = build_database(path.parent / "writer" / path.name, rows=rows)
    conn = sqlite3.connect(writer)
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA wal_autocheckpoint=0")
        conn.executemany("INSERT INTO books (title) VALUES (?)", [("in wal",)] * wal_rows)
        conn.commit()
        shutil.copyfile(writer, path)
        shutil.copyfile(writer.with_name(writer.name + "-wal"), path.with_name(path.name + "-wal"))
    finally:
        conn.close()
    return path


def count_rows(path: Path) -> int:
    conn = sqlite3.connect(path)
    try:
        return conn.execute("SELECT COUNT(*) FROM books").fetchone()[0]
    finally:
        conn.close()


@pytest.fixture
def make_db():
    return build_database


@pytest.fixture
def make_wal_only_db():
    return build_wal_only_database


@pytest.fixture
def stub_logger():
    return StubLogger()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def row_count():
    return count_rows
