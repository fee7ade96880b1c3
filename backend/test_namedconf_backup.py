#!/usr/bin/env python3
"""
Tests for timestamped snapshots, retention and restore
"""

import os
import stat
from datetime import datetime, timedelta

import pytest

from bindadmin.core.exceptions import BackupMissing, SourceMissing
from bindadmin.namedconf.backup import BackupStore


class StepClock:
    """Clock that advances one second per reading"""

    def __init__(self, start=datetime(2024, 3, 1, 12, 0, 0), step=timedelta(seconds=1)):
        self.current = start - step
        self.step = step

    def __call__(self):
        self.current += self.step
        return self.current


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "named.conf"
    path.write_text("options {\n};\n")
    os.chmod(path, 0o640)
    return path


def test_snapshot_copies_bytes_and_mode(tmp_path, source):
    store = BackupStore(str(tmp_path / "backup"), clock=StepClock())
    record = store.snapshot(source)

    assert os.path.basename(record.path) == "named.conf.20240301120000.bak"
    assert record.backup_id == "named.conf.20240301120000.bak"
    with open(record.path) as f:
        assert f.read() == "options {\n};\n"
    assert stat.S_IMODE(os.stat(record.path).st_mode) == 0o640
    assert record.size == len("options {\n};\n")
    assert record.timestamp.utcoffset() == timedelta(0)


def test_retention_keeps_newest(tmp_path, source):
    store = BackupStore(str(tmp_path / "backup"), max_backups=3, clock=StepClock())

    records = [store.snapshot(source) for _ in range(4)]

    remaining = sorted(os.listdir(tmp_path / "backup"))
    assert len(remaining) == 3
    assert remaining == sorted(os.path.basename(r.path) for r in records[1:])

    listed = store.list_backups(source)
    assert [r.path for r in listed] == [r.path for r in reversed(records[1:])]


def test_snapshot_on_full_window_stays_at_limit(tmp_path, source):
    store = BackupStore(str(tmp_path / "backup"), max_backups=2, clock=StepClock())
    for _ in range(5):
        store.snapshot(source)
        assert len(store.list_backups(source)) <= 2
    assert len(store.list_backups(source)) == 2


def test_list_is_newest_first_and_filters_other_files(tmp_path, source):
    backup_dir = tmp_path / "backup"
    store = BackupStore(str(backup_dir), max_backups=10, clock=StepClock())
    for _ in range(3):
        store.snapshot(source)

    # Neighbours that share the prefix but are not snapshots of named.conf
    (backup_dir / "named.conf.local.20240301120005.bak").write_text("x")
    (backup_dir / "named.conf.garbage.bak").write_text("x")
    (backup_dir / "rndc.conf.20240301120000.bak").write_text("x")

    listed = store.list_backups(str(source))
    assert len(listed) == 3
    timestamps = [r.timestamp for r in listed]
    assert timestamps == sorted(timestamps, reverse=True)
    assert all(os.path.basename(r.path).startswith("named.conf.2024") for r in listed)


def test_list_empty_directory(tmp_path):
    store = BackupStore(str(tmp_path / "backup"))
    assert store.list_backups("/etc/named.conf") == []


def test_snapshot_missing_source(tmp_path):
    store = BackupStore(str(tmp_path / "backup"))
    with pytest.raises(SourceMissing):
        store.snapshot(tmp_path / "absent.conf")


def test_restore_writes_0644(tmp_path, source):
    store = BackupStore(str(tmp_path / "backup"), clock=StepClock())
    record = store.snapshot(source)
    source.write_text("changed\n")

    store.restore(record.path, source)

    assert source.read_text() == "options {\n};\n"
    assert stat.S_IMODE(os.stat(source).st_mode) == 0o644


def test_restore_missing_backup(tmp_path, source):
    store = BackupStore(str(tmp_path / "backup"))
    with pytest.raises(BackupMissing):
        store.restore(str(tmp_path / "backup" / "named.conf.20200101000000.bak"), source)


def test_resolve_rejects_paths_outside_backup_dir(tmp_path, source):
    store = BackupStore(str(tmp_path / "backup"), clock=StepClock())
    record = store.snapshot(source)

    assert store.resolve(record.backup_id) == store.resolve(record.path)
    with pytest.raises(BackupMissing):
        store.resolve(str(source))
    with pytest.raises(BackupMissing):
        store.resolve("../named.conf")


def test_delete_backup(tmp_path, source):
    store = BackupStore(str(tmp_path / "backup"), clock=StepClock())
    record = store.snapshot(source)

    store.delete_backup(record.backup_id)
    assert store.list_backups(source) == []

    with pytest.raises(BackupMissing):
        store.delete_backup(record.backup_id)


@pytest.mark.parametrize("backup_id", ["../named.conf", "sub/named.conf.1.bak", "named.conf", "..", ""])
def test_delete_backup_rejects_traversal(tmp_path, source, backup_id):
    store = BackupStore(str(tmp_path / "backup"))
    with pytest.raises(BackupMissing):
        store.delete_backup(backup_id)
    assert source.exists()


def test_defaults_for_non_positive_limits(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    store = BackupStore(max_backups=0)
    assert store.max_backups == 10
    assert store.backup_dir.resolve() == (tmp_path / "backup").resolve()
    assert store.backup_dir.is_dir()
