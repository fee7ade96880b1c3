#!/usr/bin/env python3
"""
Tests for the named.conf safe-edit transactions and zone stanza edits
"""

import asyncio
import os
import stat
from datetime import datetime, timedelta

import pytest

from bindadmin.core.exceptions import (
    BackupMissing,
    ConfigRejected,
    ReloadAfterWriteFailed,
    ZoneExists,
    ZoneNotFound,
)
from bindadmin.namedconf.backup import BackupStore
from bindadmin.namedconf.validator import NamedConfValidator
from bindadmin.services.named_conf_service import (
    NamedConfService,
    append_zone_stanza,
    get_file_lock,
    remove_zone_stanza,
)

from conftest import FakeBindService, FakeLauncher

INITIAL_CONF = """options {
    directory "/var/named";
};
"""


class StepClock:
    def __init__(self):
        self.current = datetime(2024, 5, 1, 8, 0, 0)

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


def build_service(settings, bind=None, launcher=None, write_initial=True):
    if write_initial:
        settings.named_conf_path.write_text(INITIAL_CONF)
    store = BackupStore(str(settings.backup_dir), settings.MAX_BACKUPS, clock=StepClock())
    validator = NamedConfValidator(launcher=launcher or FakeLauncher())
    return NamedConfService(
        settings,
        bind_service=bind or FakeBindService(),
        validator=validator,
        backup_store=store,
    )


def test_commit_writes_snapshots_and_reloads(settings):
    bind = FakeBindService()
    service = build_service(settings, bind=bind)
    os.chmod(service.named_conf_path, 0o640)

    backup = asyncio.run(service.update_content("options {\n};\n"))

    assert service.get_content() == "options {\n};\n"
    assert bind.reload_calls == 1
    with open(backup.path) as f:
        assert f.read() == INITIAL_CONF
    assert stat.S_IMODE(os.stat(service.named_conf_path).st_mode) == 0o640
    # No temp files left next to the live file
    assert os.listdir(os.path.dirname(service.named_conf_path)) == ["named.conf"]


def test_commit_reload_failure_keeps_write_and_snapshot(settings):
    service = build_service(settings, bind=FakeBindService(reload_ok=False))

    with pytest.raises(ReloadAfterWriteFailed) as exc_info:
        asyncio.run(service.update_content("options {\n    recursion no;\n};\n"))

    error = exc_info.value
    assert error.details["written"] is True
    assert service.get_content() == "options {\n    recursion no;\n};\n"

    backups = service.list_backups()
    assert [b.path for b in backups] == [error.backup_path]
    with open(error.backup_path) as f:
        assert f.read() == INITIAL_CONF


def test_commit_rejected_by_checker_writes_nothing(settings):
    bind = FakeBindService()
    service = build_service(settings, bind=bind, launcher=FakeLauncher(returncode=1, output="syntax error"))

    with pytest.raises(ConfigRejected) as exc_info:
        asyncio.run(service.update_content("options {\n"))

    assert exc_info.value.result.error == "syntax error"
    assert service.get_content() == INITIAL_CONF
    assert bind.reload_calls == 0


def test_commit_without_validation(settings):
    settings.VALIDATE_BEFORE_WRITE = False
    launcher = FakeLauncher(returncode=1)
    service = build_service(settings, launcher=launcher)

    asyncio.run(service.update_content("anything;\n"))

    assert launcher.calls == []
    assert service.get_content() == "anything;\n"


def test_commit_creates_missing_file(settings):
    service = build_service(settings, write_initial=False)

    backup = asyncio.run(service.update_content(INITIAL_CONF))

    assert backup is None
    assert service.get_content() == INITIAL_CONF
    assert stat.S_IMODE(os.stat(service.named_conf_path).st_mode) == 0o644


def test_concurrent_commits_are_serialized(settings):
    service = build_service(settings)
    contents = [f"options {{\n    version \"{i}\";\n}};\n" for i in range(5)]

    async def run_all():
        await asyncio.gather(*(service.update_content(text) for text in contents))

    asyncio.run(run_all())

    assert service.get_content() in contents
    snapshot_texts = set()
    for record in service.list_backups():
        with open(record.path) as f:
            snapshot_texts.add(f.read())
    # Every snapshot is a complete earlier revision
    assert snapshot_texts <= set(contents) | {INITIAL_CONF}


def test_file_locks_are_per_loop_and_path(tmp_path):
    async def take_locks():
        return (
            get_file_lock(tmp_path / "named.conf"),
            get_file_lock(str(tmp_path / "named.conf")),
            get_file_lock(tmp_path / "named.conf.local"),
        )

    first = asyncio.run(take_locks())
    second = asyncio.run(take_locks())

    assert first[0] is first[1]
    assert first[0] is not first[2]
    assert first[0] is not second[0]


def test_contended_commits_across_event_loops(settings):
    service = build_service(settings)

    async def contend(tag):
        await asyncio.gather(*(service.update_content(f"revision {tag}-{i};\n") for i in range(3)))

    asyncio.run(contend("a"))
    asyncio.run(contend("b"))

    assert service.get_content().startswith("revision b-")


def test_restore_oldest_snapshot_with_full_window(settings):
    """Restoring the oldest snapshot must survive the pre-restore snapshot's retention"""
    bind = FakeBindService()
    service = build_service(settings, bind=bind)

    for i in range(settings.MAX_BACKUPS):
        asyncio.run(service.update_content(f"revision {i};\n"))

    backups = service.list_backups()
    assert len(backups) == settings.MAX_BACKUPS
    oldest = backups[-1]
    with open(oldest.path) as f:
        expected = f.read()

    result = asyncio.run(service.restore_backup(oldest.backup_id))

    assert service.get_content() == expected
    assert result["restored_from"] == oldest.path
    assert result["pre_restore_backup"] is not None
    assert len(service.list_backups()) == settings.MAX_BACKUPS
    assert bind.reload_calls == settings.MAX_BACKUPS + 1


def test_restore_missing_backup(settings):
    service = build_service(settings)
    with pytest.raises(BackupMissing):
        asyncio.run(service.restore_backup("named.conf.19990101000000.bak"))
    assert service.get_content() == INITIAL_CONF


def test_restore_reload_failure(settings):
    service = build_service(settings)
    record = service.create_backup()
    service.bind_service = FakeBindService(reload_ok=False)

    with pytest.raises(ReloadAfterWriteFailed) as exc_info:
        asyncio.run(service.restore_backup(record.path))

    assert exc_info.value.backup_path is not None
    assert exc_info.value.backup_path != record.path


def test_propose_diffs_against_live_file(settings):
    service = build_service(settings)
    result = service.propose(INITIAL_CONF.replace("/var/named", "/srv/named"))
    assert result.stats.removed == 1
    assert result.stats.added == 1


def test_add_and_remove_zone_round_trip(settings):
    service = build_service(settings)

    asyncio.run(service.add_zone("example.com", "example.com.zone", comment="primary\nmanaged"))

    content = service.get_content()
    assert content == INITIAL_CONF + (
        "\n"
        "// primary\n"
        "// managed\n"
        'zone "example.com" IN {\n'
        "    type master;\n"
        '    file "example.com.zone";\n'
        "    allow-query { any; };\n"
        "};\n"
    )
    zones = service.list_zones()
    assert zones == [{
        "name": "example.com",
        "type": "master",
        "file": "example.com.zone",
        "source": service.named_conf_path,
    }]

    asyncio.run(service.remove_zone("example.com"))
    assert service.get_content() == INITIAL_CONF
    assert service.list_zones() == []


def test_add_existing_zone(settings):
    service = build_service(settings)
    asyncio.run(service.add_zone("example.com", "example.com.zone"))
    with pytest.raises(ZoneExists):
        asyncio.run(service.add_zone("example.com", "other.zone"))


def test_remove_unknown_zone(settings):
    service = build_service(settings)
    with pytest.raises(ZoneNotFound):
        asyncio.run(service.remove_zone("missing.example"))


def test_update_zone_replaces_stanza(settings):
    service = build_service(settings)
    asyncio.run(service.add_zone("example.com", "example.com.zone", "10.0.0.0/8;", comment="old"))

    asyncio.run(service.update_zone("example.com", "db.example.com", comment="new"))

    content = service.get_content()
    assert "// old" not in content
    assert "// new" in content
    assert content.count('zone "example.com"') == 1
    assert 'file "db.example.com";' in content
    assert "allow-query { any; };" in content


def test_remove_zone_stanza_keeps_neighbours():
    content = (
        "options {\n};\n"
        "\n"
        "// first\n"
        'zone "a.example" IN {\n    type master;\n    file "a.zone";\n};\n'
        "\n"
        "// second\n"
        'zone "b.example" IN {\n    type master;\n    allow-query { "any"; };\n};\n'
    )

    result = remove_zone_stanza(content, "a.example")

    assert result == (
        "options {\n};\n"
        "\n"
        "// second\n"
        'zone "b.example" IN {\n    type master;\n    allow-query { "any"; };\n};\n'
    )
    assert remove_zone_stanza(content, "c.example") is None


def test_commented_out_zone_is_not_matched():
    content = '// zone "a.example" IN { type master; };\n'
    assert remove_zone_stanza(content, "a.example") is None


@pytest.mark.parametrize("content, expected", [
    ("", "STANZA"),
    ("a;", "a;\n\nSTANZA"),
    ("a;\n", "a;\n\nSTANZA"),
    ("a;\n\n", "a;\n\nSTANZA"),
    ("a;\n\n\n", "a;\n\n\nSTANZA"),
])
def test_append_zone_stanza_separator(content, expected):
    assert append_zone_stanza(content, "STANZA") == expected


def test_list_zones_follows_includes_and_views(settings):
    service = build_service(settings, write_initial=False)
    conf_dir = settings.config_dir
    (conf_dir / "zones.conf").write_text('zone "inc.example" { type slave; file "slaves/inc"; };\n')
    settings.named_conf_path.write_text(
        'include "zones.conf";\n'
        'view "internal" {\n'
        '    zone "int.example" {\n'
        '        type master;\n'
        '    };\n'
        '};\n'
    )

    zones = service.list_zones()

    assert [(z["name"], z["type"]) for z in zones] == [("inc.example", "slave"), ("int.example", "master")]
    assert zones[0]["source"] == str(conf_dir / "zones.conf")
    assert zones[0]["file"] == "slaves/inc"
