"""Tests for writing releases to disk."""

import pathlib
from datetime import datetime

import pytest

from vsmod_updater.decision import OutcomeKind, UpdateOutcome
from vsmod_updater.models import InstalledMod
from vsmod_updater.publisher import (
    ArchivePublisher,
    FilesystemError,
    NameSpaceExhausted,
    find_free_path,
    release_filename,
    sanitize_filename,
)

from tests.conftest import make_policy, release

STARTED = datetime(2024, 5, 1, 12, 30, 45)


@pytest.fixture
def installed(mods_dir):
    path = mods_dir / "foo_1.0.0.zip"
    path.write_bytes(b"old")
    return InstalledMod(mod_id="bar", name="Foo", version="1.0.0", source_path=path)


def updated(rel):
    return UpdateOutcome(OutcomeKind.UPDATED, rel, "has a newer version")


def test_sanitize_filename():
    assert sanitize_filename("A: B/C\\D") == "A; B-C-D"


def test_release_filename(installed):
    assert release_filename(installed, release("1.0.0", "v1.19.0")) == "Foo - (bar) - 1.0.0 - v1.19.0.zip"


def test_release_filename_uses_published_extension_and_skips_empty_tag(installed):
    rel = release("1.0.0", filename="foo_1.0.0.cs")
    assert release_filename(installed, rel) == "Foo - (bar) - 1.0.0.cs"


def test_release_filename_sanitizes_name():
    mod = InstalledMod(mod_id="x", name="Bits: Part 1/2", version="1", source_path=None)
    assert release_filename(mod, release("2", "v1.19.0")) == "Bits; Part 1-2 - (x) - 2 - v1.19.0.zip"


def test_folders_are_named_from_pass_start(mods_dir):
    publisher = ArchivePublisher(mods_dir, STARTED)
    assert publisher.backup_dir == mods_dir / "Old-2024-05-01_12-30-45"
    assert publisher.older_dir == mods_dir / "Older-2024-05-01_12-30-45"


def test_publish_moves_old_file_and_writes_new(mods_dir, installed):
    publisher = ArchivePublisher(mods_dir, STARTED)

    result = publisher.publish(installed, updated(release("1.1.0", "v1.19.0")), b"new", False, make_policy())

    assert not installed.source_path.exists()
    assert result.backup_path == publisher.backup_dir / "foo_1.0.0.zip"
    assert result.backup_path.read_bytes() == b"old"
    assert result.path == mods_dir / "Foo - (bar) - 1.1.0 - v1.19.0.zip"
    assert result.path.read_bytes() == b"new"
    assert not result.in_older_folder
    assert not list(mods_dir.glob(".downloading_*"))


def test_publish_replaces_same_named_backup(mods_dir, installed):
    publisher = ArchivePublisher(mods_dir, STARTED)
    publisher.backup_dir.mkdir()
    (publisher.backup_dir / "foo_1.0.0.zip").write_bytes(b"stale")

    result = publisher.publish(installed, updated(release("1.1.0", "v1.19.0")), b"new", False, make_policy())

    assert result.backup_path.read_bytes() == b"old"


def test_publish_does_nothing_unless_updated(mods_dir, installed):
    publisher = ArchivePublisher(mods_dir, STARTED)

    for outcome in (
        UpdateOutcome(OutcomeKind.ALREADY_CURRENT, release("1.0.0", "v1.19.0")),
        UpdateOutcome(OutcomeKind.SKIPPED, reason="no matching release under policy"),
        UpdateOutcome.failed("boom"),
    ):
        result = publisher.publish(installed, outcome, b"new", False, make_policy())
        assert not result.written

    assert installed.source_path.read_bytes() == b"old"
    assert not publisher.backup_dir.exists()


def test_collision_gets_numbered_name(mods_dir):
    existing = mods_dir / "Foo - (bar) - 1.0.0 - v1.19.0.zip"
    existing.write_bytes(b"keep me")
    mod = InstalledMod(mod_id="bar", name="Foo", version="0.9.0", source_path=mods_dir / "gone.zip")
    publisher = ArchivePublisher(mods_dir, STARTED)

    result = publisher.publish(mod, updated(release("1.0.0", "v1.19.0")), b"new", False, make_policy())

    assert result.path == mods_dir / "Foo - (bar) - 1.0.0 - v1.19.0 (1).zip"
    assert existing.read_bytes() == b"keep me"


def test_publishing_twice_never_overwrites(mods_dir):
    mod = InstalledMod(mod_id="bar", name="Foo", version="0.9.0", source_path=mods_dir / "gone.zip")
    publisher = ArchivePublisher(mods_dir, STARTED)
    outcome = updated(release("1.0.0", "v1.19.0"))

    first = publisher.publish(mod, outcome, b"first", False, make_policy())
    second = publisher.publish(mod, outcome, b"second", False, make_policy())

    assert first.path != second.path
    assert first.path.read_bytes() == b"first"
    assert second.path.read_bytes() == b"second"


def test_find_free_path_gives_up(tmp_path, monkeypatch):
    monkeypatch.setattr("vsmod_updater.publisher.MAX_NAME_ATTEMPTS", 3)
    for name in ("a.zip", "a (1).zip", "a (2).zip", "a (3).zip"):
        (tmp_path / name).write_bytes(b"")

    with pytest.raises(NameSpaceExhausted):
        find_free_path(tmp_path, "a.zip")


def test_older_release_goes_to_subfolder_when_enabled(mods_dir, installed):
    publisher = ArchivePublisher(mods_dir, STARTED)
    policy = make_policy(move_older_to_subfolder=True)

    result = publisher.publish(installed, updated(release("1.1.0", "v1.18.0")), b"new", True, policy)

    assert result.in_older_folder
    assert result.path.parent == publisher.older_dir


def test_older_release_stays_in_mods_dir_when_disabled(mods_dir, installed):
    publisher = ArchivePublisher(mods_dir, STARTED)

    result = publisher.publish(installed, updated(release("1.1.0", "v1.18.0")), b"new", True, make_policy())

    assert result.path.parent == mods_dir


def test_failed_backup_leaves_new_file_unwritten(mods_dir, installed, monkeypatch):
    publisher = ArchivePublisher(mods_dir, STARTED)

    def refuse(self, target):
        raise PermissionError("read-only")

    monkeypatch.setattr("pathlib.Path.rename", refuse)

    with pytest.raises(FilesystemError):
        publisher.publish(installed, updated(release("1.1.0", "v1.19.0")), b"new", False, make_policy())

    monkeypatch.undo()
    assert installed.source_path.read_bytes() == b"old"
    assert not (mods_dir / "Foo - (bar) - 1.1.0 - v1.19.0.zip").exists()


def test_reinstall_under_same_name_reuses_it(mods_dir):
    path = mods_dir / "Foo - (bar) - 1.1.0 - v1.19.0.zip"
    path.write_bytes(b"old")
    mod = InstalledMod(mod_id="bar", name="Foo", version="1.0.0", source_path=path)
    publisher = ArchivePublisher(mods_dir, STARTED)

    result = publisher.publish(mod, updated(release("1.1.0", "v1.19.0")), b"new", False, make_policy())

    assert result.path == path
    assert path.read_bytes() == b"new"
    assert result.backup_path.read_bytes() == b"old"


def test_exhausted_names_leave_installed_file_in_place(mods_dir, installed, monkeypatch):
    monkeypatch.setattr("vsmod_updater.publisher.MAX_NAME_ATTEMPTS", 0)
    (mods_dir / "Foo - (bar) - 1.1.0 - v1.19.0.zip").write_bytes(b"taken")
    publisher = ArchivePublisher(mods_dir, STARTED)

    with pytest.raises(NameSpaceExhausted):
        publisher.publish(installed, updated(release("1.1.0", "v1.19.0")), b"new", False, make_policy())

    assert installed.source_path.read_bytes() == b"old"
    assert not publisher.backup_dir.exists()
    assert not list(mods_dir.glob(".downloading_*"))


def test_failed_rename_restores_installed_file(mods_dir, installed, monkeypatch):
    publisher = ArchivePublisher(mods_dir, STARTED)
    real_rename = pathlib.Path.rename

    def rename(self, target):
        if self.name.startswith(".downloading_"):
            raise PermissionError("locked")
        return real_rename(self, target)

    monkeypatch.setattr(pathlib.Path, "rename", rename)

    with pytest.raises(FilesystemError):
        publisher.publish(installed, updated(release("1.1.0", "v1.19.0")), b"new", False, make_policy())

    assert installed.source_path.read_bytes() == b"old"
    assert not (publisher.backup_dir / "foo_1.0.0.zip").exists()
    assert not (mods_dir / "Foo - (bar) - 1.1.0 - v1.19.0.zip").exists()
    assert not list(mods_dir.glob(".downloading_*"))


def test_file_name_too_long_is_a_filesystem_error(mods_dir, installed):
    mod = InstalledMod(mod_id="bar", name="N" * 250, version="1.0.0", source_path=installed.source_path)
    publisher = ArchivePublisher(mods_dir, STARTED)

    with pytest.raises(FilesystemError):
        publisher.publish(mod, updated(release("1.1.0", "v1.19.0")), b"new", False, make_policy())

    assert installed.source_path.read_bytes() == b"old"
    assert not publisher.backup_dir.exists()


def test_find_free_path_wraps_os_errors(tmp_path, monkeypatch):
    def broken(self):
        raise OSError(36, "File name too long")

    monkeypatch.setattr("pathlib.Path.exists", broken)

    with pytest.raises(FilesystemError):
        find_free_path(tmp_path, "a.zip")
