"""Tests for storage_manager.virtualizer module.

Validates entry inspection without following symlinks, backup handling,
symlink creation and rollback after a failed link.
"""

import os

import pytest

from storage_manager.results import FailureReason
from storage_manager.virtualizer import (
    DirectoryVirtualizer,
    EntryKind,
    inspect_entry,
    remove_entry,
)


@pytest.fixture
def paths(tmp_path):
    home = tmp_path / "home"
    local = tmp_path / "local"
    home.mkdir()
    local.mkdir()
    return {
        "home": home / "Projects",
        "local": local / "Projects",
        "backup": home / "Projects_OLD",
    }


@pytest.fixture
def virtualizer(paths):
    return DirectoryVirtualizer(paths["home"], paths["local"], paths["backup"])


class TestInspectEntry:
    """Classification with lstat."""

    def test_absent(self, tmp_path):
        assert inspect_entry(tmp_path / "missing") == EntryKind.ABSENT

    def test_directory(self, tmp_path):
        assert inspect_entry(tmp_path) == EntryKind.DIRECTORY

    def test_file(self, tmp_path):
        f = tmp_path / "f.txt"
        f.write_text("x")
        assert inspect_entry(f) == EntryKind.FILE

    def test_symlink_to_directory_is_symlink(self, tmp_path):
        target = tmp_path / "target"
        target.mkdir()
        link = tmp_path / "link"
        link.symlink_to(target)
        assert inspect_entry(link) == EntryKind.SYMLINK

    def test_dangling_symlink_is_symlink(self, tmp_path):
        link = tmp_path / "link"
        link.symlink_to(tmp_path / "gone")
        assert inspect_entry(link) == EntryKind.SYMLINK

    def test_is_real(self):
        assert EntryKind.DIRECTORY.is_real
        assert EntryKind.FILE.is_real
        assert not EntryKind.SYMLINK.is_real
        assert not EntryKind.ABSENT.is_real


class TestRemoveEntry:

    def test_symlink_removed_without_touching_target(self, tmp_path):
        target = tmp_path / "target"
        target.mkdir()
        (target / "keep.txt").write_text("keep")
        link = tmp_path / "link"
        link.symlink_to(target)

        remove_entry(link)

        assert inspect_entry(link) == EntryKind.ABSENT
        assert (target / "keep.txt").read_text() == "keep"

    def test_directory_removed_recursively(self, tmp_path):
        d = tmp_path / "d"
        (d / "nested").mkdir(parents=True)
        (d / "nested" / "f").write_text("x")
        remove_entry(d)
        assert not d.exists()

    def test_absent_is_noop(self, tmp_path):
        remove_entry(tmp_path / "missing")


class TestVirtualize:
    """Backup-then-link sequence."""

    def test_absent_home_gets_link(self, virtualizer, paths):
        result = virtualizer.virtualize()
        assert result.success
        assert result.linked
        assert not result.backup_created
        assert paths["home"].is_symlink()
        assert os.readlink(paths["home"]) == str(paths["local"])

    def test_real_directory_moved_to_backup(self, virtualizer, paths):
        paths["home"].mkdir()
        (paths["home"] / "a.txt").write_text("data")

        result = virtualizer.virtualize()

        assert result.success
        assert result.backup_created
        assert paths["home"].is_symlink()
        assert (paths["backup"] / "a.txt").read_text() == "data"

    def test_real_file_moved_to_backup(self, virtualizer, paths):
        paths["home"].write_text("a file")
        result = virtualizer.virtualize()
        assert result.success
        assert paths["backup"].read_text() == "a file"
        assert paths["home"].is_symlink()

    def test_previous_backup_replaced(self, virtualizer, paths):
        paths["backup"].mkdir()
        (paths["backup"] / "old.txt").write_text("old")
        paths["home"].mkdir()
        (paths["home"] / "new.txt").write_text("new")

        result = virtualizer.virtualize()

        assert result.success
        assert not (paths["backup"] / "old.txt").exists()
        assert (paths["backup"] / "new.txt").read_text() == "new"

    def test_existing_symlink_is_left_alone(self, virtualizer, paths):
        paths["home"].symlink_to(paths["local"])
        result = virtualizer.virtualize()
        assert result.success
        assert not result.linked
        assert not result.backup_created
        assert not paths["backup"].exists()

    def test_foreign_symlink_is_left_alone(self, virtualizer, paths, tmp_path):
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        paths["home"].symlink_to(elsewhere)

        result = virtualizer.virtualize()

        assert result.success
        assert os.readlink(paths["home"]) == str(elsewhere)
        assert not virtualizer.points_to_local()

    def test_backup_failure_leaves_home_untouched(self, virtualizer, paths, monkeypatch):
        paths["home"].mkdir()
        (paths["home"] / "a.txt").write_text("data")

        def refuse():
            raise PermissionError("read-only home")

        monkeypatch.setattr(virtualizer, "move_to_backup", refuse)
        result = virtualizer.virtualize()

        assert not result.success
        assert result.reason == FailureReason.BACKUP_FAILED
        assert inspect_entry(paths["home"]) == EntryKind.DIRECTORY
        assert (paths["home"] / "a.txt").read_text() == "data"

    def test_link_failure_rolls_back(self, virtualizer, paths, monkeypatch):
        paths["home"].mkdir()
        (paths["home"] / "a.txt").write_text("data")

        def refuse():
            raise OSError("symlinks not supported")

        monkeypatch.setattr(virtualizer, "create_link", refuse)
        result = virtualizer.virtualize()

        assert not result.success
        assert result.reason == FailureReason.LINK_FAILED
        assert result.rolled_back
        assert not result.backup_created
        assert inspect_entry(paths["home"]) == EntryKind.DIRECTORY
        assert (paths["home"] / "a.txt").read_text() == "data"
        assert not paths["backup"].exists()

    def test_link_failure_without_backup(self, virtualizer, paths, monkeypatch):
        def refuse():
            raise OSError("nope")

        monkeypatch.setattr(virtualizer, "create_link", refuse)
        result = virtualizer.virtualize()
        assert result.reason == FailureReason.LINK_FAILED
        assert not result.rolled_back

    def test_rollback_failure_keeps_backup(self, virtualizer, paths, monkeypatch):
        paths["home"].mkdir()
        (paths["home"] / "a.txt").write_text("data")

        def refuse():
            raise OSError("nope")

        monkeypatch.setattr(virtualizer, "create_link", refuse)
        monkeypatch.setattr(virtualizer, "restore_backup", refuse)
        result = virtualizer.virtualize()

        assert result.reason == FailureReason.ROLLBACK_FAILED
        assert result.backup_created
        assert (paths["backup"] / "a.txt").read_text() == "data"

    def test_restore_backup_refuses_occupied_home(self, virtualizer, paths):
        paths["backup"].mkdir()
        paths["home"].mkdir()
        with pytest.raises(FileExistsError):
            virtualizer.restore_backup()


class TestLinkIfAbsent:
    """Fetch's narrower contract: never replace an existing entry."""

    def test_links_absent_home(self, virtualizer, paths):
        result = virtualizer.link_if_absent()
        assert result.success and result.linked
        assert paths["home"].is_symlink()

    @pytest.mark.parametrize("kind", ["dir", "file", "dangling"])
    def test_existing_entry_untouched(self, virtualizer, paths, tmp_path, kind):
        if kind == "dir":
            paths["home"].mkdir()
        elif kind == "file":
            paths["home"].write_text("x")
        else:
            paths["home"].symlink_to(tmp_path / "gone")
        before = inspect_entry(paths["home"])

        result = virtualizer.link_if_absent()

        assert result.success
        assert not result.linked
        assert inspect_entry(paths["home"]) == before
        assert not paths["backup"].exists()

    def test_link_error_reported(self, virtualizer, monkeypatch):
        def refuse():
            raise PermissionError("denied")

        monkeypatch.setattr(virtualizer, "create_link", refuse)
        result = virtualizer.link_if_absent()
        assert not result.success
        assert result.reason == FailureReason.LINK_FAILED
