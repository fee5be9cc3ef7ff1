"""Tests for storage_manager.utils.hashing module."""

import pytest

from storage_manager.utils.hashing import (
    compare_trees,
    fast_hash_file,
    hash_tree,
    tree_contains,
)


class TestFastHashFile:

    def test_deterministic(self, tmp_path):
        f = tmp_path / "f"
        f.write_bytes(b"content")
        assert fast_hash_file(f) == fast_hash_file(f)

    def test_differs_on_content(self, tmp_path):
        a = tmp_path / "a"
        b = tmp_path / "b"
        a.write_bytes(b"one")
        b.write_bytes(b"two")
        assert fast_hash_file(a) != fast_hash_file(b)

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            fast_hash_file(tmp_path / "missing")

    def test_directory_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            fast_hash_file(tmp_path)


class TestHashTree:

    def test_includes_files_and_dirs(self, tmp_path, make_tree):
        root = make_tree(tmp_path / "t")
        hashes = hash_tree(root)
        assert set(hashes) == {"a.txt", "sub", "sub/b.bin", "empty"}
        assert hashes["sub"] == "dir"

    def test_symlink_not_followed(self, tmp_path):
        root = tmp_path / "t"
        root.mkdir()
        (root / "link").symlink_to("/nonexistent/target")
        assert hash_tree(root) == {"link": "link:/nonexistent/target"}

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            hash_tree(tmp_path / "missing")


class TestCompare:

    def test_compare_trees(self):
        diff = compare_trees({"a": "1", "b": "2", "c": "3"}, {"a": "1", "b": "X", "d": "4"})
        assert diff == {"missing": ["c"], "modified": ["b"], "extra": ["d"]}

    def test_tree_contains_tolerates_extras(self, tmp_path, make_tree):
        source = make_tree(tmp_path / "src")
        target = make_tree(tmp_path / "dst")
        (target / "extra.txt").write_text("extra")

        diff = tree_contains(source, target)

        assert diff["missing"] == []
        assert diff["modified"] == []
        assert diff["extra"] == ["extra.txt"]

    def test_tree_contains_detects_change(self, tmp_path, make_tree):
        source = make_tree(tmp_path / "src")
        target = make_tree(tmp_path / "dst")
        (target / "a.txt").write_text("changed")
        assert tree_contains(source, target)["modified"] == ["a.txt"]
