"""Shared pytest fixtures for Storage Manager tests.

Provides temporary home/local/remote roots, configs for both variants, and
transport doubles so the synchronizer can be driven without tar, rsync or a
network share.
"""

from pathlib import Path

import pytest

from storage_manager.config import StorageConfig, SyncVariant
from storage_manager.transport.base import MirrorCopy, TransportResult
from storage_manager.transport.local import LocalMirrorCopy
from storage_manager.transport.memory import MemoryArchiveTransport


class FailingMirrorCopy(MirrorCopy):
    """Mirror copy that fails for selected destination/source folder names."""

    def __init__(self, fail_for=()):
        super().__init__()
        self.fail_for = set(fail_for)
        self.inner = LocalMirrorCopy()
        self.calls = []

    def is_available(self) -> bool:
        return True

    def copy(self, source_dir: Path, dest_dir: Path) -> TransportResult:
        self.calls.append((Path(source_dir), Path(dest_dir)))
        if Path(dest_dir).name in self.fail_for:
            return TransportResult(success=False, message="Simulated copy failure", returncode=23)
        return self.inner.copy(source_dir, dest_dir)


@pytest.fixture
def roots(tmp_path):
    """Create temporary home, local and remote roots."""
    home = tmp_path / "home"
    local = tmp_path / "goinfre" / "local_data"
    remote = tmp_path / "sgoinfre" / "my_archives"
    home.mkdir()
    local.mkdir(parents=True)
    remote.mkdir(parents=True)
    return {"home": home, "local": local, "remote": remote, "root": tmp_path}


@pytest.fixture
def archive_config(roots):
    """Archive-variant config over the temporary roots."""
    return StorageConfig(
        home_root=roots["home"],
        local_root=roots["local"],
        remote_root=roots["remote"],
        folders=["Projects", "Downloads"],
        variant=SyncVariant.ARCHIVE,
    )


@pytest.fixture
def mirror_config(roots):
    """Mirror-variant config over the temporary roots."""
    return StorageConfig(
        home_root=roots["home"],
        local_root=roots["local"],
        remote_root=roots["remote"],
        folders=["Projects", "Downloads"],
        variant=SyncVariant.MIRROR,
    )


@pytest.fixture
def memory_archive():
    return MemoryArchiveTransport()


@pytest.fixture
def local_mirror():
    return LocalMirrorCopy()


def populate(directory: Path) -> Path:
    """Fill a directory with a small nested tree."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "a.txt").write_text("alpha")
    (directory / "sub").mkdir(exist_ok=True)
    (directory / "sub" / "b.bin").write_bytes(b"\x00\x01\x02\x03" * 64)
    (directory / "empty").mkdir(exist_ok=True)
    return directory


def snapshot(directory: Path) -> dict:
    """Map relative paths to file bytes (directories map to None)."""
    result = {}
    for path in sorted(directory.rglob("*")):
        rel = path.relative_to(directory).as_posix()
        result[rel] = None if path.is_dir() else path.read_bytes()
    return result


@pytest.fixture
def make_tree():
    return populate


@pytest.fixture
def tree_snapshot():
    return snapshot
