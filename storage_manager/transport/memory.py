"""In-memory archive transport.

Keeps archive contents in a dict instead of on disk so the synchronizer's
branching can be exercised without tar or a network share. A small
placeholder file is still written at the archive path because remote
availability is decided by looking at the filesystem.
"""

import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .base import ArchiveTransport, TransportResult

PLACEHOLDER = b"memory-archive\n"


class MemoryArchiveTransport(ArchiveTransport):
    """Archive transport that stores snapshots in memory.

    Attributes:
        archives: archive path -> (folder name, directories, files)
        calls: ("pack" | "unpack", path) tuples in call order

    Args:
        fail_pack: Folder names whose pack should fail
        fail_unpack: Folder names whose unpack should fail
    """

    def __init__(
        self,
        fail_pack: Optional[Iterable[str]] = None,
        fail_unpack: Optional[Iterable[str]] = None,
    ):
        super().__init__()
        self.fail_pack = set(fail_pack or ())
        self.fail_unpack = set(fail_unpack or ())
        self.archives: Dict[Path, Tuple[str, List[str], Dict[str, bytes]]] = {}
        self.calls: List[Tuple[str, Path]] = []

    def is_available(self) -> bool:
        return True

    def pack(self, source_dir: Path, archive_path: Path) -> TransportResult:
        source_dir = Path(source_dir)
        archive_path = Path(archive_path)
        self.calls.append(("pack", archive_path))

        if source_dir.name in self.fail_pack:
            return TransportResult(success=False, message=f"Simulated pack failure for {source_dir.name}", returncode=2)

        dirs: List[str] = []
        files: Dict[str, bytes] = {}
        try:
            for root, dirnames, filenames in os.walk(source_dir):
                root_path = Path(root)
                for name in dirnames:
                    dirs.append((root_path / name).relative_to(source_dir).as_posix())
                for name in filenames:
                    path = root_path / name
                    files[path.relative_to(source_dir).as_posix()] = path.read_bytes()
            archive_path.parent.mkdir(parents=True, exist_ok=True)
            archive_path.write_bytes(PLACEHOLDER)
        except OSError as e:
            return TransportResult(success=False, message=f"Packing {source_dir.name} failed: {e}", error=e)

        self.archives[archive_path] = (source_dir.name, dirs, files)
        return TransportResult(success=True, message=f"Packing {source_dir.name} succeeded", returncode=0)

    def unpack(self, archive_path: Path, dest_root: Path) -> TransportResult:
        archive_path = Path(archive_path)
        dest_root = Path(dest_root)
        self.calls.append(("unpack", archive_path))

        entry = self.archives.get(archive_path)
        if entry is None:
            return TransportResult(success=False, message=f"No such archive: {archive_path}", returncode=2)

        name, dirs, files = entry
        if name in self.fail_unpack:
            return TransportResult(success=False, message=f"Simulated unpack failure for {name}", returncode=2)

        target = dest_root / name
        try:
            target.mkdir(parents=True, exist_ok=True)
            for rel in dirs:
                (target / rel).mkdir(parents=True, exist_ok=True)
            for rel, data in files.items():
                path = target / rel
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(data)
        except OSError as e:
            return TransportResult(success=False, message=f"Unpacking {name} failed: {e}", error=e)

        return TransportResult(success=True, message=f"Unpacking {archive_path.name} succeeded", returncode=0)
