"""Archive transport backed by the system ``tar`` binary.

Archives are uncompressed; the network share is the bottleneck, not size.
"""

import os
from pathlib import Path

from .base import ArchiveTransport, TransportResult, run_command
from ..utils.platform import tool_available


class TarArchiveTransport(ArchiveTransport):
    """Pack with ``tar -cf`` and unpack with ``tar -xf``.

    Packing writes to ``<archive>.partial`` first and renames it over the
    previous archive only once tar exits successfully.

    Example:
        transport = TarArchiveTransport()
        transport.pack(Path("/goinfre/me/local_data/Documents"),
                       Path("/sgoinfre/.../my_archives/Documents.tar"))
    """

    tool = "tar"
    PARTIAL_SUFFIX = ".partial"

    def __init__(self, executable: str = "tar"):
        super().__init__()
        self.executable = executable

    def is_available(self) -> bool:
        return tool_available(self.executable)

    def pack(self, source_dir: Path, archive_path: Path) -> TransportResult:
        source_dir = Path(source_dir)
        archive_path = Path(archive_path)
        partial = archive_path.with_name(archive_path.name + self.PARTIAL_SUFFIX)

        try:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return TransportResult(
                success=False,
                message=f"Cannot create archive directory {archive_path.parent}: {e}",
                error=e,
            )

        result = run_command(
            [self.executable, "-cf", str(partial), "-C", str(source_dir.parent), source_dir.name],
            f"Packing {source_dir.name}",
        )
        if not result.success:
            self._discard(partial)
            return result

        try:
            os.replace(partial, archive_path)
        except OSError as e:
            self._discard(partial)
            return TransportResult(
                success=False,
                message=f"Cannot move archive into place at {archive_path}: {e}",
                error=e,
            )

        self.logger.debug(f"Packed {source_dir} -> {archive_path}")
        return result

    def unpack(self, archive_path: Path, dest_root: Path) -> TransportResult:
        archive_path = Path(archive_path)
        dest_root = Path(dest_root)
        try:
            dest_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return TransportResult(
                success=False,
                message=f"Cannot create {dest_root}: {e}",
                error=e,
            )

        return run_command(
            [self.executable, "-xf", str(archive_path), "-C", str(dest_root)],
            f"Unpacking {archive_path.name}",
        )

    def _discard(self, partial: Path) -> None:
        try:
            partial.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Could not remove partial archive {partial}: {e}")
