"""In-process mirror copy used when rsync is not installed."""

import shutil
from pathlib import Path

from .base import MirrorCopy, TransportResult


class LocalMirrorCopy(MirrorCopy):
    """Merge-copy with shutil, preserving metadata and symlinks.

    Existing destination files are overwritten by source files of the same
    name; destination-only entries are kept.
    """

    def is_available(self) -> bool:
        return True

    def copy(self, source_dir: Path, dest_dir: Path) -> TransportResult:
        source_dir = Path(source_dir)
        dest_dir = Path(dest_dir)

        if not source_dir.is_dir():
            return TransportResult(
                success=False,
                message=f"Source directory does not exist: {source_dir}",
            )

        try:
            shutil.copytree(
                source_dir,
                dest_dir,
                symlinks=True,
                copy_function=shutil.copy2,
                dirs_exist_ok=True,
            )
            shutil.copystat(source_dir, dest_dir)
        except (OSError, shutil.Error) as e:
            return TransportResult(
                success=False,
                message=f"Copying {source_dir} to {dest_dir} failed: {e}",
                error=e,
            )

        return TransportResult(
            success=True,
            message=f"Copying {source_dir} to {dest_dir} succeeded",
            returncode=0,
        )
