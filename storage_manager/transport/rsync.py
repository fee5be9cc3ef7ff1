"""Mirror copy backed by ``rsync -a``."""

from pathlib import Path
from typing import List, Optional, Sequence

from .base import MirrorCopy, TransportResult, run_command
from ..utils.platform import tool_available

PROGRESS_ARGS = ("--info=progress2",)


class RsyncMirrorCopy(MirrorCopy):
    """Copy ``<source>/`` into ``<dest>`` with ``rsync -a``.

    ``--delete`` is never passed: extras in the destination survive.

    Args:
        extra_args: Additional rsync flags
        executable: rsync binary name or path
        show_progress: Pass ``--info=progress2`` and let rsync write it to
            the terminal
    """

    tool = "rsync"

    def __init__(
        self,
        extra_args: Optional[Sequence[str]] = None,
        executable: str = "rsync",
        show_progress: bool = False,
    ):
        super().__init__()
        self.extra_args: List[str] = list(extra_args or [])
        self.executable = executable
        self.show_progress = show_progress

    def is_available(self) -> bool:
        return tool_available(self.executable)

    def command(self, source_dir: Path, dest_dir: Path) -> List[str]:
        progress = list(PROGRESS_ARGS) if self.show_progress else []
        # Trailing slash: copy the contents, not the directory itself
        return [self.executable, "-a", *progress, *self.extra_args, f"{source_dir}/", str(dest_dir)]

    def copy(self, source_dir: Path, dest_dir: Path) -> TransportResult:
        source_dir = Path(source_dir)
        dest_dir = Path(dest_dir)
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return TransportResult(
                success=False,
                message=f"Cannot create {dest_dir}: {e}",
                error=e,
            )

        return run_command(
            self.command(source_dir, dest_dir),
            f"Copying {source_dir} to {dest_dir}",
            show_output=self.show_progress,
        )
