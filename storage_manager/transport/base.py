"""Abstract capability interfaces for moving folder content between tiers.

Two capabilities are used by the folder synchronizer:
    - ArchiveTransport: pack a directory into one archive file and back
    - MirrorCopy: merge-copy a directory's contents into another directory

Real implementations shell out to external tools; run_command() is the
single place where those processes are launched and their exit status checked.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import logging
import subprocess

logger = logging.getLogger(__name__)


@dataclass
class TransportResult:
    """Result of a transport operation.

    Attributes:
        success: Whether the operation succeeded
        message: Human-readable status message
        returncode: Exit status of the external process (-1 if it never ran)
        stderr: Captured standard error of the external process
        error: Exception if the operation raised
    """
    success: bool
    message: str
    returncode: Optional[int] = None
    stderr: str = ""
    error: Optional[Exception] = None

    @property
    def launch_failed(self) -> bool:
        """True if the external tool could not be started at all."""
        return self.returncode == -1

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "success": self.success,
            "message": self.message,
            "returncode": self.returncode,
            "stderr": self.stderr,
            "error": str(self.error) if self.error else None,
        }


def run_command(cmd: List[str], description: str, show_output: bool = False) -> TransportResult:
    """Run an external command synchronously and check its exit status.

    Standard output is discarded unless show_output is set, in which case it
    goes to our own stdout. Standard error is captured for reporting.
    No timeout is applied.

    Args:
        cmd: Command and arguments
        description: What the command does, used in result messages
        show_output: Let the command write to the terminal (progress output)

    Returns:
        TransportResult describing the outcome
    """
    logger.debug(f"Running command: {' '.join(cmd)}")
    try:
        proc = subprocess.run(
            cmd,
            stdout=None if show_output else subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError as e:
        return TransportResult(
            success=False,
            message=f"Command not found: {cmd[0]}",
            returncode=-1,
            error=e,
        )
    except OSError as e:
        return TransportResult(
            success=False,
            message=f"Could not launch {cmd[0]}: {e}",
            returncode=-1,
            error=e,
        )

    stderr = (proc.stderr or "").strip()
    if proc.returncode != 0:
        detail = f": {stderr}" if stderr else ""
        return TransportResult(
            success=False,
            message=f"{description} failed with exit status {proc.returncode}{detail}",
            returncode=proc.returncode,
            stderr=stderr,
        )
    return TransportResult(
        success=True,
        message=f"{description} succeeded",
        returncode=0,
        stderr=stderr,
    )


class ArchiveTransport(ABC):
    """Packs a directory into a single archive file and unpacks it again.

    The archive holds the directory itself as its single top-level entry,
    so unpacking into a root recreates ``<root>/<name>``.
    """

    #: Executable this transport needs (None for in-process transports)
    tool: Optional[str] = None

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether the transport can run on this host."""
        pass

    @abstractmethod
    def pack(self, source_dir: Path, archive_path: Path) -> TransportResult:
        """Create (or replace) archive_path from source_dir.

        A failed pack must leave any previous archive at archive_path intact.
        """
        pass

    @abstractmethod
    def unpack(self, archive_path: Path, dest_root: Path) -> TransportResult:
        """Extract archive_path into dest_root."""
        pass


class MirrorCopy(ABC):
    """Recursively copies a directory's contents into another directory.

    Attributes are preserved; entries present only in the destination are
    left alone.
    """

    tool: Optional[str] = None

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether the copier can run on this host."""
        pass

    @abstractmethod
    def copy(self, source_dir: Path, dest_dir: Path) -> TransportResult:
        """Copy the contents of source_dir into dest_dir (created if needed)."""
        pass
