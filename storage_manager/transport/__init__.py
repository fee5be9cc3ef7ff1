"""Transports moving folder content between local and remote storage.

Available implementations:
    - TarArchiveTransport: archives via the system tar binary
    - RsyncMirrorCopy: mirror copies via rsync
    - LocalMirrorCopy: in-process mirror copies (rsync fallback)
    - MemoryArchiveTransport: in-memory archives for tests

Usage:
    from storage_manager.transport import get_archive_transport, get_mirror_copy

    archive = get_archive_transport()
    mirror = get_mirror_copy()
"""

import logging
from typing import Optional, Sequence

from .base import ArchiveTransport, MirrorCopy, TransportResult, run_command
from .local import LocalMirrorCopy
from .memory import MemoryArchiveTransport
from .rsync import RsyncMirrorCopy
from .tar import TarArchiveTransport

logger = logging.getLogger(__name__)


def get_archive_transport() -> ArchiveTransport:
    """Return the archive transport for this host (tar)."""
    return TarArchiveTransport()


def get_mirror_copy(
    prefer_rsync: bool = True,
    extra_args: Optional[Sequence[str]] = None,
    show_progress: bool = False,
) -> MirrorCopy:
    """Return rsync when installed, else the in-process copier.

    Args:
        prefer_rsync: Set False to force the in-process copier
        extra_args: Extra rsync flags (ignored by the fallback)
        show_progress: Show rsync progress on the terminal (ignored by the fallback)
    """
    if prefer_rsync:
        rsync = RsyncMirrorCopy(extra_args=extra_args, show_progress=show_progress)
        if rsync.is_available():
            return rsync
        logger.warning("rsync not found, using in-process copy")
    return LocalMirrorCopy()


__all__ = [
    "ArchiveTransport",
    "MirrorCopy",
    "TransportResult",
    "run_command",
    "TarArchiveTransport",
    "RsyncMirrorCopy",
    "LocalMirrorCopy",
    "MemoryArchiveTransport",
    "get_archive_transport",
    "get_mirror_copy",
]
