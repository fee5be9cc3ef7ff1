"""Directory virtualization: replace a home entry with a symlink to local storage.

The home entry of a managed folder is in one of three observable states:
absent, a real entry (directory or file), or a symlink. Every decision is
taken on ``os.lstat`` so a symlink is never mistaken for its target, and the
state is re-read right before each mutation since scratch storage can be
wiped from outside while a run is in progress.

Safety rules:
    - Real content is only ever moved (renamed) to the backup path, never deleted.
    - Only one backup exists per folder; an older one is removed first.
    - If the symlink cannot be created after a backup, the backup is renamed
      back so the user's data stays reachable at its usual place.
"""

import errno
import logging
import os
import shutil
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from .results import FailureReason

logger = logging.getLogger(__name__)


class EntryKind(Enum):
    """What a path currently is, inspected without following symlinks."""
    ABSENT = "absent"
    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"

    @property
    def is_real(self) -> bool:
        """True for real (non-symlink) entries holding user data."""
        return self in (EntryKind.DIRECTORY, EntryKind.FILE)


def inspect_entry(path: Path) -> EntryKind:
    """Classify a path with a single lstat call.

    Raises:
        OSError: For errors other than the path not existing.
    """
    try:
        st = os.lstat(path)
    except FileNotFoundError:
        return EntryKind.ABSENT
    except NotADirectoryError:
        return EntryKind.ABSENT

    if stat.S_ISLNK(st.st_mode):
        return EntryKind.SYMLINK
    if stat.S_ISDIR(st.st_mode):
        return EntryKind.DIRECTORY
    return EntryKind.FILE


def remove_entry(path: Path) -> None:
    """Remove whatever is at path (recursively for real directories).

    Symlinks are unlinked, never followed.
    """
    kind = inspect_entry(path)
    if kind == EntryKind.ABSENT:
        return
    if kind == EntryKind.DIRECTORY:
        shutil.rmtree(path)
    else:
        os.unlink(path)


@dataclass
class VirtualizeResult:
    """Result of linking a home entry to local storage.

    Attributes:
        success: Whether the home entry ends up as intended
        linked: Whether a new symlink was created by this call
        backup_created: Whether real content was moved to the backup path
        rolled_back: Whether the backup was moved back after a link failure
        reason: Failure reason if not successful
        message: Human-readable status message
    """
    success: bool
    linked: bool = False
    backup_created: bool = False
    rolled_back: bool = False
    reason: Optional[FailureReason] = None
    message: str = ""


class DirectoryVirtualizer:
    """Inspects and mutates the home entry of one managed folder.

    Args:
        home_path: User-visible location
        local_path: Symlink target on local storage
        backup_path: Where real home content is moved
    """

    def __init__(self, home_path: Path, local_path: Path, backup_path: Path):
        self.home_path = Path(home_path)
        self.local_path = Path(local_path)
        self.backup_path = Path(backup_path)

    def home_state(self) -> EntryKind:
        return inspect_entry(self.home_path)

    def points_to_local(self) -> bool:
        """True if the home entry is a symlink whose target is local_path."""
        if self.home_state() != EntryKind.SYMLINK:
            return False
        target = Path(os.readlink(self.home_path))
        if not target.is_absolute():
            target = self.home_path.parent / target
        return os.path.normpath(target) == os.path.normpath(self.local_path)

    def move_to_backup(self) -> None:
        """Rename the real home entry to the backup path.

        Any previous backup is removed first.

        Raises:
            OSError: If the old backup cannot be removed or the rename fails.
        """
        if inspect_entry(self.backup_path) != EntryKind.ABSENT:
            logger.info(f"Removing previous backup {self.backup_path}")
            remove_entry(self.backup_path)
        os.rename(self.home_path, self.backup_path)

    def create_link(self) -> None:
        """Create home_path -> local_path.

        Raises:
            OSError: If the link cannot be created (including FileExistsError
                when something appeared at home_path in the meantime).
        """
        os.symlink(self.local_path, self.home_path, target_is_directory=True)

    def restore_backup(self) -> None:
        """Move the backup back to the home path.

        Raises:
            OSError: If the home path is occupied or the rename fails.
        """
        if inspect_entry(self.home_path) != EntryKind.ABSENT:
            raise FileExistsError(errno.EEXIST, "Home path is occupied", str(self.home_path))
        os.rename(self.backup_path, self.home_path)

    def virtualize(self) -> VirtualizeResult:
        """Make the home entry a symlink to local storage.

        1. Symlink already there: nothing to do.
        2. Real entry there: move it to the backup path; stop on failure.
        3. Home path now absent: create the symlink; on failure move the
           backup back into place.
        """
        try:
            state = self.home_state()
        except OSError as e:
            return VirtualizeResult(
                success=False,
                reason=FailureReason.BACKUP_FAILED,
                message=f"Cannot inspect {self.home_path}: {e}",
            )

        if state == EntryKind.SYMLINK:
            if not self.points_to_local():
                logger.warning(
                    f"{self.home_path} is a symlink to {os.readlink(self.home_path)}, "
                    f"not {self.local_path}; leaving it untouched"
                )
            return VirtualizeResult(success=True, message="Already linked")

        result = VirtualizeResult(success=True)

        if state.is_real:
            try:
                self.move_to_backup()
            except OSError as e:
                return VirtualizeResult(
                    success=False,
                    reason=FailureReason.BACKUP_FAILED,
                    message=f"Cannot move {self.home_path} to {self.backup_path}: {e}",
                )
            result.backup_created = True
            logger.info(f"Backed up {self.home_path} -> {self.backup_path}")

        try:
            self.create_link()
        except OSError as e:
            return self._rollback(result, e)

        result.linked = True
        result.message = f"Linked {self.home_path} -> {self.local_path}"
        return result

    def link_if_absent(self) -> VirtualizeResult:
        """Create the symlink only if nothing exists at the home path.

        Never renames, removes or replaces an existing entry.
        """
        try:
            state = self.home_state()
        except OSError as e:
            return VirtualizeResult(
                success=False,
                reason=FailureReason.LINK_FAILED,
                message=f"Cannot inspect {self.home_path}: {e}",
            )

        if state != EntryKind.ABSENT:
            return VirtualizeResult(success=True, message=f"{self.home_path} already exists ({state.value})")

        try:
            self.create_link()
        except FileExistsError:
            return VirtualizeResult(success=True, message=f"{self.home_path} appeared concurrently; left as is")
        except OSError as e:
            return VirtualizeResult(
                success=False,
                reason=FailureReason.LINK_FAILED,
                message=f"Cannot link {self.home_path} -> {self.local_path}: {e}",
            )
        return VirtualizeResult(success=True, linked=True, message=f"Linked {self.home_path} -> {self.local_path}")

    def _rollback(self, result: VirtualizeResult, link_error: OSError) -> VirtualizeResult:
        result.success = False
        link_message = f"Cannot link {self.home_path} -> {self.local_path}: {link_error}"

        if not result.backup_created:
            result.reason = FailureReason.LINK_FAILED
            result.message = link_message
            return result

        try:
            self.restore_backup()
        except OSError as e:
            logger.error(f"Rollback failed, original content remains at {self.backup_path}: {e}")
            result.reason = FailureReason.ROLLBACK_FAILED
            result.message = f"{link_message}; original content left at {self.backup_path} ({e})"
            return result

        result.backup_created = False
        result.rolled_back = True
        result.reason = FailureReason.LINK_FAILED
        result.message = f"{link_message}; original content restored"
        logger.warning(f"Restored {self.backup_path} -> {self.home_path} after link failure")
        return result
